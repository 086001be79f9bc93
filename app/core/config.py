from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "production", "staging", "test"]


def _resolve_env_files() -> tuple[str, ...]:
    env = os.getenv("BLOGSMITH_ENVIRONMENT", "development").lower()
    if env in {"prod", "production"}:
        return (".env", ".env.prod")
    if env in {"dev", "development"}:
        return (".env", ".env.dev")
    if env in {"test", "testing"}:
        return (".env", ".env.test")
    return (".env",)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BLOGSMITH_",
        env_file=_resolve_env_files(),
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Environment = "development"
    project_name: str = "Blogsmith"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"
    log_json: bool = False
    rate_limit: str = "60/minute"
    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = []
    enable_docs: bool = True

    gateway_api_key: str | None = None
    gateway_base_url: str = "https://ai.gateway.lovable.dev/v1"
    gateway_model: str = "google/gemini-2.5-flash"
    gateway_timeout_seconds: float = 120.0
    partial_content_threshold: int = 50

    database_url: str | None = None
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "blogsmith"

    @property
    def async_database_uri(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            "postgresql+asyncpg://"
            f"{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
