from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.session import get_session
from services.blog_generator import BlogGeneratorService
from services.blog_repository import SQLAlchemyBlogRepository
from services.gateway_proxy import GatewayProxy


@lru_cache
def get_gateway_proxy() -> GatewayProxy:
    settings = get_settings()
    return GatewayProxy(
        api_key=settings.gateway_api_key,
        base_url=settings.gateway_base_url,
        model=settings.gateway_model,
        timeout=settings.gateway_timeout_seconds,
    )


def get_owner_id(x_user_id: str | None = Header(default=None, max_length=64)) -> str | None:
    return x_user_id or None


def get_blog_repository(session: AsyncSession = Depends(get_session)) -> SQLAlchemyBlogRepository:
    return SQLAlchemyBlogRepository(session)


def get_blog_generator(
    proxy: GatewayProxy = Depends(get_gateway_proxy),
    repository: SQLAlchemyBlogRepository = Depends(get_blog_repository),
) -> BlogGeneratorService:
    return BlogGeneratorService(
        proxy=proxy,
        repository=repository,
        partial_content_threshold=get_settings().partial_content_threshold,
    )
