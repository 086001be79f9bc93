"""Shared test fixtures for pytest.

Environment defaults are set before any application module is imported so
the module-level engine in app.db.session points at SQLite instead of
Postgres, and no real gateway key leaks in from the developer's shell.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from typing import Any

os.environ["BLOGSMITH_ENVIRONMENT"] = "test"
os.environ["BLOGSMITH_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("BLOGSMITH_GATEWAY_API_KEY", None)

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db.models import Base
from services.gateway_proxy import GenerationRequest
from tests.helpers import BLOG_PAYLOAD


@pytest.fixture
def blog_payload() -> dict[str, Any]:
    return dict(BLOG_PAYLOAD)


@pytest.fixture
def generation_request() -> GenerationRequest:
    return GenerationRequest(topic="Edge AI in healthcare")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session
    await engine.dispose()
