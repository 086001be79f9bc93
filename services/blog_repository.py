from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Blog
from services.document_resolver import StructuredDocument
from services.errors import PersistenceError
from services.gateway_proxy import GenerationRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedDocument:
    id: str
    owner_id: str | None
    topic: str
    tone: str
    requested_word_count: int
    title: str
    meta_description: str
    keywords: list[str]
    content: str
    word_count: int
    created_at: datetime


class BlogRepository(Protocol):
    async def store(
        self,
        document: StructuredDocument,
        request: GenerationRequest,
        owner_id: str | None,
    ) -> PersistedDocument: ...


def count_words(text: str) -> int:
    return len(text.split())


def _to_persisted(blog: Blog) -> PersistedDocument:
    return PersistedDocument(
        id=blog.id,
        owner_id=blog.owner_id,
        topic=blog.topic,
        tone=blog.tone,
        requested_word_count=blog.requested_word_count,
        title=blog.title,
        meta_description=blog.meta_description,
        keywords=list(blog.keywords or []),
        content=blog.content,
        word_count=blog.word_count,
        created_at=blog.created_at,
    )


class SQLAlchemyBlogRepository:
    """Store and look up generated blogs in the ``blogs`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def store(
        self,
        document: StructuredDocument,
        request: GenerationRequest,
        owner_id: str | None,
    ) -> PersistedDocument:
        blog = Blog(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            topic=request.topic,
            tone=request.tone.value,
            requested_word_count=request.word_count,
            title=document.title,
            meta_description=document.meta_description,
            keywords=list(document.keywords),
            content=document.content,
            word_count=count_words(document.content),
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(blog)
        try:
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.exception("Failed to store generated blog")
            raise PersistenceError() from exc

        logger.info("Stored blog %s (%s words)", blog.id, blog.word_count)
        return _to_persisted(blog)

    async def list_for_owner(self, owner_id: str | None) -> list[PersistedDocument]:
        statement = (
            select(Blog)
            .where(Blog.owner_id == owner_id)
            .order_by(Blog.created_at.desc())
        )
        try:
            result = await self._session.execute(statement)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load blogs.") from exc
        return [_to_persisted(blog) for blog in result.scalars().all()]

    async def get(self, blog_id: str, owner_id: str | None) -> PersistedDocument | None:
        blog = await self._find(blog_id, owner_id)
        return _to_persisted(blog) if blog else None

    async def delete(self, blog_id: str, owner_id: str | None) -> bool:
        blog = await self._find(blog_id, owner_id)
        if blog is None:
            return False
        try:
            await self._session.delete(blog)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise PersistenceError("Failed to delete blog.") from exc
        return True

    async def _find(self, blog_id: str, owner_id: str | None) -> Blog | None:
        statement = select(Blog).where(Blog.id == blog_id, Blog.owner_id == owner_id)
        try:
            result = await self._session.execute(statement)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load blog.") from exc
        return result.scalar_one_or_none()
