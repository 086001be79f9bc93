"""Gateway and repository test doubles shared across the suite."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable, Iterable
from datetime import datetime, timezone
from typing import Any

import httpx

from services.blog_repository import PersistedDocument, count_words
from services.document_resolver import StructuredDocument
from services.errors import PersistenceError
from services.gateway_proxy import GatewayProxy, GenerationRequest

GATEWAY_URL = "https://gateway.test/v1"

BLOG_PAYLOAD: dict[str, Any] = {
    "title": "Edge AI in Clinics 🚀",
    "meta_description": "How on-device models are changing patient care.",
    "keywords": ["edge ai", "healthcare", "edge ai"],
    "content": "Intro paragraph.\\n\\n## Why it matters 📊\\n\\nShort **bold** point.\\nNext line.",
}


def sse_line(content: str) -> str:
    envelope = {"choices": [{"index": 0, "delta": {"content": content}}]}
    return f"data: {json.dumps(envelope, ensure_ascii=False)}\n\n"


def sse_body(deltas: Iterable[str], done: bool = True) -> bytes:
    body = "".join(sse_line(delta) for delta in deltas)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode("utf-8")


def split_into_chunks(text: str, size: int) -> list[str]:
    return [text[index : index + size] for index in range(0, len(text), size)]


async def _aiter(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def streaming_response(chunks: Iterable[bytes], status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        content=_aiter(list(chunks)),
    )


async def _aiter_then_fail(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk
    raise httpx.ReadError("connection reset by peer")


def interrupted_response(chunks: Iterable[bytes]) -> httpx.Response:
    """A 200 event stream whose connection drops after the given chunks."""
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=_aiter_then_fail(list(chunks)),
    )


def make_proxy(
    handler: Callable[[httpx.Request], httpx.Response],
    api_key: str | None = "test-key",
) -> GatewayProxy:
    return GatewayProxy(
        api_key=api_key,
        base_url=GATEWAY_URL,
        model="test/model",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class FakeBlogRepository:
    """Records store calls instead of touching a database."""

    def __init__(self, fail: bool = False) -> None:
        self.calls: list[tuple[StructuredDocument, GenerationRequest, str | None]] = []
        self._fail = fail

    async def store(
        self,
        document: StructuredDocument,
        request: GenerationRequest,
        owner_id: str | None,
    ) -> PersistedDocument:
        self.calls.append((document, request, owner_id))
        if self._fail:
            raise PersistenceError()
        return PersistedDocument(
            id=f"blog-{len(self.calls)}",
            owner_id=owner_id,
            topic=request.topic,
            tone=request.tone.value,
            requested_word_count=request.word_count,
            title=document.title,
            meta_description=document.meta_description,
            keywords=list(document.keywords),
            content=document.content,
            word_count=count_words(document.content),
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )


