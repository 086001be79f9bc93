from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Union

import httpx
from openai import APIError

from services.blog_repository import BlogRepository, PersistedDocument
from services.document_assembler import DocumentAssembler, Preview
from services.document_resolver import (
    DEFAULT_PARTIAL_CONTENT_THRESHOLD,
    collapse_failure,
    resolve_document,
)
from services.errors import ErrorCode, GatewayError, GenerationOutcomeError, ResolutionError
from services.gateway_proxy import GatewayProxy, GatewayStream, GenerationRequest
from services.stream_reader import StreamDone, read_content_deltas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewUpdated:
    preview: Preview
    buffered_chars: int


@dataclass(frozen=True)
class GenerationCompleted:
    blog: PersistedDocument


GenerationEvent = Union[PreviewUpdated, GenerationCompleted]


class BlogGeneratorService:
    """Run a blog generation attempt from gateway stream to stored document.

    Every attempt gets its own assembler, so concurrent attempts share no
    buffers. The repository is called once, and only after the finished
    buffer resolves to a complete document; an attempt abandoned mid-stream
    stores nothing.
    """

    def __init__(
        self,
        proxy: GatewayProxy,
        repository: BlogRepository,
        partial_content_threshold: int = DEFAULT_PARTIAL_CONTENT_THRESHOLD,
    ) -> None:
        self._proxy = proxy
        self._repository = repository
        self._partial_content_threshold = partial_content_threshold

    async def start(
        self,
        request: GenerationRequest,
        owner_id: str | None,
    ) -> AsyncGenerator[GenerationEvent, None]:
        """Open the upstream stream and return the attempt's event iterator.

        Gateway failures raise here, before any event is produced.
        """
        upstream = await self._proxy.open_stream(request)
        return self._run(upstream, request, owner_id)

    async def generate(self, request: GenerationRequest, owner_id: str | None) -> PersistedDocument:
        events = await self.start(request, owner_id)
        async for event in events:
            if isinstance(event, GenerationCompleted):
                return event.blog
        raise GenerationOutcomeError(
            ErrorCode.generation_empty,
            "The blog could not be generated. Please try again.",
            stage=ErrorCode.generation_empty,
        )

    async def _run(
        self,
        upstream: GatewayStream,
        request: GenerationRequest,
        owner_id: str | None,
    ) -> AsyncGenerator[GenerationEvent, None]:
        assembler = DocumentAssembler()
        async with upstream:
            try:
                async for event in read_content_deltas(upstream.iter_bytes()):
                    if isinstance(event, StreamDone):
                        break
                    yield PreviewUpdated(preview=assembler.feed(event.text), buffered_chars=len(assembler))
            except (httpx.HTTPError, APIError) as exc:
                logger.warning(
                    "AI gateway stream interrupted after %s chars: %s",
                    len(assembler),
                    exc,
                )
                raise GatewayError(ErrorCode.upstream_error, "AI gateway stream was interrupted.") from exc

        raw_text = assembler.raw_text
        try:
            document = resolve_document(raw_text)
        except ResolutionError as exc:
            logger.warning(
                "Generated blog could not be resolved: stage=%s raw_length=%s",
                exc.code.value,
                exc.raw_length,
            )
            raise collapse_failure(raw_text, exc, self._partial_content_threshold) from exc

        blog = await self._repository.store(document, request, owner_id)
        yield GenerationCompleted(blog=blog)
