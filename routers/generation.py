from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.dependencies import get_blog_generator, get_gateway_proxy, get_owner_id
from schemas.blogs import BlogGenerationRequest, BlogResponse, ErrorResponse, GenerationStreamEvent
from services.blog_generator import BlogGeneratorService, GenerationEvent
from services.errors import BlogGenerationError
from services.gateway_proxy import GatewayProxy

logger = logging.getLogger(__name__)

router = APIRouter(tags=["generation"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    402: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post("/generate-blog", responses=ERROR_RESPONSES)
async def generate_blog(
    payload: BlogGenerationRequest,
    proxy: GatewayProxy = Depends(get_gateway_proxy),
) -> StreamingResponse:
    """Relay the gateway's completion stream to the caller byte for byte."""
    upstream = await proxy.open_stream(payload.to_request())
    return StreamingResponse(
        upstream.iter_bytes(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
        background=BackgroundTask(upstream.aclose),
    )


@router.post(
    "/blogs/generate",
    response_model=BlogResponse,
    status_code=201,
    responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse}},
)
async def generate_and_store_blog(
    payload: BlogGenerationRequest,
    owner_id: str | None = Depends(get_owner_id),
    generator: BlogGeneratorService = Depends(get_blog_generator),
) -> BlogResponse:
    blog = await generator.generate(payload.to_request(), owner_id)
    return BlogResponse.model_validate(blog)


async def _event_stream(events: AsyncGenerator[GenerationEvent, None]) -> AsyncIterator[str]:
    try:
        async for event in events:
            yield GenerationStreamEvent.from_event(event).to_sse()
    except BlogGenerationError as exc:
        logger.warning("Streamed blog generation failed: %s", exc.code.value)
        yield GenerationStreamEvent(type="error", code=exc.code.value, error=str(exc)).to_sse()
    finally:
        await events.aclose()


@router.post("/blogs/generate/stream", responses=ERROR_RESPONSES)
async def stream_blog_generation(
    payload: BlogGenerationRequest,
    owner_id: str | None = Depends(get_owner_id),
    generator: BlogGeneratorService = Depends(get_blog_generator),
) -> StreamingResponse:
    """Stream live previews of the blog, then the stored blog or the failure."""
    events = await generator.start(payload.to_request(), owner_id)
    return StreamingResponse(
        _event_stream(events),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
