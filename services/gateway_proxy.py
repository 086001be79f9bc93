from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from services.errors import ErrorCode, GatewayError

if TYPE_CHECKING:
    from openai._response import AsyncAPIResponse

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a professional SEO blog writer. Generate well-structured, engaging blog posts optimized for search engines.

CRITICAL INSTRUCTIONS:
1. Return ONLY valid JSON with NO markdown code blocks
2. Do NOT use ```json or any backticks
3. The content field must use \\n\\n for paragraph breaks (escaped newlines in JSON)
4. Ensure all quotes inside strings are properly escaped

Return this EXACT JSON structure:
{{
  "title": "Engaging Title with Emoji 🚀",
  "meta_description": "SEO description under 160 characters",
  "keywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"],
  "content": "Introduction paragraph here.\\n\\n## Main Heading 📊\\n\\nParagraph content here.\\n\\n### Subheading\\n\\nMore content with **bold text** for emphasis.\\n\\n## Another Section 💡\\n\\nFinal content here."
}}

Content must follow this structure:
- Opening paragraph introducing the topic
- ## Main Section Heading with Emoji
- Regular paragraphs under each heading
- ### Subheadings for detailed points
- **Bold** text for key points
- Separate all paragraphs and sections with \\n\\n
- Add relevant emojis to all headings (##, ###)
- Write {word_count} words in {tone} tone
- End with strong conclusion and call-to-action""".strip()

PROMPT_TEMPLATE = 'Write a {tone} blog post about "{topic}". Target word count: {word_count} words.'


class Tone(str, Enum):
    professional = "professional"
    casual = "casual"
    informative = "informative"
    creative = "creative"
    persuasive = "persuasive"


@dataclass(frozen=True)
class GenerationRequest:
    topic: str
    tone: Tone = Tone.professional
    word_count: int = 800


class GatewayStream:
    """An open upstream completion stream.

    The body is exposed exactly as the gateway sent it. Closing the stream
    releases the upstream connection; it is safe to close more than once.
    """

    def __init__(self, response: AsyncAPIResponse, exit_stack: AsyncExitStack) -> None:
        self._response = response
        self._exit_stack = exit_stack
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.iter_bytes():
                if chunk:
                    yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._exit_stack.aclose()

    async def __aenter__(self) -> GatewayStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class GatewayProxy:
    """Forward blog generation requests to the model gateway in streaming mode."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str,
        model: str = "google/gemini-2.5-flash",
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=httpx.Timeout(timeout, connect=10.0),
                max_retries=0,
                http_client=http_client,
            )

    @staticmethod
    def build_messages(request: GenerationRequest) -> list[dict[str, str]]:
        system_prompt = SYSTEM_PROMPT.format(
            tone=request.tone.value,
            word_count=request.word_count,
        )
        prompt = PROMPT_TEMPLATE.format(
            tone=request.tone.value,
            topic=request.topic,
            word_count=request.word_count,
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

    async def open_stream(self, request: GenerationRequest) -> GatewayStream:
        if self._client is None:
            logger.error("Gateway API key is not configured")
            raise GatewayError(ErrorCode.config_missing, "AI service not configured")

        logger.info(
            "Generating blog: tone=%s word_count=%s topic_chars=%s",
            request.tone.value,
            request.word_count,
            len(request.topic),
        )
        exit_stack = AsyncExitStack()
        try:
            response = await exit_stack.enter_async_context(
                self._client.chat.completions.with_streaming_response.create(
                    model=self._model,
                    messages=self.build_messages(request),
                    stream=True,
                )
            )
        except APIStatusError as exc:
            await exit_stack.aclose()
            raise self._translate_status_error(exc) from exc
        except APIConnectionError as exc:
            await exit_stack.aclose()
            logger.warning("AI gateway unreachable: %s", exc)
            raise GatewayError(ErrorCode.upstream_error, "AI gateway is unreachable.") from exc

        logger.debug("Streaming AI response (status=%s)", response.status_code)
        return GatewayStream(response, exit_stack)

    @staticmethod
    def _translate_status_error(exc: APIStatusError) -> GatewayError:
        status = exc.status_code
        logger.warning("AI gateway error: %s %s", status, exc.message)
        if status == 429:
            return GatewayError(
                ErrorCode.rate_limited,
                "Rate limit exceeded. Please try again in a moment.",
                upstream_status=status,
                retry_after=exc.response.headers.get("retry-after"),
            )
        if status == 402:
            return GatewayError(
                ErrorCode.quota_exhausted,
                "AI credits depleted. Please add credits to continue.",
                upstream_status=status,
            )
        return GatewayError(
            ErrorCode.upstream_error,
            f"AI gateway error: {status}",
            upstream_status=status,
        )
