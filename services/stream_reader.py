from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any, Union

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class StreamDone:
    pass


StreamEvent = Union[ContentDelta, StreamDone]


def extract_delta(envelope: Any) -> str | None:
    """Return ``choices[0].delta.content`` when it resolves to non-empty text."""
    if not isinstance(envelope, dict):
        return None
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class SSEDeltaDecoder:
    """Turn raw event-stream bytes into content deltas, one chunk at a time.

    Multi-byte characters split across chunks are carried over by the
    incremental decoder, and the last unterminated line is held back until
    the next chunk completes it. Lines that are not ``data: `` payloads, or
    whose payload is not valid JSON, are dropped.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""
        self.finished = False

    def feed(self, chunk: bytes) -> list[str]:
        if self.finished:
            return []
        text = self._pending + self._decoder.decode(chunk)
        lines = text.split("\n")
        self._pending = lines.pop()
        return self._consume(lines)

    def flush(self) -> list[str]:
        if self.finished:
            return []
        tail = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return self._consume([tail])

    def _consume(self, lines: list[str]) -> list[str]:
        deltas: list[str] = []
        for line in lines:
            if self.finished:
                break
            delta = self._parse_line(line.rstrip("\r"))
            if delta:
                deltas.append(delta)
        return deltas

    def _parse_line(self, line: str) -> str | None:
        if not line.startswith(DATA_PREFIX):
            return None
        payload = line[len(DATA_PREFIX):]
        if payload.strip() == DONE_SENTINEL:
            self.finished = True
            return None
        try:
            envelope = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("Skipping unparseable stream line (%s chars)", len(payload))
            return None
        return extract_delta(envelope)


async def read_content_deltas(source: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Yield a ContentDelta per fragment, then a single StreamDone."""
    decoder = SSEDeltaDecoder()
    async for chunk in source:
        for text in decoder.feed(chunk):
            yield ContentDelta(text)
        if decoder.finished:
            break
    for text in decoder.flush():
        yield ContentDelta(text)
    yield StreamDone()
