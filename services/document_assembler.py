from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class DocumentPreview:
    """Best-effort view of a buffer that already parses as a JSON object."""

    title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = field(default_factory=list)
    content: str | None = None


@dataclass(frozen=True)
class TextPreview:
    """The raw buffer, shown verbatim while it is not yet valid JSON."""

    text: str


Preview = Union[DocumentPreview, TextPreview]


def _text_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def try_parse_preview(text: str) -> Preview:
    """Parse ``text`` strictly as a blog object, falling back to plain text.

    Never raises: an incomplete buffer is the normal state mid-stream.
    """
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        return TextPreview(text=text)
    if not isinstance(payload, dict):
        return TextPreview(text=text)

    keywords = payload.get("keywords")
    if not isinstance(keywords, list):
        keywords = []
    return DocumentPreview(
        title=_text_or_none(payload.get("title")),
        meta_description=_text_or_none(payload.get("meta_description")),
        keywords=[item for item in keywords if isinstance(item, str)],
        content=_text_or_none(payload.get("content")),
    )


class DocumentAssembler:
    """Accumulate the deltas of a single generation attempt.

    An assembler is owned by exactly one attempt and is dropped with it; the
    buffer only ever grows.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def raw_text(self) -> str:
        return self._buffer

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, delta: str) -> Preview:
        self._buffer += delta
        return try_parse_preview(self._buffer)
