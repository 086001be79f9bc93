from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from services.errors import ErrorCode, GenerationOutcomeError, ResolutionError

logger = logging.getLogger(__name__)

DEFAULT_PARTIAL_CONTENT_THRESHOLD = 50
REQUIRED_FIELDS = ("title", "meta_description", "content")

_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")

# Order matters: paragraph breaks first so they are not split into two single breaks.
_BODY_ESCAPES = (
    ("\\n\\n", "\n\n"),
    ("\\n", "\n"),
    ("\\t", "\t"),
)


@dataclass(frozen=True)
class StructuredDocument:
    title: str
    meta_description: str
    keywords: list[str]
    content: str


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned


def normalize_body(content: str) -> str:
    for escaped, literal in _BODY_ESCAPES:
        content = content.replace(escaped, literal)
    return content


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return payload if isinstance(payload, dict) else None


def extract_payload(raw_text: str) -> dict[str, Any]:
    """Recover the JSON object from a finished buffer.

    Tries the fence-stripped text as-is, then the span from the first ``{``
    to the last ``}``.
    """
    cleaned = strip_code_fence(raw_text)
    payload = _load_object(cleaned)
    if payload is not None:
        return payload

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        payload = _load_object(cleaned[start : end + 1])
        if payload is not None:
            logger.debug("Recovered blog JSON embedded at offset %s", start)
            return payload

    raise ResolutionError(
        ErrorCode.unparseable_result,
        "Generated content is not valid JSON.",
        raw_length=len(raw_text),
    )


def resolve_document(raw_text: str) -> StructuredDocument:
    """Turn a completed stream buffer into a blog document.

    Pure: the same buffer always yields an equal document or the same error.
    """
    payload = extract_payload(raw_text)

    missing = [
        name
        for name in REQUIRED_FIELDS
        if not (isinstance(payload.get(name), str) and payload[name].strip())
    ]
    if missing:
        raise ResolutionError(
            ErrorCode.incomplete_result,
            f"Generated blog is missing required fields: {', '.join(missing)}.",
            raw_length=len(raw_text),
        )

    keywords = payload.get("keywords")
    if keywords is None:
        keywords = []
    elif not isinstance(keywords, list):
        raise ResolutionError(
            ErrorCode.incomplete_result,
            "Generated blog keywords are not a list.",
            raw_length=len(raw_text),
        )

    return StructuredDocument(
        title=payload["title"],
        meta_description=payload["meta_description"],
        keywords=[item for item in keywords if isinstance(item, str)],
        content=normalize_body(payload["content"]),
    )


def collapse_failure(
    raw_text: str,
    error: ResolutionError,
    threshold: int = DEFAULT_PARTIAL_CONTENT_THRESHOLD,
) -> GenerationOutcomeError:
    """Map a resolver failure onto what the caller is told."""
    if len(raw_text) > threshold:
        return GenerationOutcomeError(
            ErrorCode.partial_content_unsaved,
            "Blog content generated but may have formatting issues. Try generating again.",
            stage=error.code,
        )
    return GenerationOutcomeError(
        ErrorCode.generation_empty,
        "The blog could not be generated. Please try again.",
        stage=error.code,
    )
