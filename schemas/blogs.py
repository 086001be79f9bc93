from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from services.blog_generator import GenerationCompleted, GenerationEvent
from services.document_assembler import DocumentPreview
from services.gateway_proxy import GenerationRequest, Tone


class BlogGenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    topic: str = Field(min_length=1, max_length=300)
    tone: Tone = Tone.professional
    word_count: int = Field(default=800, ge=300, le=2000, alias="wordCount")

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(topic=self.topic, tone=self.tone, word_count=self.word_count)


class BlogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str | None = None
    topic: str
    tone: str
    requested_word_count: int
    title: str
    meta_description: str
    keywords: list[str]
    content: str
    word_count: int
    created_at: datetime


class ErrorResponse(BaseModel):
    error: str
    code: str | None = None


class PreviewPayload(BaseModel):
    kind: Literal["document", "text"]
    buffered_chars: int
    title: str | None = None
    meta_description: str | None = None
    keywords: list[str] | None = None
    content: str | None = None
    text: str | None = None


class GenerationStreamEvent(BaseModel):
    type: Literal["preview", "complete", "error"]
    preview: PreviewPayload | None = None
    blog: BlogResponse | None = None
    code: str | None = None
    error: str | None = None

    @classmethod
    def from_event(cls, event: GenerationEvent) -> GenerationStreamEvent:
        if isinstance(event, GenerationCompleted):
            return cls(type="complete", blog=BlogResponse.model_validate(event.blog))

        preview = event.preview
        if isinstance(preview, DocumentPreview):
            payload = PreviewPayload(
                kind="document",
                buffered_chars=event.buffered_chars,
                title=preview.title,
                meta_description=preview.meta_description,
                keywords=preview.keywords,
                content=preview.content,
            )
        else:
            payload = PreviewPayload(kind="text", buffered_chars=event.buffered_chars, text=preview.text)
        return cls(type="preview", preview=payload)

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"
