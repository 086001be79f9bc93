from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    config_missing = "CONFIG_MISSING"
    rate_limited = "RATE_LIMITED"
    quota_exhausted = "QUOTA_EXHAUSTED"
    upstream_error = "UPSTREAM_ERROR"
    unparseable_result = "UNPARSEABLE_RESULT"
    incomplete_result = "INCOMPLETE_RESULT"
    partial_content_unsaved = "PARTIAL_CONTENT_UNSAVED"
    generation_empty = "GENERATION_EMPTY"
    persistence_error = "PERSISTENCE_ERROR"


STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.config_missing: 500,
    ErrorCode.rate_limited: 429,
    ErrorCode.quota_exhausted: 402,
    ErrorCode.upstream_error: 500,
    ErrorCode.unparseable_result: 502,
    ErrorCode.incomplete_result: 502,
    ErrorCode.partial_content_unsaved: 502,
    ErrorCode.generation_empty: 502,
    ErrorCode.persistence_error: 500,
}


class BlogGenerationError(RuntimeError):
    """Base class for every failure a generation attempt can end with."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE[self.code]


class GatewayError(BlogGenerationError):
    """Raised when the model gateway cannot be reached or rejects the request."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        upstream_status: int | None = None,
        retry_after: str | None = None,
    ) -> None:
        super().__init__(code, message)
        self.upstream_status = upstream_status
        self.retry_after = retry_after


class ResolutionError(BlogGenerationError):
    """Raised when a finished buffer cannot be turned into a blog document.

    The code tells which recovery stage gave up; it is diagnostic only and is
    collapsed into a GenerationOutcomeError before it reaches a caller.
    """

    def __init__(self, code: ErrorCode, message: str, raw_length: int) -> None:
        super().__init__(code, message)
        self.raw_length = raw_length


class GenerationOutcomeError(BlogGenerationError):
    """Caller-visible failure of a generation that produced no usable document."""

    def __init__(self, code: ErrorCode, message: str, stage: ErrorCode) -> None:
        super().__init__(code, message)
        self.stage = stage


class PersistenceError(BlogGenerationError):
    """Raised when a resolved blog could not be stored."""

    def __init__(self, message: str = "Blog generated but could not be saved.") -> None:
        super().__init__(ErrorCode.persistence_error, message)
