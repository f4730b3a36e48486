# ruff: noqa: D107
"""Chat session exceptions."""

from typing import Any

from .base import BaseAppException, NotFoundError


class SessionNotFoundError(NotFoundError):
    """Raised when a chat session does not exist."""

    def __init__(self, message: str = "Session not found"):
        super().__init__(message=message, error_code="SESSION_NOT_FOUND")


class SessionAccessDeniedError(BaseAppException):
    """Raised when the caller is neither the owning student nor a linked parent."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message=message, status_code=403, error_code="SESSION_FORBIDDEN")


class InvalidSessionRequestError(BaseAppException):
    """Raised when a session request is missing required input."""

    def __init__(self, message: str = "Invalid session request"):
        super().__init__(message=message, status_code=400, error_code="INVALID_SESSION_REQUEST")


class SummaryGenerationError(BaseAppException):
    """Raised when the LLM call for a summary fails; the caller may retry."""

    def __init__(self, message: str = "Failed to generate session summary", details: dict[str, Any] | None = None):
        self.retryable = True
        super().__init__(message=message, status_code=502, error_code="SUMMARY_GENERATION_FAILED", details=details)


class SessionPersistenceError(BaseAppException):
    """Raised when session metadata could not be written.

    ``result`` holds the computed metadata so callers can still show it.
    """

    def __init__(self, message: str = "Failed to persist session metadata", result: Any = None):
        self.retryable = True
        self.result = result
        super().__init__(message=message, status_code=503, error_code="SESSION_PERSISTENCE_FAILED")


class TranscriptUnavailableError(BaseAppException):
    """Raised when the stored turns of a session cannot be read."""

    def __init__(self, message: str = "Failed to load session messages"):
        self.retryable = True
        super().__init__(message=message, status_code=503, error_code="TRANSCRIPT_UNAVAILABLE")
