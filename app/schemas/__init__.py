"""Schemas package initialization."""

from .backfill import BackfillItem, BackfillRequest, BackfillResponse, BackfillStatus
from .base import BaseSchema, ErrorResponse
from .chat import ChatRequest, ChatResponse
from .session_meta import (
    PipelineOutcome,
    SessionMetaRequest,
    SessionMetaResponse,
    SessionMetaStateResponse,
    SessionTitleRequest,
    SessionTitleResponse,
)

__all__ = [
    "BaseSchema",
    "ErrorResponse",
    "BackfillItem",
    "BackfillRequest",
    "BackfillResponse",
    "BackfillStatus",
    "ChatRequest",
    "ChatResponse",
    "PipelineOutcome",
    "SessionMetaRequest",
    "SessionMetaResponse",
    "SessionMetaStateResponse",
    "SessionTitleRequest",
    "SessionTitleResponse",
]
