"""Session metadata schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from .base import BaseSchema

RiskLevelValue = Literal["stable", "normal", "caution"]


class PipelineOutcome(str, Enum):
    """Outcome of a run. Failures surface as errors and are marked on the session."""

    SKIPPED = "skipped"
    COMPLETED = "completed"


class SessionMetaRequest(BaseSchema):
    """Fast-path request: refresh title, risk level and summary of a session."""

    session_id: UUID = Field(..., alias="sessionId")
    title: str | None = Field(None, max_length=255, description="Title currently shown by the client")
    first_message: str | None = Field(None, alias="firstMessage", max_length=10000)
    transcript: list[Any] | None = Field(
        None, description="Client-side turns, used only while no turn is stored yet"
    )


class SessionMetaResponse(BaseSchema):
    """Fast-path response."""

    session_id: UUID = Field(..., alias="sessionId")
    title: str | None = None
    title_source: str | None = None
    risk_level: RiskLevelValue
    summary: str | None = None
    reason: str | None = None
    topic_tags: list[str] = Field(default_factory=list)
    skipped: bool
    outcome: PipelineOutcome
    message_count: int | None = Field(None, alias="messageCount")
    persisted: bool = True
    warning: str | None = None


class SessionTitleRequest(BaseSchema):
    """Title-only request."""

    session_id: UUID = Field(..., alias="sessionId")
    first_message: str = Field(..., alias="firstMessage", min_length=1, max_length=10000)


class SessionTitleResponse(BaseSchema):
    """Title-only response."""

    title: str
    title_source: str
    skipped: bool
    persisted: bool = True
    warning: str | None = None


class SessionMetaStateResponse(BaseSchema):
    """Stored metadata of a session, for dashboards polling it."""

    session_id: UUID = Field(..., alias="sessionId")
    title: str
    title_source: str
    title_updated_at: datetime | None = None
    summary: str | None = None
    summary_updated_at: datetime | None = None
    topic_tags: list[str] = Field(default_factory=list)
    risk_level: RiskLevelValue
    last_activity_at: datetime | None = None
    message_count: int = Field(0, alias="messageCount")
    meta_error_at: datetime | None = Field(None, description="Last failed refresh, null once a run succeeds")
    meta_error_code: str | None = None
