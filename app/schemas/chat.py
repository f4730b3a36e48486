"""Chat schemas for request/response serialization."""

from __future__ import annotations

from uuid import UUID

from pydantic import Field

from .base import BaseSchema


class ChatRequest(BaseSchema):
    """Schema for a student chat turn."""

    session_id: UUID | None = Field(None, alias="sessionId", description="Existing session, null for new")
    message: str = Field(..., min_length=1, max_length=4000, description="Student message")
    parent_style_prompt: str | None = Field(
        None, alias="parentStylePrompt", max_length=4000, description="Parent instruction block"
    )


class ChatResponse(BaseSchema):
    """Schema for the mentor reply."""

    session_id: UUID = Field(..., alias="sessionId")
    text: str
    target_len: int = Field(..., alias="targetLen")
    deep: bool
    safety_alert: bool = Field(False, alias="safetyAlert")
