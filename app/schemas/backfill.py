"""Backfill schemas for request/response serialization."""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseSchema


class BackfillStatus(str, Enum):
    """Per-session outcome of a backfill run."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DRY_RUN_UPDATE = "dry_run_update"
    SKIPPED_NO_TRANSCRIPT = "skipped_no_transcript"
    MESSAGE_FETCH_ERROR = "message_fetch_error"
    GEMINI_ERROR = "gemini_error"
    UPDATE_ERROR = "update_error"


class BackfillRequest(BaseSchema):
    """Operator request for a backfill run."""

    limit: int | None = Field(None, description="Sessions to scan, newest first")
    dry_run: bool = Field(False, alias="dryRun")

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, v):
        # Anything that is not a number falls back to the default limit
        if v is None or isinstance(v, bool):
            return None
        try:
            return int(float(v))
        except (TypeError, ValueError):
            return None


class BackfillItem(BaseSchema):
    """Result for one session."""

    session_id: UUID
    status: BackfillStatus
    error: str | None = None
    next: dict[str, Any] | None = None


class BackfillResponse(BaseSchema):
    """Aggregated backfill report."""

    dry_run: bool = Field(..., alias="dryRun")
    limit: int
    scanned: int
    updated: int
    results: list[BackfillItem] = Field(default_factory=list)
