"""Session metadata API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import enforce_summary_rate_limit, get_current_user, get_db
from app.domains.session_meta.service import SessionMetaService
from app.schemas.session_meta import (
    SessionMetaRequest,
    SessionMetaResponse,
    SessionMetaStateResponse,
    SessionTitleRequest,
    SessionTitleResponse,
)
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["session-meta"])


@router.post(
    "/session-meta",
    response_model=SessionMetaResponse,
    dependencies=[Depends(enforce_summary_rate_limit)],
)
async def generate_session_meta(
    meta_request: SessionMetaRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Refresh title, risk level and summary of a session when its triggers fire.

    Args:
        meta_request: Session id plus optional client-side transcript
        current_user: Owning student or linked parent
        db: Database session

    Returns:
        The session metadata after this run, ``skipped`` when nothing was due
    """
    service = SessionMetaService(db)
    return await service.generate_metadata(meta_request, current_user)


@router.post(
    "/session-title",
    response_model=SessionTitleResponse,
    dependencies=[Depends(enforce_summary_rate_limit)],
)
async def generate_session_title(
    title_request: SessionTitleRequest = Body(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Generate a title only; frozen titles are returned unchanged."""
    service = SessionMetaService(db)
    return await service.generate_title(title_request, current_user)


@router.get("/session-meta/{session_id}", response_model=SessionMetaStateResponse)
async def get_session_meta(
    session_id: UUID = Path(..., description="Chat session ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = SessionMetaService(db)
    return await service.get_metadata(session_id, current_user)
