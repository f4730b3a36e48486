"""Backfill API controller for operators."""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_db, require_admin_token
from app.domains.backfill.service import BackfillService
from app.schemas.backfill import BackfillRequest, BackfillResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_token)],
)


@router.post("/backfill-chat-metadata", response_model=BackfillResponse)
async def backfill_chat_metadata(
    backfill_request: BackfillRequest | None = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """Recompute title, risk level and summary for the newest sessions.

    Args:
        backfill_request: ``limit`` (clamped to the configured maximum) and ``dryRun``
        db: Database session

    Returns:
        Per-session statuses plus scanned/updated counters
    """
    backfill_request = backfill_request or BackfillRequest()
    service = BackfillService(db)
    return await service.run(limit=backfill_request.limit, dry_run=backfill_request.dry_run)
