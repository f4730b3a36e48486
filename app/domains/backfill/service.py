"""Backfill service: recompute metadata for existing sessions in bulk."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.session_meta.pipeline import PipelineOptions, PipelineResult, SessionMetadataPipeline
from app.domains.session_meta.writer import SessionMetadataWriter
from app.exceptions.ai import AIServiceError
from app.exceptions.session import (
    SessionPersistenceError,
    SummaryGenerationError,
    TranscriptUnavailableError,
)
from app.schemas.backfill import BackfillItem, BackfillResponse, BackfillStatus
from app.services.gemini_client import GeminiClient
from models.chat_session import ChatSession

logger = logging.getLogger(__name__)

COUNTED_AS_UPDATED = frozenset({BackfillStatus.UPDATED, BackfillStatus.DRY_RUN_UPDATE})


def clamp_limit(limit: int | None) -> int:
    """Default when missing, then bound to ``[1, backfill_max_limit]``."""
    if limit is None:
        limit = settings.backfill_default_limit
    return max(1, min(settings.backfill_max_limit, limit))


class BackfillService:
    """Run the metadata pipeline over the newest sessions.

    Each session is isolated: a failure is recorded in its result item, the
    transaction is rolled back and the batch moves on.
    """

    def __init__(self, db: AsyncSession, gemini_client: GeminiClient | None = None):
        self.db = db
        self.gemini_client = gemini_client

    async def list_session_ids(self, limit: int) -> list[UUID]:
        result = await self.db.execute(
            select(ChatSession.id).order_by(ChatSession.started_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def run(self, limit: int | None = None, dry_run: bool = False) -> BackfillResponse:
        limit = clamp_limit(limit)
        session_ids = await self.list_session_ids(limit)
        logger.info(f"Backfill started: {len(session_ids)} sessions (limit={limit}, dry_run={dry_run})")

        pipeline = SessionMetadataPipeline(
            self.db, PipelineOptions.backfill(dry_run=dry_run), gemini_client=self.gemini_client
        )
        results = [await self.process_session(pipeline, session_id) for session_id in session_ids]

        updated = sum(1 for item in results if item.status in COUNTED_AS_UPDATED)
        logger.info(f"Backfill finished: scanned={len(results)} updated={updated}")
        return BackfillResponse(
            dry_run=dry_run,
            limit=limit,
            scanned=len(results),
            updated=updated,
            results=results,
        )

    async def process_session(self, pipeline: SessionMetadataPipeline, session_id: UUID) -> BackfillItem:
        try:
            chat_session = await self.db.get(ChatSession, session_id)
            if chat_session is None:
                return BackfillItem(session_id=session_id, status=BackfillStatus.SKIPPED_NO_TRANSCRIPT)
            result = await pipeline.run(chat_session)
        except TranscriptUnavailableError as e:
            return await self._failed(pipeline, session_id, BackfillStatus.MESSAGE_FETCH_ERROR, e.message)
        except (SummaryGenerationError, AIServiceError) as e:
            return await self._failed(pipeline, session_id, BackfillStatus.GEMINI_ERROR, e.message)
        except SessionPersistenceError as e:
            return await self._failed(pipeline, session_id, BackfillStatus.UPDATE_ERROR, e.message)
        except SQLAlchemyError as e:
            return await self._failed(pipeline, session_id, BackfillStatus.UPDATE_ERROR, str(e))

        return BackfillItem(
            session_id=session_id,
            status=self._status_for(result, pipeline.options.dry_run),
            next=result.next_state() if result.changed else None,
        )

    @staticmethod
    def _status_for(result: PipelineResult, dry_run: bool) -> BackfillStatus:
        if result.skipped:
            if result.skip_reason == "no_transcript":
                return BackfillStatus.SKIPPED_NO_TRANSCRIPT
            return BackfillStatus.UNCHANGED
        if not result.changed:
            return BackfillStatus.UNCHANGED
        if dry_run:
            return BackfillStatus.DRY_RUN_UPDATE
        return BackfillStatus.UPDATED

    async def _failed(
        self, pipeline: SessionMetadataPipeline, session_id: UUID, status: BackfillStatus, error: str
    ) -> BackfillItem:
        logger.error(f"Backfill of session {session_id} failed ({status.value}): {error}")
        await self.db.rollback()
        if not pipeline.options.dry_run:
            await SessionMetadataWriter(self.db).record_failure(session_id, status.value)
        return BackfillItem(session_id=session_id, status=status, error=error)
