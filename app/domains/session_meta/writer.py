"""Persist derived session metadata with guarded, single-statement updates."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.exceptions.session import SessionPersistenceError
from models.base import utcnow
from models.chat_session import FROZEN_TITLE_SOURCES, ChatSession, RiskLevel

logger = logging.getLogger(__name__)


@dataclass
class MetadataUpdate:
    """Fields to write; ``None`` leaves the column untouched."""

    title: str | None = None
    title_source: str | None = None
    summary: str | None = None
    risk_level: str | None = None
    risk_reason: str | None = None
    topic_tags: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        return self.title is None and self.summary is None and self.risk_level is None


@dataclass(frozen=True)
class WriteOutcome:
    title_written: bool = False
    summary_written: bool = False
    risk_written: bool = False


class SessionMetadataWriter:
    """Write title, summary and risk level for one session.

    The title update only matches rows whose title is not frozen, so a title
    set by the model or the user between read and write is never replaced.
    With ``caution_sticky`` a stored caution level survives any lower value
    in the same statement.
    """

    def __init__(self, db: AsyncSession, caution_sticky: bool | None = None):
        self.db = db
        self.caution_sticky = settings.risk_caution_sticky if caution_sticky is None else caution_sticky

    def _risk_value(self, risk_level: str):
        if not self.caution_sticky or risk_level == RiskLevel.CAUTION.value:
            return risk_level
        return case(
            (ChatSession.risk_level == RiskLevel.CAUTION.value, RiskLevel.CAUTION.value),
            else_=risk_level,
        )

    async def _write_title(self, chat_session: ChatSession, title: str, source: str) -> bool:
        result = await self.db.execute(
            update(ChatSession)
            .where(
                ChatSession.id == chat_session.id,
                ChatSession.title_source.not_in(FROZEN_TITLE_SOURCES),
            )
            .values(title=title, title_source=source, title_updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def _write_summary(self, chat_session: ChatSession, changes: MetadataUpdate) -> None:
        values = {}
        if changes.summary is not None:
            values["summary"] = changes.summary
            values["summary_updated_at"] = utcnow()
            if changes.topic_tags is not None:
                values["topic_tags"] = changes.topic_tags
        if changes.risk_level is not None:
            values["risk_level"] = self._risk_value(changes.risk_level)
            values["risk_reason"] = changes.risk_reason
        await self.db.execute(
            update(ChatSession)
            .where(ChatSession.id == chat_session.id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def _clear_failure(self, chat_session: ChatSession) -> None:
        await self.db.execute(
            update(ChatSession)
            .where(ChatSession.id == chat_session.id)
            .values(meta_error_at=None, meta_error_code=None)
            .execution_options(synchronize_session=False)
        )

    async def apply(self, chat_session: ChatSession, changes: MetadataUpdate) -> WriteOutcome:
        """Write ``changes`` in one transaction and refresh ``chat_session``."""
        if changes.is_empty and chat_session.meta_error_at is None:
            return WriteOutcome()

        session_id = chat_session.id
        try:
            title_written = False
            if changes.title is not None and changes.title_source is not None:
                title_written = await self._write_title(chat_session, changes.title, changes.title_source)
                if not title_written:
                    logger.info(f"Title of session {chat_session.id} is frozen, keeping stored title")

            if changes.summary is not None or changes.risk_level is not None:
                await self._write_summary(chat_session, changes)

            if chat_session.meta_error_at is not None:
                await self._clear_failure(chat_session)

            await self.db.commit()
            await self.db.refresh(chat_session)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to persist metadata for session {session_id}: {str(e)}")
            raise SessionPersistenceError() from e

        return WriteOutcome(
            title_written=title_written,
            summary_written=changes.summary is not None,
            risk_written=changes.risk_level is not None,
        )

    async def record_failure(self, session_id: UUID, error_code: str) -> bool:
        """Mark the session so pollers can tell a failed refresh from one not run yet.

        Called after the failed run was rolled back. Returns False when even
        the marker cannot be written; the failure is logged either way.
        """
        try:
            await self.db.execute(
                update(ChatSession)
                .where(ChatSession.id == session_id)
                .values(meta_error_at=utcnow(), meta_error_code=error_code[:64])
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to record metadata failure for session {session_id}: {str(e)}")
            return False
        return True
