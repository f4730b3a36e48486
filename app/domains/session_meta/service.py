"""Session metadata service layer."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import AsyncSessionLocal
from app.domains.user.service import UserService
from app.exceptions.base import BaseAppException
from app.exceptions.session import (
    InvalidSessionRequestError,
    SessionAccessDeniedError,
    SessionPersistenceError,
    SummaryGenerationError,
    TranscriptUnavailableError,
)
from app.schemas.session_meta import (
    SessionMetaRequest,
    SessionMetaResponse,
    SessionMetaStateResponse,
    SessionTitleRequest,
    SessionTitleResponse,
)
from app.services.gemini_client import GeminiClient
from models.chat_session import ChatSession
from models.user import User

from .loader import TranscriptLoader
from .pipeline import PipelineOptions, PipelineResult, SessionMetadataPipeline
from .writer import SessionMetadataWriter

logger = logging.getLogger(__name__)

PERSISTENCE_WARNING = "Metadata was generated but could not be saved. Please retry."


class SessionMetaService:
    """Entry points for the request-time metadata endpoints."""

    def __init__(self, db: AsyncSession, gemini_client: GeminiClient | None = None):
        self.db = db
        self.gemini_client = gemini_client
        self.loader = TranscriptLoader(db)

    async def get_authorized_session(self, session_id: UUID, user: User) -> ChatSession:
        """Return the session if ``user`` may act on it.

        Raises:
            SessionNotFoundError: If the session does not exist
            SessionAccessDeniedError: If the user is not the student or a linked parent
        """
        chat_session = await self.loader.get_session(session_id)
        if not await UserService(self.db).can_access_student(user, chat_session.student_id):
            logger.warning(f"User {user.id} denied access to session {session_id}")
            raise SessionAccessDeniedError()
        return chat_session

    async def _run(
        self,
        chat_session: ChatSession,
        options: PipelineOptions,
        **kwargs,
    ) -> tuple[PipelineResult, str | None]:
        pipeline = SessionMetadataPipeline(self.db, options, gemini_client=self.gemini_client)
        session_id = chat_session.id
        try:
            return await pipeline.run(chat_session, **kwargs), None
        except SessionPersistenceError as e:
            if e.result is None:
                raise
            result = e.result
            result.persisted = False
            return result, PERSISTENCE_WARNING
        except (SummaryGenerationError, TranscriptUnavailableError) as e:
            await self.db.rollback()
            await SessionMetadataWriter(self.db).record_failure(session_id, e.error_code)
            raise

    async def generate_metadata(self, request: SessionMetaRequest, user: User) -> SessionMetaResponse:
        chat_session = await self.get_authorized_session(request.session_id, user)
        if request.title and request.title != chat_session.title:
            logger.debug(f"Client title for session {chat_session.id} differs from stored title")

        result, warning = await self._run(
            chat_session,
            PipelineOptions.fast(),
            transcript_payload=request.transcript,
            first_message=request.first_message,
        )
        return SessionMetaResponse(
            session_id=result.session_id,
            title=result.title,
            title_source=result.title_source,
            risk_level=result.risk_level,
            summary=result.summary,
            reason=result.reason,
            topic_tags=result.topic_tags,
            skipped=result.skipped,
            outcome=result.outcome,
            message_count=result.message_count,
            persisted=result.persisted,
            warning=warning,
        )

    async def generate_title(self, request: SessionTitleRequest, user: User) -> SessionTitleResponse:
        if not request.first_message.strip():
            raise InvalidSessionRequestError("firstMessage is required")
        chat_session = await self.get_authorized_session(request.session_id, user)
        result, warning = await self._run(
            chat_session,
            PipelineOptions.title_only(),
            first_message=request.first_message,
        )
        return SessionTitleResponse(
            title=result.title,
            title_source=result.title_source,
            skipped=result.skipped,
            persisted=result.persisted,
            warning=warning,
        )

    async def get_metadata(self, session_id: UUID, user: User) -> SessionMetaStateResponse:
        chat_session = await self.get_authorized_session(session_id, user)
        message_count = await self.loader.count_messages(chat_session.id)
        return SessionMetaStateResponse(
            session_id=chat_session.id,
            title=chat_session.title,
            title_source=chat_session.title_source,
            title_updated_at=chat_session.title_updated_at,
            summary=chat_session.summary,
            summary_updated_at=chat_session.summary_updated_at,
            topic_tags=chat_session.topic_tags or [],
            risk_level=chat_session.risk_level,
            last_activity_at=chat_session.last_activity_at,
            message_count=message_count,
            meta_error_at=chat_session.meta_error_at,
            meta_error_code=chat_session.meta_error_code,
        )


async def refresh_session_metadata(session_id: UUID, gemini_client: GeminiClient | None = None) -> None:
    """Run the fast-path pipeline outside the request, with its own DB session."""
    async with AsyncSessionLocal() as db:
        try:
            chat_session = await TranscriptLoader(db).get_session(session_id)
            result = await SessionMetadataPipeline(
                db, PipelineOptions.fast(), gemini_client=gemini_client
            ).run(chat_session)
            logger.info(
                f"Background metadata for session {session_id}: {result.outcome.value}"
                f" (changed={result.changed})"
            )
        except BaseAppException as e:
            logger.error(f"Background metadata failed for session {session_id}: {e.message}")
            await db.rollback()
            await SessionMetadataWriter(db).record_failure(session_id, e.error_code)
