"""Chat service layer with the AI mentor."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.user.service import UserService
from app.exceptions.base import AppPermissionError, ValidationError
from app.exceptions.session import SessionAccessDeniedError, SessionNotFoundError
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.gemini_client import GeminiClient
from app.shared.safety import SAFETY_ALERT_MESSAGE, find_danger_keywords
from models.base import utcnow
from models.chat_session import ChatSession
from models.message import Message, MessageRole
from models.safety_alert import SafetyAlert
from models.user import User, UserRole

from .prompts import build_system_instruction, plan_reply_length, shape_reply

logger = logging.getLogger(__name__)


class ChatService:
    """Service class for mentor chat turns using Google Gemini."""

    def __init__(self, db: AsyncSession, gemini_client: GeminiClient | None = None):
        """Initialize chat service with database session.

        Args:
            db: Async database session for data operations.
            gemini_client: Shared Gemini wrapper; created on first use when omitted.
        """
        self.db = db
        self._gemini = gemini_client

    @property
    def gemini(self) -> GeminiClient:
        if self._gemini is None:
            self._gemini = GeminiClient()
        return self._gemini

    async def send_message(self, request: ChatRequest, user: User) -> ChatResponse:
        """Store the student turn, get the mentor reply and store it.

        Args:
            request: Chat request with message and optional session ID
            user: The student sending the message

        Returns:
            ChatResponse with the reply and the length plan used

        Raises:
            AppPermissionError: If the user is not a student
            SessionNotFoundError / SessionAccessDeniedError: For a bad session ID
            AIServiceError: If Gemini fails; the student turn stays stored
        """
        if user.role != UserRole.STUDENT:
            raise AppPermissionError("Only students can chat with the mentor")

        question = request.message.strip()
        if not question:
            raise ValidationError("Message is empty")

        chat_session = await self._get_or_create_session(request.session_id, user)
        history = await self._get_history(chat_session.id)

        keywords = find_danger_keywords(question)
        try:
            self.db.add(
                Message(
                    session_id=chat_session.id,
                    student_id=user.id,
                    role=MessageRole.USER.value,
                    content=question,
                )
            )
            if keywords:
                await self._record_safety_alert(chat_session, user, keywords)
            chat_session.last_activity_at = utcnow()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to store student message: {str(e)}")
            raise

        plan = plan_reply_length(question)
        instruction = build_system_instruction(plan, request.parent_style_prompt)
        reply = await self.gemini.chat(history, question, system_instruction=instruction)
        reply = shape_reply(reply, plan)

        try:
            self.db.add(
                Message(
                    session_id=chat_session.id,
                    student_id=user.id,
                    role=MessageRole.MODEL.value,
                    content=reply,
                )
            )
            chat_session.last_activity_at = utcnow()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to store mentor reply: {str(e)}")
            raise

        return ChatResponse(
            session_id=chat_session.id,
            text=reply,
            target_len=plan.target_len,
            deep=plan.deep,
            safety_alert=bool(keywords),
        )

    async def _get_or_create_session(self, session_id: UUID | None, user: User) -> ChatSession:
        if session_id:
            chat_session = await self.db.get(ChatSession, session_id)
            if not chat_session:
                raise SessionNotFoundError()
            if not await UserService(self.db).can_access_student(user, chat_session.student_id):
                raise SessionAccessDeniedError()
            return chat_session

        chat_session = ChatSession(student_id=user.id)
        self.db.add(chat_session)
        await self.db.flush()
        logger.info(f"Created chat session {chat_session.id} for student {user.id}")
        return chat_session

    async def _get_history(self, session_id: UUID) -> list[dict[str, str]]:
        """Recent turns, oldest first, as Gemini chat history."""
        result = await self.db.execute(
            select(Message)
            .where(Message.session_id == session_id)
            .order_by(Message.created_at.desc())
            .limit(settings.transcript_window)
        )
        messages = list(reversed(result.scalars().all()))
        return [
            {"role": m.role, "content": m.content}
            for m in messages
            if m.role in (MessageRole.USER.value, MessageRole.MODEL.value)
        ]

    async def _record_safety_alert(self, chat_session: ChatSession, user: User, keywords: list[str]) -> None:
        logger.warning(f"Danger keywords detected in session {chat_session.id}")
        self.db.add(
            SafetyAlert(
                student_id=user.id,
                session_id=chat_session.id,
                message=SAFETY_ALERT_MESSAGE,
                matched_keywords=",".join(keywords)[:255],
            )
        )
