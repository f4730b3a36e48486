"""Load the recent turns of a chat session for prompting."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.exceptions.session import SessionNotFoundError, TranscriptUnavailableError
from models.chat_session import ChatSession
from models.message import Message, MessageRole

logger = logging.getLogger(__name__)

PROMPT_ROLES = (MessageRole.USER.value, MessageRole.MODEL.value)


@dataclass(frozen=True)
class TranscriptTurn:
    role: str
    content: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class Transcript:
    """Recent turns in chronological order plus counters from storage."""

    turns: list[TranscriptTurn]
    message_count: int
    last_activity_at: datetime | None

    @property
    def is_empty(self) -> bool:
        return not self.turns

    @property
    def has_user_turn(self) -> bool:
        return any(turn.role == MessageRole.USER.value for turn in self.turns)

    @property
    def first_user_message(self) -> str | None:
        for turn in self.turns:
            if turn.role == MessageRole.USER.value:
                return turn.content
        return None


class TranscriptLoader:
    """Read the last ``window`` turns of a session, oldest first."""

    def __init__(self, db: AsyncSession, window: int | None = None, content_cap: int | None = None):
        self.db = db
        self.window = window or settings.transcript_window
        self.content_cap = content_cap or settings.transcript_content_cap

    async def get_session(self, session_id: UUID) -> ChatSession:
        chat_session = await self.db.get(ChatSession, session_id)
        if not chat_session:
            raise SessionNotFoundError()
        return chat_session

    async def load(self, session_id: UUID) -> Transcript:
        chat_session = await self.get_session(session_id)
        return await self.load_for_session(chat_session)

    async def load_for_session(self, chat_session: ChatSession) -> Transcript:
        try:
            result = await self.db.execute(
                select(Message)
                .where(Message.session_id == chat_session.id, Message.role.in_(PROMPT_ROLES))
                .order_by(Message.created_at.desc())
                .limit(self.window)
            )
            newest_first = result.scalars().all()
            message_count = await self.count_messages(chat_session.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load messages for session {chat_session.id}: {str(e)}")
            raise TranscriptUnavailableError() from e

        turns = [
            TranscriptTurn(role=m.role, content=self.clip(m.content), created_at=m.created_at)
            for m in reversed(newest_first)
        ]
        turns = [t for t in turns if t.content]

        last_activity_at = chat_session.last_activity_at
        if newest_first and (last_activity_at is None or newest_first[0].created_at > last_activity_at):
            last_activity_at = newest_first[0].created_at

        return Transcript(turns=turns, message_count=message_count, last_activity_at=last_activity_at)

    async def count_messages(self, session_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Message.id)).where(Message.session_id == session_id)
        )
        return result.scalar() or 0

    def clip(self, content: Any) -> str:
        if not isinstance(content, str):
            return ""
        return content.strip()[: self.content_cap]

    def from_payload(self, items: Iterable[Any] | None) -> list[TranscriptTurn]:
        """Turns supplied by a client; invalid items are dropped."""
        turns = []
        for item in items or []:
            if not isinstance(item, dict) or item.get("role") not in PROMPT_ROLES:
                continue
            content = self.clip(item.get("content"))
            if content:
                turns.append(TranscriptTurn(role=item["role"], content=content))
        return turns[-self.window :]
