"""
Chat session model: one conversation between a student and the mentor.

``title``, ``summary``, ``topic_tags`` and ``risk_level`` are derived metadata
maintained by the session metadata pipeline; the messages are the source of
truth.
"""

import enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, utcnow

UNTITLED = "새 대화"
MAX_TOPIC_TAGS = 5


class TitleSource(str, enum.Enum):
    """Where the current title came from. Moves forward only."""

    NONE = "none"
    FALLBACK = "fallback"
    AI = "ai"
    MANUAL = "manual"


FROZEN_TITLE_SOURCES = frozenset({TitleSource.AI.value, TitleSource.MANUAL.value})


class RiskLevel(str, enum.Enum):
    """Three-value safety classification of a session."""

    STABLE = "stable"
    NORMAL = "normal"
    CAUTION = "caution"


class ChatSession(BaseModel):
    """
    Represents a chat session entity in the application.
    """

    __tablename__ = "chat_sessions"

    student_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default=UNTITLED)
    title_source = Column(String(16), nullable=False, default=TitleSource.NONE.value)
    title_updated_at = Column(DateTime, nullable=True)
    summary = Column(Text, nullable=True)
    summary_updated_at = Column(DateTime, nullable=True)
    risk_level = Column(String(16), nullable=False, default=RiskLevel.NORMAL.value)
    risk_reason = Column(Text, nullable=True)
    topic_tags = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)  # ["시험", "불안"]
    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    last_activity_at = Column(DateTime, nullable=True)
    # Last failed metadata refresh; cleared by the next successful write
    meta_error_at = Column(DateTime, nullable=True)
    meta_error_code = Column(String(64), nullable=True)

    # Relationships
    student = relationship("User", back_populates="chat_sessions")
    messages = relationship(
        "Message",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )
