"""
Message model: one append-only turn of a chat session.
"""

import enum

from sqlalchemy import Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class MessageRole(str, enum.Enum):
    """Message role enumeration."""

    USER = "user"
    MODEL = "model"


class Message(BaseModel):
    """
    Represents a chat message entity in the application.
    """

    __tablename__ = "messages"
    __table_args__ = (Index("idx_messages_session_created", "session_id", "created_at"),)

    session_id = Column(UUID(), ForeignKey("chat_sessions.id"), nullable=False)
    student_id = Column(UUID(), ForeignKey("users.id"), nullable=False)
    role = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)

    session = relationship("ChatSession", back_populates="messages")
