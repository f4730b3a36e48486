"""
Safety alert raised by the danger keyword pre-filter.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text

from .base import UUID, BaseModel


class SafetyAlert(BaseModel):
    """
    Out-of-band alert shown to the linked parent. Never contains the message text.
    """

    __tablename__ = "safety_alerts"

    student_id = Column(UUID(), ForeignKey("users.id"), nullable=False, index=True)
    session_id = Column(UUID(), ForeignKey("chat_sessions.id"), nullable=True)
    message = Column(Text, nullable=False)
    matched_keywords = Column(String(255), nullable=True)
    read = Column(Boolean, default=False, nullable=False)
