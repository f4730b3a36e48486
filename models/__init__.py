"""
Models package initialization.
"""

from .base import Base, BaseModel, utcnow
from .chat_session import FROZEN_TITLE_SOURCES, UNTITLED, ChatSession, RiskLevel, TitleSource
from .message import Message, MessageRole
from .safety_alert import SafetyAlert
from .student_profile import StudentProfile
from .user import User, UserRole

__all__ = [
    "Base",
    "BaseModel",
    "utcnow",
    "User",
    "UserRole",
    "StudentProfile",
    # Chat models
    "ChatSession",
    "TitleSource",
    "RiskLevel",
    "UNTITLED",
    "FROZEN_TITLE_SOURCES",
    "Message",
    "MessageRole",
    "SafetyAlert",
]
