"""
Provides the User model for the application's database schema.

Users are created by the identity provider (Supabase auth); ``id`` is the
``sub`` claim of the access token. ``role`` decides which sessions a user may
act on: students own sessions, parents reach them through ``StudentProfile``.
"""

import enum

from sqlalchemy import Column, Enum, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class UserRole(str, enum.Enum):
    """User role enumeration."""

    STUDENT = "student"
    PARENT = "parent"


class User(BaseModel):
    """
    Represents a user entity in the application.

    :ivar email: Email address of the user.
    :type email: str
    :ivar role: Whether the user is a student or a parent.
    :type role: UserRole
    :ivar name: Display name.
    :type name: str
    """

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True)
    role = Column(Enum(UserRole, values_callable=lambda e: [m.value for m in e]), nullable=False)
    name = Column(String(100))

    chat_sessions = relationship("ChatSession", back_populates="student", cascade="all, delete-orphan")
