"""
Student profile model linking a student to its parent account.
"""

from sqlalchemy import Column, ForeignKey, String

from .base import UUID, BaseModel


class StudentProfile(BaseModel):
    """
    Represents the student side of a parent/student link.
    """

    __tablename__ = "student_profiles"

    user_id = Column(UUID(), ForeignKey("users.id"), nullable=False, unique=True)
    parent_user_id = Column(UUID(), ForeignKey("users.id"), nullable=True, index=True)
    invite_code = Column(String(32), nullable=True, unique=True)
