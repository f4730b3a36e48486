# app/domains/user/service.py
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import StudentProfile, User, UserRole


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_student_profile(self, student_id: UUID) -> Optional[StudentProfile]:
        """Get the profile that links a student to a parent."""
        result = await self.db.execute(
            select(StudentProfile).where(StudentProfile.user_id == student_id)
        )
        return result.scalar_one_or_none()

    async def is_linked_parent(self, parent_id: UUID, student_id: UUID) -> bool:
        profile = await self.get_student_profile(student_id)
        return bool(profile and profile.parent_user_id == parent_id)

    async def can_access_student(self, user: User, student_id: UUID) -> bool:
        """A student sees their own sessions, a parent those of linked students."""
        if user.role == UserRole.STUDENT:
            return user.id == student_id
        if user.role == UserRole.PARENT:
            return await self.is_linked_parent(user.id, student_id)
        return False
