"""
Postboard Backend - User Repository
===================================

What:  Counts, looks up and inserts user accounts.
Who:   UserService (registration), AuthService (login, /me) and the
       registration route (e-mail uniqueness check).
"""

from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.models.user import User


class UserRepository:

    async def count(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count(User.id)))
        return result.scalar_one()

    async def create(self, db: AsyncSession, data: Mapping[str, Any]) -> User:
        """Insert a user. `data["password"]` must already be hashed."""
        user = User(**data)
        db.add(user)
        await db.flush()
        return user

    async def find_by_id(self, db: AsyncSession, user_id: int) -> Optional[User]:
        return await db.get(User, user_id)

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def email_exists(self, db: AsyncSession, email: str) -> bool:
        result = await db.execute(
            select(func.count(User.id)).where(User.email == email.lower())
        )
        return result.scalar_one() > 0


user_repository = UserRepository()
