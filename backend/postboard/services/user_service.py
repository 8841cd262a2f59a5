"""
Postboard Backend - User Service
================================

What:  Registration of user accounts under a deployment-wide cap.
Who:   The registration route and the `postboard create-user` command.

Registration Rules:
    1. When the number of existing users is >= settings.registration_cap
       (default 2), registration fails with RegistrationLimitError before the
       password is even hashed.
    2. The password is hashed with Argon2id; the plaintext is never stored.
    3. A unique-constraint violation on `users.email` (a concurrent registration
       with the same address) is reported as a field error on `email`.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.config import settings
from postboard.exceptions import RegistrationLimitError, ValidationError
from postboard.models.user import User
from postboard.repositories.user_repository import UserRepository, user_repository
from postboard.schemas.user import UserCreate
from postboard.security import hash_password

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "The email has already been taken."


class UserService:

    def __init__(self, users: Optional[UserRepository] = None, registration_cap: Optional[int] = None):
        self.users = users or user_repository
        self._registration_cap = registration_cap

    @property
    def registration_cap(self) -> int:
        if self._registration_cap is not None:
            return self._registration_cap
        return settings.registration_cap

    async def ensure_email_available(self, db: AsyncSession, email: str) -> None:
        """Raises ValidationError on `email` when an account already uses it."""
        if await self.users.email_exists(db, email):
            raise ValidationError(message=EMAIL_TAKEN_MESSAGE, field="email")

    async def create(self, db: AsyncSession, data: UserCreate) -> User:
        """
        Register a user.

        Raises:
            RegistrationLimitError: the user cap is already reached (→ 500)
            ValidationError:        the e-mail was taken concurrently (→ 422)
        """
        existing = await self.users.count(db)
        if existing >= self.registration_cap:
            logger.warning(
                "Registration rejected: %d users exist (cap %d)", existing, self.registration_cap
            )
            raise RegistrationLimitError(cap=self.registration_cap)

        values = data.model_dump()
        values["password"] = hash_password(data.password)

        try:
            user = await self.users.create(db, values)
        except IntegrityError as e:
            logger.warning("Registration rejected: e-mail already in use")
            raise ValidationError(message=EMAIL_TAKEN_MESSAGE, field="email") from e

        logger.info("User %s registered", user.id)
        return user


user_service = UserService()
