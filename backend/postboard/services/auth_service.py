"""
Postboard Backend - Auth Service
================================

What:  Session-based login, logout and current-user lookup.
How:   Operates on the session mapping the caller passes in (the signed-cookie
       session provided by Starlette's SessionMiddleware in HTTP requests). The
       session stores only the user's id and session version, never credentials.
Who:   Auth routes and the `get_current_user` dependency.

Session Keys:
    user_id:          id of the authenticated user
    session_version:  users.session_version at login time

Logout:
    The session lives in a client-held cookie, so clearing it only changes the
    cookie in the reply. Logout therefore also increments users.session_version;
    a cookie whose version no longer matches is rejected by current_user. This
    ends every session of that user, on all devices.

Failure Messages:
    Unknown e-mail and wrong password produce the same AuthenticationError
    message, and both paths perform one Argon2 verification.
"""

import logging
from typing import Any, MutableMapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from postboard.exceptions import AuthenticationError
from postboard.models.user import User
from postboard.repositories.user_repository import UserRepository, user_repository
from postboard.schemas.user import LoginRequest
from postboard.security import DUMMY_HASH, hash_password, needs_rehash, verify_password

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_VERSION_KEY = "session_version"

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."

Session = MutableMapping[str, Any]


class AuthService:

    def __init__(self, users: Optional[UserRepository] = None):
        self.users = users or user_repository

    async def login(self, db: AsyncSession, session: Session, credentials: LoginRequest) -> User:
        """
        Check credentials and bind the session to the user.

        Any previous session content is discarded first, so a session id issued
        before login never carries over.

        Raises:
            AuthenticationError: unknown e-mail or wrong password (→ 401)
        """
        user = await self.users.find_by_email(db, credentials.email)

        if user is None:
            verify_password(DUMMY_HASH, credentials.password)
            logger.warning("Login failed: unknown e-mail")
            raise AuthenticationError(message=INVALID_CREDENTIALS_MESSAGE)

        if not verify_password(user.password, credentials.password):
            logger.warning("Login failed: wrong password for user %s", user.id)
            raise AuthenticationError(message=INVALID_CREDENTIALS_MESSAGE)

        if needs_rehash(user.password):
            user.password = hash_password(credentials.password)
            await db.flush()
            logger.info("Upgraded password hash for user %s", user.id)

        session.clear()
        session[SESSION_USER_KEY] = user.id
        session[SESSION_VERSION_KEY] = user.session_version

        logger.info("User %s logged in", user.id)
        return user

    async def logout(self, db: AsyncSession, session: Session, user: User) -> None:
        """Invalidate every session issued to `user` and empty this one."""
        user.session_version += 1
        await db.flush()
        session.clear()
        logger.info("User %s logged out", user.id)

    async def current_user(self, db: AsyncSession, session: Session) -> Optional[User]:
        """
        The session's user, or None.

        A session pointing at a missing user, or issued before the user's last
        logout, is unbound.
        """
        user_id = session.get(SESSION_USER_KEY)
        if not isinstance(user_id, int):
            return None

        user = await self.users.find_by_id(db, user_id)
        if user is None or session.get(SESSION_VERSION_KEY) != user.session_version:
            session.clear()
            return None
        return user

    async def me(self, db: AsyncSession, session: Session) -> User:
        """
        Raises:
            AuthenticationError: the session is not authenticated (→ 401)
        """
        user = await self.current_user(db, session)
        if user is None:
            raise AuthenticationError()
        return user


auth_service = AuthService()
