"""
TrialDoc Backend - Auth Service
=================================

What:  Registration and login against the `users` table.
How:   Every data-store call goes through the ConnectionManager's retry
       wrapper, and every attempt opens its own session so a failed attempt
       never leaves a broken transaction behind for the next one.
Who:   Called by the /auth router.

Outcomes:
    register: missing field            → 400
              password > 72 bytes      → 400
              username taken           → 400 "Username already exists"
              otherwise                → new user id
    login:    missing field            → 400
              unknown user / bad pass  → 401 "Invalid credentials" (same message)
              otherwise                → {token, user: {id, username}}

Unexpected data-store failures on either path are logged with detail and
surfaced as a generic 500 "Authentication service error".
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from trialdoc.database import ConnectionManager
from trialdoc.exceptions import AuthenticationError, DatabaseError, ValidationError
from trialdoc.models.user import User
from trialdoc.schemas.auth import TokenResponse, UserPublic
from trialdoc.security import (
    BCRYPT_MAX_PASSWORD_BYTES,
    create_access_token,
    hash_password_async,
    verify_password_async,
)

logger = logging.getLogger(__name__)

GENERIC_AUTH_ERROR = "Authentication service error"


def _require_credentials(username: Optional[str], password: Optional[str]) -> None:
    if not username or not password:
        raise ValidationError(
            message="Username and password are required",
            field="username" if not username else "password",
        )


class AuthService:
    """
    Args:
        manager: ConnectionManager providing sessions and the retry policy.
    """

    def __init__(self, manager: ConnectionManager):
        self._manager = manager

    async def _find_user(self, username: str) -> Optional[User]:
        async def lookup() -> Optional[User]:
            async with self._manager.session() as db:
                result = await db.execute(select(User).where(User.username == username))
                return result.scalar_one_or_none()

        return await self._manager.retry(lookup)

    async def _insert_user(self, username: str, password_hash: str) -> User:
        async def insert() -> User:
            async with self._manager.session() as db:
                user = User(username=username, password=password_hash)
                db.add(user)
                await db.flush()
                return user

        return await self._manager.retry(insert)

    # ── Register ──────────────────────────────────────────────────────────
    async def register(self, username: Optional[str], password: Optional[str]) -> str:
        """
        Create a user and return its id.

        The username is checked before hashing so a duplicate costs no bcrypt
        work. Two concurrent registrations of the same name can both pass the
        check; the unique constraint then rejects the second insert, which is
        reported the same way.
        """
        _require_credentials(username, password)
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(
                message=f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes",
                field="password",
            )

        try:
            if await self._find_user(username) is not None:
                raise ValidationError(message="Username already exists", field="username")

            password_hash = await hash_password_async(password)
            user = await self._insert_user(username, password_hash)
        except IntegrityError:
            logger.info("Registration lost a unique-username race for %r", username)
            raise ValidationError(message="Username already exists", field="username")
        except SQLAlchemyError as e:
            logger.error("Registration failed for %r: %s", username, e, exc_info=True)
            raise DatabaseError(message=GENERIC_AUTH_ERROR)

        logger.info("User registered: %s (%s)", user.id, user.username)
        return user.id

    # ── Login ─────────────────────────────────────────────────────────────
    async def login(self, username: Optional[str], password: Optional[str]) -> TokenResponse:
        _require_credentials(username, password)

        try:
            user = await self._find_user(username)
        except SQLAlchemyError as e:
            logger.error("Login lookup failed for %r: %s", username, e, exc_info=True)
            raise DatabaseError(message=GENERIC_AUTH_ERROR)

        # Unknown user and wrong password must be indistinguishable
        if user is None or not await verify_password_async(password, user.password):
            logger.info("Failed login for %r", username)
            raise AuthenticationError(message="Invalid credentials")

        token = create_access_token(user.id, user.username)
        logger.info("User logged in: %s", user.id)
        return TokenResponse(token=token, user=UserPublic(id=user.id, username=user.username))
