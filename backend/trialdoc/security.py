"""
TrialDoc Backend - Password Hashing & Bearer Tokens
=====================================================

What:  bcrypt password hashing, signed JWT issuance/verification, and the
       `require_user` dependency that gates protected routes.
How:   bcrypt with a fixed cost factor (BCRYPT_ROUNDS, default 10); PyJWT
       HS256 tokens carrying `userId` and `username` with a 24-hour expiry.
Who:   AuthService (hashing, issuance) and every protected router (gate).

Token gate outcomes:
    no bearer token            → 401 "Access token required"
    bad signature / expired    → 403 "Invalid or expired token"
    valid                      → AuthenticatedUser, also on request.state.user

Token issuance and verification perform no I/O. bcrypt is CPU-bound, so the
async helpers run it in Starlette's threadpool.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from trialdoc.config import settings
from trialdoc.exceptions import AuthenticationError, InvalidTokenError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; longer input is rejected upstream.
BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity decoded from a verified bearer token."""

    id: str
    username: str


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Return the salted bcrypt hash of `password` as text."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Constant-time comparison; malformed hashes or oversized input never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, password, hashed)


# ── Tokens ────────────────────────────────────────────────────────────────

def create_access_token(
    user_id: str,
    username: str,
    *,
    now: Optional[datetime] = None,
) -> str:
    """
    Create a signed access token for the given user.

    Args:
        user_id: Stored as the `userId` claim.
        username: Stored as the `username` claim.
        now: Issue time override (tests); defaults to the current UTC time.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "username": username,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.jwt_expiry_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthenticatedUser:
    """
    Verify signature and expiry and return the encoded identity.

    Raises:
        InvalidTokenError: signature mismatch, expiry passed, malformed token,
            or required claims missing.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError(context={"reason": "expired"})
    except jwt.PyJWTError as e:
        raise InvalidTokenError(context={"reason": type(e).__name__})

    user_id = claims.get("userId")
    username = claims.get("username")
    if not user_id or not username:
        raise InvalidTokenError(context={"reason": "missing_claims"})
    return AuthenticatedUser(id=str(user_id), username=str(username))


# ── Route Gate ────────────────────────────────────────────────────────────

# auto_error=False so a missing header reaches our own 401 response
bearer_scheme = HTTPBearer(auto_error=False)


async def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    FastAPI dependency for protected routes.

    Extracts the bearer token, verifies it, and attaches the identity to
    `request.state.user` before the handler runs.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Access token required")

    try:
        user = decode_access_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.info("Rejected bearer token on %s: %s", request.url.path, e.context.get("reason"))
        raise

    request.state.user = user
    return user
