"""
PlaceShare Backend: Password Hashing and Bearer Tokens
========================================================

What:  bcrypt password hashing, HS256 JWT issue/verify, and the FastAPI
       dependency that turns an `Authorization: Bearer <token>` header into
       the caller's user id.
Who:   UserService (hash/verify, issue), places routes (get_current_user_id).

Token claims:
    userId  user UUID as string
    email   the user's email at issue time
    exp     expiry, settings.access_token_expire_minutes after issue
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from placeshare.config import settings
from placeshare.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    """Hash a plain password with a fresh bcrypt salt (cost 12)."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a plain password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Stored password hash has an invalid format")
        return False


# ── Tokens ────────────────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed JWT identifying `user_id`."""
    expires = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    return jwt.encode(
        {"userId": str(user_id), "email": email, "exp": expires},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        AuthenticationError for any invalid, expired or incomplete token.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(context={"reason": "expired"})
    except jwt.InvalidTokenError:
        raise AuthenticationError(context={"reason": "invalid"})

    if "userId" not in claims:
        raise AuthenticationError(context={"reason": "missing_claim"})
    return claims


# ── FastAPI Dependency ────────────────────────────────────────────────────

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> uuid.UUID:
    """
    Resolve the authenticated user id for a request.

    The id is trusted as-is by the services; whether the user still exists
    is checked by the operation that needs it.

    Raises:
        AuthenticationError: no bearer token, or the token does not verify.
    """
    if credentials is None:
        raise AuthenticationError(context={"reason": "missing_token"})

    claims = decode_access_token(credentials.credentials)
    try:
        return uuid.UUID(str(claims["userId"]))
    except ValueError:
        raise AuthenticationError(context={"reason": "malformed_user_id"})
