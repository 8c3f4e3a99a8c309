"""
Password login and session tokens for the Activity Clock API.

PURPOSE: Issue and verify the signed, expiring token kept in the session cookie.
AI CONTEXT: Token format is delegated to PyJWT (HS256 with an 'exp' claim).

CONTRACT:
- POST /api/login with the right password sets an HTTP-only cookie
  'activity_session' valid for APP_SESSION_DAYS days
- Data routes depend on require_auth, which answers 401 for a missing,
  tampered or expired token
- Without both APP_PASSWORD and APP_SESSION_SECRET auth is disabled and
  every request passes
"""

from __future__ import annotations

import hmac
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import HTTPException, Request, status

from .config import Config

__all__ = [
    "create_token",
    "verify_token",
    "check_password",
    "require_auth",
]

logger = logging.getLogger(__name__)


def create_token(
    secret: str | None = None,
    days: int | None = None,
    now: datetime | None = None,
) -> str:
    """
    Create a signed session token.

    Args:
        secret: Signing secret. Default: Config.get_session_secret()
        days: Lifetime in days. Default: Config.get_session_days()
        now: Issue time. Default: current UTC time.

    Returns:
        Encoded JWT string.
    """
    issued = now or datetime.now(UTC)
    lifetime = days if days is not None else Config.get_session_days()
    payload = {
        "sub": "activity-clock",
        "iat": issued,
        "exp": issued + timedelta(days=lifetime),
    }
    return jwt.encode(
        payload, secret or Config.get_session_secret(), algorithm=Config.TOKEN_ALGORITHM
    )


def verify_token(token: str | None, secret: str | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a session token.

    Args:
        token: Raw cookie value.
        secret: Signing secret. Default: Config.get_session_secret()

    Returns:
        Token payload, or None when missing, tampered or expired.
    """
    key = secret or Config.get_session_secret()
    if not token or not key:
        return None
    try:
        payload: dict[str, Any] = jwt.decode(token, key, algorithms=[Config.TOKEN_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected session token: {e}")
        return None
    return payload


def check_password(candidate: str) -> bool:
    """Constant-time comparison against the configured password."""
    expected = Config.get_app_password()
    if not expected:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


def require_auth(request: Request) -> None:
    """
    FastAPI dependency guarding data routes.

    Raises:
        HTTPException: 401 when auth is enabled and the session cookie
            does not hold a valid token.
    """
    if not Config.is_auth_enabled():
        return
    if verify_token(request.cookies.get(Config.SESSION_COOKIE_NAME)) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
