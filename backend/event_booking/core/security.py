"""
Token helpers for the single admin account.

There is exactly one administrator, configured through settings. A
successful login yields a short-lived HS256 JWT carrying ``role=admin``.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from event_booking.core.config import Settings
from event_booking.core.exceptions import AuthenticationError

ADMIN_ROLE = "admin"


def create_access_token(
    data: dict,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_admin_token(token: str, settings: Settings) -> dict:
    """Decode a bearer token and require the admin role."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Could not validate credentials")

    if payload.get("role") != ADMIN_ROLE:
        raise AuthenticationError("Admin privileges required")
    return payload
