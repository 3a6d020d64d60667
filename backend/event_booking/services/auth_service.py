"""
Authentication for the single admin account.
"""

import hmac

from event_booking.core.config import Settings
from event_booking.core.exceptions import AuthenticationError
from event_booking.core.logging import get_logger
from event_booking.core.security import ADMIN_ROLE, create_access_token
from event_booking.schemas.user import AdminLogin

logger = get_logger(__name__)


def authenticate_admin(login_data: AdminLogin, settings: Settings) -> str:
    """
    Check the admin credentials and return a JWT access token.
    Raises AuthenticationError if they do not match.
    """
    email_ok = hmac.compare_digest(
        login_data.email.strip().lower().encode(),
        settings.ADMIN_EMAIL.strip().lower().encode(),
    )
    password_ok = hmac.compare_digest(
        login_data.password.encode(),
        settings.ADMIN_PASSWORD.encode(),
    )
    if not (email_ok and password_ok):
        logger.warning("admin_login_failed", email=login_data.email)
        raise AuthenticationError()

    token = create_access_token(data={"sub": settings.ADMIN_EMAIL, "role": ADMIN_ROLE}, settings=settings)
    logger.info("admin_logged_in")
    return token
