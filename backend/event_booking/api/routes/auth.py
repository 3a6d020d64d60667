"""
Authentication endpoint for the admin account.
"""

from fastapi import APIRouter, Depends

from event_booking.api.deps import get_app_settings
from event_booking.core.config import Settings
from event_booking.schemas.user import AdminLogin, Token
from event_booking.services.auth_service import authenticate_admin

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login(login_data: AdminLogin, settings: Settings = Depends(get_app_settings)):
    """Authenticate as admin and receive a JWT access token."""
    token = authenticate_admin(login_data, settings)
    return Token(access_token=token)
