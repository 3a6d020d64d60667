"""
FastAPI dependencies resolving the per-application service container.

create_app() stores settings, the record store, the notifier and the
booking workflow on app.state; routes reach them only through these.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from event_booking.core.config import Settings
from event_booking.core.exceptions import AuthenticationError
from event_booking.core.security import decode_admin_token
from event_booking.services.booking_service import BookingWorkflow
from event_booking.services.interfaces.notifier import Notifier
from event_booking.stores.interfaces import RecordStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_workflow(request: Request) -> BookingWorkflow:
    return request.app.state.workflow


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """Admit only requests bearing a valid admin token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return decode_admin_token(credentials.credentials, settings)
