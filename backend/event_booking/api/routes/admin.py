"""
Admin endpoints: users, bookings, email history and dashboard stats.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from event_booking.api.deps import get_notifier, get_store, require_admin
from event_booking.schemas.booking import BookingResponse
from event_booking.schemas.user import User
from event_booking.services.admin_service import DashboardStats, dashboard_stats
from event_booking.services.email_service import EmailRecord, MockEmailService
from event_booking.services.interfaces.notifier import Notifier
from event_booking.stores.interfaces import RecordStore

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=list[User])
async def list_users_endpoint(store: RecordStore = Depends(get_store)):
    return await store.list_users()


@router.get("/bookings", response_model=list[BookingResponse])
async def list_bookings_endpoint(
    event_id: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
):
    bookings = await store.list_bookings(event_id=event_id)
    return [BookingResponse.from_booking(b) for b in bookings]


@router.get("/emails", response_model=list[EmailRecord])
async def email_history_endpoint(
    to: Optional[str] = Query(None),
    notifier: Notifier = Depends(get_notifier),
):
    """Emails sent by the workflow, newest first."""
    if not isinstance(notifier, MockEmailService):
        return []
    return notifier.history(to=to)


@router.get("/stats", response_model=DashboardStats)
async def stats_endpoint(store: RecordStore = Depends(get_store)):
    return await dashboard_stats(store)
