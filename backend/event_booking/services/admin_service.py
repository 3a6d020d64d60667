"""
Read-only views behind the admin dashboard.
"""

from decimal import Decimal

from pydantic import BaseModel

from event_booking.schemas.booking import PaymentStatus
from event_booking.stores.interfaces import RecordStore


class DashboardStats(BaseModel):
    total_events: int
    total_users: int
    total_bookings: int
    confirmed_bookings: int
    pending_payments: int
    revenue: Decimal


async def dashboard_stats(store: RecordStore) -> DashboardStats:
    events = await store.list_events()
    users = await store.list_users()
    bookings = await store.list_bookings()

    confirmed = [b for b in bookings if b.is_finalized]
    pending = [b for b in bookings if b.payment_status == PaymentStatus.PENDING]
    # Only money that was actually collected
    revenue = sum(
        (b.amount for b in bookings if b.payment_status == PaymentStatus.COMPLETED and b.payment_id),
        Decimal("0"),
    )

    return DashboardStats(
        total_events=len(events),
        total_users=len(users),
        total_bookings=len(bookings),
        confirmed_bookings=len(confirmed),
        pending_payments=len(pending),
        revenue=revenue,
    )
