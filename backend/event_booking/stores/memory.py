"""
In-process record store.

CONCURRENCY STRATEGY: per-key asyncio locks
============================================

Problem:
  Two attempts book the last seat of an event at the same time.
  Both read current_participants=C-1, both write C. One seat, two bookings.
  Likewise two first-time visitors with the same email both see "no user"
  and both insert one.

Solution:
  Every read-modify-write on shared state runs under a lock keyed by what
  it conflicts on:

  - users:  one lock per normalized email (the unique index key)
  - events: one lock per event id (capacity counter and its bookings)

  Records are stored as pydantic models and handed out as deep copies, so a
  caller never holds a live reference to the current revision.
"""

import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from event_booking.core.exceptions import CapacityExceeded, InvalidState, NotFound
from event_booking.core.logging import get_logger
from event_booking.schemas.booking import Booking, PaymentStatus
from event_booking.schemas.event import Event
from event_booking.schemas.user import User
from event_booking.stores.interfaces import (
    FinalizationResult,
    RecordStore,
    merge_changes,
    needs_finalization,
    new_id,
    normalize_email,
)

logger = get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """Dict-backed store. Lives as long as the process; one per test."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._user_ids_by_email: dict[str, str] = {}
        self._events: dict[str, Event] = {}
        self._bookings: dict[str, Booking] = {}
        self._email_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._event_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # Users

    async def create_user(self, user: User) -> str:
        stored = await self.insert_user_if_absent(user)
        return stored.id

    async def insert_user_if_absent(self, user: User) -> User:
        key = normalize_email(user.email)
        async with self._email_locks[key]:
            existing_id = self._user_ids_by_email.get(key)
            if existing_id is not None:
                return self._users[existing_id].model_copy(deep=True)

            stored = user.model_copy(update={"id": user.id or new_id(), "email": key}, deep=True)
            self._users[stored.id] = stored
            self._user_ids_by_email[key] = stored.id
            logger.debug("user_stored", user_id=stored.id)
            return stored.model_copy(deep=True)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        user_id = self._user_ids_by_email.get(normalize_email(email))
        if user_id is None:
            return None
        return self._users[user_id].model_copy(deep=True)

    async def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def list_users(self) -> list[User]:
        users = sorted(self._users.values(), key=lambda u: u.registration_date)
        return [u.model_copy(deep=True) for u in users]

    # Events

    async def create_event(self, event: Event) -> str:
        stored = event.model_copy(update={"id": event.id or new_id()}, deep=True)
        self._events[stored.id] = stored
        return stored.id

    async def get_event(self, event_id: str) -> Optional[Event]:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event else None

    async def list_events(self) -> list[Event]:
        events = sorted(self._events.values(), key=lambda e: (e.date, e.time))
        return [e.model_copy(deep=True) for e in events]

    async def update_event(self, event_id: str, changes: Mapping[str, Any]) -> Event:
        async with self._event_locks[event_id]:
            current = self._events.get(event_id)
            if current is None:
                raise NotFound("event", event_id)
            updated = merge_changes(current, changes)
            self._events[event_id] = updated
            return updated.model_copy(deep=True)

    # Bookings

    async def create_booking(self, booking: Booking) -> str:
        if booking.user_id not in self._users:
            raise NotFound("user", booking.user_id)
        if booking.event_id not in self._events:
            raise NotFound("event", booking.event_id)

        stored = booking.model_copy(update={"id": booking.id or new_id()}, deep=True)
        self._bookings[stored.id] = stored
        return stored.id

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def list_bookings(
        self,
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        bookings = [
            b for b in self._bookings.values()
            if (event_id is None or b.event_id == event_id)
            and (user_id is None or b.user_id == user_id)
        ]
        bookings.sort(key=lambda b: b.booking_date, reverse=True)
        return [b.model_copy(deep=True) for b in bookings]

    async def update_booking(
        self,
        booking_id: str,
        changes: Mapping[str, Any],
        expected_status: Optional[PaymentStatus] = None,
    ) -> Booking:
        current = self._bookings.get(booking_id)
        if current is None:
            raise NotFound("booking", booking_id)

        # Serialize with finalization of the same event
        async with self._event_locks[current.event_id]:
            current = self._bookings[booking_id]
            if expected_status is not None and current.payment_status != expected_status:
                raise InvalidState(
                    f"Booking {booking_id} is {current.payment_status.value}, "
                    f"expected {expected_status.value}"
                )
            updated = merge_changes(current, changes)
            self._bookings[booking_id] = updated
            return updated.model_copy(deep=True)

    async def delete_booking(self, booking_id: str) -> bool:
        booking = self._bookings.get(booking_id)
        if booking is None:
            return False

        async with self._event_locks[booking.event_id]:
            booking = self._bookings.get(booking_id)
            if booking is None or booking.is_finalized:
                return False
            del self._bookings[booking_id]
            logger.debug("booking_deleted", booking_id=booking_id)
            return True

    async def commit_finalization(
        self,
        booking_id: str,
        *,
        payment_id: Optional[str] = None,
        enforce_capacity: bool = True,
    ) -> FinalizationResult:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFound("booking", booking_id)

        async with self._event_locks[booking.event_id]:
            # Re-read under the lock: another finalize may have won
            booking = self._bookings[booking_id]
            event = self._events.get(booking.event_id)
            if event is None:
                raise NotFound("event", booking.event_id)

            if not needs_finalization(booking, payment_id):
                return FinalizationResult(
                    booking=booking.model_copy(deep=True),
                    event=event.model_copy(deep=True),
                    applied=False,
                )

            if enforce_capacity and event.is_full:
                raise CapacityExceeded(event.id, event.max_participants)

            event = event.model_copy(
                update={"current_participants": event.current_participants + 1}
            )
            changes: dict[str, Any] = {
                "payment_status": PaymentStatus.COMPLETED,
                "finalized_at": datetime.now(timezone.utc),
            }
            if payment_id is not None:
                changes["payment_id"] = payment_id
            booking = booking.model_copy(update=changes)

            self._events[event.id] = event
            self._bookings[booking.id] = booking

            return FinalizationResult(
                booking=booking.model_copy(deep=True),
                event=event.model_copy(deep=True),
                applied=True,
            )
