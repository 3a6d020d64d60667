"""
Record store interface (repository pattern).

Stores hold users, events and bookings, return pydantic copies of the one
current revision of each record, and are the only shared mutable resource
in the process. Implementations:

- InMemoryRecordStore: dicts guarded by per-key asyncio locks
- SqlRecordStore: SQLAlchemy async ORM, unique email index and
  conditional UPDATEs
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel

from event_booking.core.exceptions import InvalidState
from event_booking.schemas.booking import Booking, PaymentStatus
from event_booking.schemas.event import Event
from event_booking.schemas.user import User

ModelT = TypeVar("ModelT", bound=BaseModel)

def normalize_email(email: str) -> str:
    """Key used by the unique email index. Emails compare case-insensitively."""
    return email.strip().lower()


def new_id() -> str:
    return str(uuid4())


def merge_changes(record: ModelT, changes: Mapping[str, Any]) -> ModelT:
    """Return a validated copy of ``record`` with ``changes`` applied.

    Only the supplied fields change; the id is never rewritten.
    """
    data = record.model_dump()
    unknown = set(changes) - set(data)
    if unknown:
        raise ValueError(f"Unknown fields for {type(record).__name__}: {sorted(unknown)}")
    data.update({key: value for key, value in changes.items() if key != "id"})
    return type(record).model_validate(data)


def needs_finalization(booking: Booking, payment_id: Optional[str]) -> bool:
    """Decide whether ``commit_finalization`` has work to do for ``booking``.

    Returns False for an idempotent repeat. Raises InvalidState when the
    booking's payment status does not allow the requested transition.
    """
    if payment_id is not None:
        if booking.payment_status != PaymentStatus.PENDING:
            raise InvalidState(f"Booking {booking.id} is not awaiting payment")
        return True
    if booking.is_finalized:
        return False
    if booking.payment_status == PaymentStatus.PENDING:
        raise InvalidState(f"Booking {booking.id} is awaiting payment")
    return True


@dataclass(frozen=True)
class FinalizationResult:
    booking: Booking
    event: Event
    # False when the booking had already been finalized and nothing was written
    applied: bool


class RecordStore(ABC):
    """Interface for user, event and booking persistence."""

    async def open(self) -> None:
        """Acquire resources. Called once at application startup."""

    async def close(self) -> None:
        """Release resources. Called once at application shutdown."""

    # Users

    @abstractmethod
    async def create_user(self, user: User) -> str:
        """Store a user, assigning an id if absent, and return its id.

        The email index is unique: if the normalized email is already
        present, nothing is written and the existing user's id is returned.
        """
        ...

    @abstractmethod
    async def insert_user_if_absent(self, user: User) -> User:
        """Atomic compare-and-insert on the email index.

        Returns the stored user for ``user.email``: the pre-existing one, or
        ``user`` itself after it has been inserted.
        """
        ...

    @abstractmethod
    async def find_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def list_users(self) -> list[User]:
        """Return all users ordered by registration date."""
        ...

    # Events

    @abstractmethod
    async def create_event(self, event: Event) -> str:
        ...

    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[Event]:
        ...

    @abstractmethod
    async def list_events(self) -> list[Event]:
        """Return all events ordered by date, then time."""
        ...

    @abstractmethod
    async def update_event(self, event_id: str, changes: Mapping[str, Any]) -> Event:
        """Merge ``changes`` into the event. Raises NotFound for unknown ids."""
        ...

    # Bookings

    @abstractmethod
    async def create_booking(self, booking: Booking) -> str:
        """Store a booking. Raises NotFound if its user or event is unknown."""
        ...

    @abstractmethod
    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        ...

    @abstractmethod
    async def list_bookings(
        self,
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        """Return bookings, newest first, optionally filtered."""
        ...

    @abstractmethod
    async def update_booking(
        self,
        booking_id: str,
        changes: Mapping[str, Any],
        expected_status: Optional[PaymentStatus] = None,
    ) -> Booking:
        """Merge ``changes`` into the booking.

        Raises:
            NotFound: unknown booking id.
            InvalidState: ``expected_status`` given and not matched; nothing
                is written.
        """
        ...

    @abstractmethod
    async def delete_booking(self, booking_id: str) -> bool:
        """Remove a booking that was never finalized.

        Returns False, writing nothing, when the booking is unknown or has
        already been counted against its event.
        """
        ...

    @abstractmethod
    async def commit_finalization(
        self,
        booking_id: str,
        *,
        payment_id: Optional[str] = None,
        enforce_capacity: bool = True,
    ) -> FinalizationResult:
        """Atomically count the booking against its event's capacity.

        With ``payment_id`` the booking must still be pending; it is marked
        completed with that payment id in the same step. Without it, a
        pending booking is rejected and an already finalized booking is
        returned untouched (``applied=False``).

        Raises:
            NotFound: unknown booking or event.
            InvalidState: booking is in the wrong payment state.
            CapacityExceeded: enforcing and the event is full; nothing is
                written.
        """
        ...
