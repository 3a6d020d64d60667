"""
SQLAlchemy-backed record store.

CONCURRENCY STRATEGY: database constraints + conditional UPDATE
===============================================================

Identity:
  users.email carries a UNIQUE index. Resolution inserts optimistically and,
  on IntegrityError, rolls back and re-reads the row the other writer
  committed. First writer wins; nobody scans-then-inserts unguarded.

Capacity:
  UPDATE events SET current_participants = current_participants + 1
  WHERE id = :event_id AND current_participants < max_participants

  If rows_affected == 0 the event is full (or gone). The booking row is
  claimed in the same transaction with

  UPDATE bookings SET ... WHERE id = :id AND finalized_at IS NULL

  so two concurrent finalizations of one booking cannot both count it: the
  loser sees rows_affected == 0 and its transaction, increment included,
  rolls back.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from event_booking.core.exceptions import CapacityExceeded, InvalidState, NotFound
from event_booking.core.logging import get_logger
from event_booking.db.session import build_engine, build_sessionmaker, create_schema
from event_booking.models import Booking as BookingRow
from event_booking.models import Event as EventRow
from event_booking.models import User as UserRow
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


def _booking_columns(booking: Booking) -> dict[str, Any]:
    data = booking.model_dump()
    data["payment_status"] = booking.payment_status.value
    return data


class SqlRecordStore(RecordStore):
    """Durable store over any SQLAlchemy async URL (asyncpg, aiosqlite)."""

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self._engine = build_engine(database_url, echo=echo)
        self._sessionmaker = build_sessionmaker(self._engine)

    async def open(self) -> None:
        await create_schema(self._engine)
        logger.info("sql_store_ready", url=self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self._engine.dispose()

    # Users

    async def create_user(self, user: User) -> str:
        stored = await self.insert_user_if_absent(user)
        return stored.id

    async def insert_user_if_absent(self, user: User) -> User:
        candidate = user.model_copy(update={"id": user.id or new_id(), "email": normalize_email(user.email)})

        async with self._sessionmaker() as session:
            existing = await self._user_by_email(session, candidate.email)
            if existing is not None:
                return User.model_validate(existing)

            session.add(UserRow(**candidate.model_dump()))
            try:
                await session.commit()
            except IntegrityError:
                # Lost the race on the unique email index
                await session.rollback()
                existing = await self._user_by_email(session, candidate.email)
                if existing is None:
                    raise
                logger.info("user_insert_race_lost", user_id=existing.id)
                return User.model_validate(existing)

        return candidate

    async def find_user_by_email(self, email: str) -> Optional[User]:
        async with self._sessionmaker() as session:
            row = await self._user_by_email(session, normalize_email(email))
            return User.model_validate(row) if row else None

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._sessionmaker() as session:
            row = await session.get(UserRow, user_id)
            return User.model_validate(row) if row else None

    async def list_users(self) -> list[User]:
        async with self._sessionmaker() as session:
            result = await session.execute(select(UserRow).order_by(UserRow.registration_date.asc()))
            return [User.model_validate(row) for row in result.scalars().all()]

    # Events

    async def create_event(self, event: Event) -> str:
        stored = event.model_copy(update={"id": event.id or new_id()})
        async with self._sessionmaker() as session:
            session.add(EventRow(**stored.model_dump()))
            await session.commit()
        return stored.id

    async def get_event(self, event_id: str) -> Optional[Event]:
        async with self._sessionmaker() as session:
            row = await session.get(EventRow, event_id)
            return Event.model_validate(row) if row else None

    async def list_events(self) -> list[Event]:
        async with self._sessionmaker() as session:
            result = await session.execute(select(EventRow).order_by(EventRow.date.asc(), EventRow.time.asc()))
            return [Event.model_validate(row) for row in result.scalars().all()]

    async def update_event(self, event_id: str, changes: Mapping[str, Any]) -> Event:
        async with self._sessionmaker() as session:
            async with session.begin():
                row = await session.get(EventRow, event_id, with_for_update=True)
                if row is None:
                    raise NotFound("event", event_id)
                updated = merge_changes(Event.model_validate(row), changes)
                for key in changes:
                    if key != "id":
                        setattr(row, key, getattr(updated, key))
            return updated

    # Bookings

    async def create_booking(self, booking: Booking) -> str:
        stored = booking.model_copy(update={"id": booking.id or new_id()})
        async with self._sessionmaker() as session:
            async with session.begin():
                if await session.get(UserRow, stored.user_id) is None:
                    raise NotFound("user", stored.user_id)
                if await session.get(EventRow, stored.event_id) is None:
                    raise NotFound("event", stored.event_id)
                session.add(BookingRow(**_booking_columns(stored)))
        return stored.id

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        async with self._sessionmaker() as session:
            row = await session.get(BookingRow, booking_id)
            return Booking.model_validate(row) if row else None

    async def list_bookings(
        self,
        event_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        query = select(BookingRow)
        if event_id is not None:
            query = query.where(BookingRow.event_id == event_id)
        if user_id is not None:
            query = query.where(BookingRow.user_id == user_id)

        async with self._sessionmaker() as session:
            result = await session.execute(query.order_by(BookingRow.booking_date.desc()))
            return [Booking.model_validate(row) for row in result.scalars().all()]

    async def update_booking(
        self,
        booking_id: str,
        changes: Mapping[str, Any],
        expected_status: Optional[PaymentStatus] = None,
    ) -> Booking:
        async with self._sessionmaker() as session:
            async with session.begin():
                row = await session.get(BookingRow, booking_id, with_for_update=True)
                if row is None:
                    raise NotFound("booking", booking_id)
                current = Booking.model_validate(row)
                if expected_status is not None and current.payment_status != expected_status:
                    raise InvalidState(
                        f"Booking {booking_id} is {current.payment_status.value}, "
                        f"expected {expected_status.value}"
                    )
                updated = merge_changes(current, changes)
                columns = _booking_columns(updated)
                for key in changes:
                    if key != "id":
                        setattr(row, key, columns[key])
            return updated

    async def delete_booking(self, booking_id: str) -> bool:
        async with self._sessionmaker() as session:
            async with session.begin():
                result = await session.execute(
                    delete(BookingRow)
                    .where(BookingRow.id == booking_id, BookingRow.finalized_at.is_(None))
                    .execution_options(synchronize_session=False)
                )
        return result.rowcount > 0

    async def commit_finalization(
        self,
        booking_id: str,
        *,
        payment_id: Optional[str] = None,
        enforce_capacity: bool = True,
    ) -> FinalizationResult:
        async with self._sessionmaker() as session:
            async with session.begin():
                booking_row = await session.get(BookingRow, booking_id)
                if booking_row is None:
                    raise NotFound("booking", booking_id)
                booking = Booking.model_validate(booking_row)

                if not needs_finalization(booking, payment_id):
                    event_row = await session.get(EventRow, booking.event_id)
                    return FinalizationResult(
                        booking=booking,
                        event=Event.model_validate(event_row),
                        applied=False,
                    )

                # Step 1: take the seat, only if one is left
                seat_update = (
                    update(EventRow)
                    .where(EventRow.id == booking.event_id)
                    .values(current_participants=EventRow.current_participants + 1)
                    .execution_options(synchronize_session=False)
                )
                if enforce_capacity:
                    seat_update = seat_update.where(
                        EventRow.current_participants < EventRow.max_participants
                    )
                seat_result = await session.execute(seat_update)

                if seat_result.rowcount == 0:
                    event_row = await session.get(EventRow, booking.event_id)
                    if event_row is None:
                        raise NotFound("event", booking.event_id)
                    raise CapacityExceeded(event_row.id, event_row.max_participants)

                # Step 2: claim the booking; loses if someone finalized it first
                changes: dict[str, Any] = {
                    "payment_status": PaymentStatus.COMPLETED.value,
                    "finalized_at": datetime.now(timezone.utc),
                }
                claim = update(BookingRow).where(
                    BookingRow.id == booking_id,
                    BookingRow.finalized_at.is_(None),
                )
                if payment_id is not None:
                    changes["payment_id"] = payment_id
                    claim = claim.where(BookingRow.payment_status == PaymentStatus.PENDING.value)
                claim_result = await session.execute(
                    claim.values(**changes).execution_options(synchronize_session=False)
                )
                if claim_result.rowcount == 0:
                    raise InvalidState(f"Booking {booking_id} was finalized concurrently")

            booking_row = await session.get(BookingRow, booking_id, populate_existing=True)
            event_row = await session.get(EventRow, booking.event_id, populate_existing=True)
            return FinalizationResult(
                booking=Booking.model_validate(booking_row),
                event=Event.model_validate(event_row),
                applied=True,
            )

    @staticmethod
    async def _user_by_email(session: AsyncSession, email: str) -> Optional[UserRow]:
        result = await session.execute(select(UserRow).where(UserRow.email == email))
        return result.scalar_one_or_none()
