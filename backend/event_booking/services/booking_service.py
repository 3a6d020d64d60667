"""
Booking workflow: submission, payment and finalization.

STATE MACHINE (per booking attempt)
===================================

  DRAFTED --(free)--> FINALIZING --> COMPLETED
  DRAFTED --(paid)--> AWAITING_PAYMENT --(confirmed)--> FINALIZING --> COMPLETED
                                       --(cancelled/failed)--> ABORTED

  submit()          DRAFTED -> AWAITING_PAYMENT | FINALIZING
  confirm_payment() AWAITING_PAYMENT -> COMPLETED
  finalize()        FINALIZING -> COMPLETED (no-op when already COMPLETED)
  pay()             drives the payment boundary, then confirm_payment()

Finalizing counts the booking against the event's capacity. That
increment and the booking's transition happen in one store operation
(commit_finalization), so:

  - a booking is counted at most once, however many times finalize or
    confirm_payment run, concurrently or not
  - a full event rejects the booking with CapacityExceeded and nothing is
    written

An aborted payment leaves the pending booking in place. It stays
resumable: pay() or confirm_payment() can be called on it again.
pay() calls for one booking are serialized in-process, so a booking is
charged at most once; a charge that still cannot be confirmed is logged as
payment_requires_refund.

book() discards a free booking whose finalize loses the last seat to a
concurrent caller, so a rejected attempt leaves no booking behind.

Confirmation emails go out after the commit and never undo it; a failing
notifier is logged and counted, not raised.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from event_booking.core.config import Settings, get_settings
from event_booking.core.exceptions import (
    CapacityExceeded,
    InvalidState,
    NotFound,
    PaymentCancelledError,
    PaymentFailedError,
    ValidationError,
)
from event_booking.core.logging import get_logger
from event_booking.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_notification,
    record_payment_outcome,
)
from event_booking.schemas.booking import (
    Booking,
    BookingFormInput,
    BookingResult,
    NextStep,
    PaymentStatus,
)
from event_booking.schemas.event import Event
from event_booking.schemas.user import User, UserDraft
from event_booking.services.identity_service import resolve_user
from event_booking.services.interfaces.notifier import Notifier
from event_booking.services.interfaces.payment import (
    PaymentCancelled,
    PaymentGateway,
    PaymentSuccess,
)
from event_booking.stores.interfaces import FinalizationResult, RecordStore

logger = get_logger(__name__)

FormInput = Union[BookingFormInput, Mapping[str, Any]]


def validate_form(form_input: FormInput) -> BookingFormInput:
    """Validate raw form input, naming the first offending field on failure."""
    if isinstance(form_input, BookingFormInput):
        return form_input
    try:
        return BookingFormInput.model_validate(dict(form_input))
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = str(first["loc"][0]) if first["loc"] else "form"
        raise ValidationError(field, f"{field}: {first['msg']}") from exc


class BookingWorkflow:
    """Orchestrates users, bookings, payment and capacity for one store."""

    def __init__(
        self,
        store: RecordStore,
        payments: PaymentGateway,
        notifier: Notifier,
        settings: Optional[Settings] = None,
    ) -> None:
        self.store = store
        self.payments = payments
        self.notifier = notifier
        self.settings = settings or get_settings()
        # booking id -> (lock, number of pay() calls holding or awaiting it)
        self._payment_locks: dict[str, tuple[asyncio.Lock, int]] = {}

    async def submit(self, form_input: FormInput, event_id: str) -> BookingResult:
        """
        Record the user and a booking for an event.

        Paid events get a pending booking and AWAIT_PAYMENT; free events get
        a completed booking and FINALIZE. Nothing is written when the form
        is invalid, the event is unknown or (when enforced) already full.
        """
        started = time.perf_counter()
        try:
            form = validate_form(form_input)
        except ValidationError as exc:
            record_booking_attempt("invalid")
            logger.info("booking_rejected", event_id=event_id, field=exc.field)
            raise

        event = await self._require_event(event_id)
        if self.settings.ENFORCE_CAPACITY and event.is_full:
            record_booking_attempt("capacity_exceeded")
            logger.warning("booking_rejected_event_full", event_id=event.id)
            raise CapacityExceeded(event.id, event.max_participants)

        user = await resolve_user(self.store, UserDraft(**form.model_dump()))

        booking = Booking(
            user_id=user.id,
            event_id=event.id,
            payment_status=PaymentStatus.COMPLETED if event.is_free else PaymentStatus.PENDING,
            amount=event.price,
        )
        booking_id = await self.store.create_booking(booking)
        booking = booking.model_copy(update={"id": booking_id})

        next_step = NextStep.FINALIZE if event.is_free else NextStep.AWAIT_PAYMENT
        record_booking_attempt("submitted")
        booking_latency.observe(time.perf_counter() - started)
        logger.info(
            "booking_submitted",
            booking_id=booking.id,
            user_id=user.id,
            event_id=event.id,
            amount=str(booking.amount),
            next_step=next_step.value,
        )
        return BookingResult(user=user, booking=booking, next_step=next_step)

    async def book(self, form_input: FormInput, event_id: str) -> BookingResult:
        """Submit, and finalize straight away when the event is free."""
        result = await self.submit(form_input, event_id)
        if result.next_step == NextStep.FINALIZE:
            try:
                booking = await self.finalize(result.booking.id)
            except CapacityExceeded:
                # Lost the last seat after the pre-check; leave no orphan row
                await self.store.delete_booking(result.booking.id)
                logger.info("booking_discarded", booking_id=result.booking.id, event_id=event_id)
                raise
            result = result.model_copy(update={"booking": booking})
        return result

    async def finalize(self, booking_id: str) -> Booking:
        """
        Count a completed booking against capacity and send the confirmation.

        Idempotent: a booking that is already finalized is returned as is,
        without a second increment or a second email.

        Raises:
            NotFound: unknown booking or event.
            InvalidState: the booking is still awaiting payment.
            CapacityExceeded: the event is full (when enforced).
        """
        result = await self._commit(booking_id)
        if result.applied:
            user = await self._require_user(result.booking.user_id)
            await self._notify(
                "booking",
                self.notifier.send_booking_confirmation,
                user, result.event, result.booking.id,
            )
        return result.booking

    async def confirm_payment(self, booking_id: str, payment_id: str) -> Booking:
        """
        Record a successful payment and finalize the booking.

        Raises:
            ValidationError: empty payment id.
            NotFound: unknown booking.
            InvalidState: the booking is not awaiting payment (e.g. already
                confirmed). Capacity is never incremented twice.
            CapacityExceeded: the event filled up while the payment was in
                flight. The booking stays pending and the payment must be
                refunded.
        """
        if not payment_id or not payment_id.strip():
            raise ValidationError("payment_id", "payment_id: Payment ID is required")

        booking = await self._require_booking(booking_id)
        if booking.payment_status != PaymentStatus.PENDING:
            raise InvalidState(f"Booking {booking_id} is not awaiting payment")

        try:
            result = await self._commit(booking_id, payment_id=payment_id)
        except CapacityExceeded:
            logger.warning(
                "payment_requires_refund",
                booking_id=booking_id,
                payment_id=payment_id,
                amount=str(booking.amount),
            )
            raise

        logger.info("payment_confirmed", booking_id=booking_id, payment_id=payment_id)

        user = await self._require_user(result.booking.user_id)
        await self._notify(
            "booking",
            self.notifier.send_booking_confirmation,
            user, result.event, result.booking.id,
        )
        await self._notify(
            "payment",
            self.notifier.send_payment_confirmation,
            user, result.event, payment_id,
        )
        return result.booking

    async def pay(self, booking_id: str) -> Booking:
        """
        Collect payment for a pending booking through the payment gateway.

        On success the booking is confirmed and finalized. On cancellation
        or failure it stays pending and PaymentCancelledError or
        PaymentFailedError is raised; the attempt can be retried.

        Calls for the same booking run one at a time, so a second
        concurrent pay() sees the booking completed and raises InvalidState
        without charging again.
        """
        async with self._payment_guard(booking_id):
            return await self._pay(booking_id)

    async def _pay(self, booking_id: str) -> Booking:
        booking = await self._require_booking(booking_id)
        if booking.payment_status != PaymentStatus.PENDING:
            raise InvalidState(f"Booking {booking_id} is not awaiting payment")

        # Do not charge for a seat that no longer exists
        event = await self._require_event(booking.event_id)
        if self.settings.ENFORCE_CAPACITY and event.is_full:
            record_booking_attempt("capacity_exceeded")
            raise CapacityExceeded(event.id, event.max_participants)

        outcome = await self.payments.request_payment(booking.amount, booking.id)

        if isinstance(outcome, PaymentSuccess):
            record_payment_outcome("success")
            try:
                return await self.confirm_payment(booking.id, outcome.payment_id)
            except InvalidState:
                # Charged, but the booking was settled by another caller
                logger.warning(
                    "payment_requires_refund",
                    booking_id=booking.id,
                    payment_id=outcome.payment_id,
                    amount=str(booking.amount),
                )
                raise

        if isinstance(outcome, PaymentCancelled):
            record_payment_outcome("cancelled")
            logger.info("payment_aborted", booking_id=booking.id, reason="cancelled")
            raise PaymentCancelledError(booking.id)

        record_payment_outcome("failed")
        logger.warning("payment_aborted", booking_id=booking.id, reason=outcome.reason)
        raise PaymentFailedError(booking.id, outcome.reason)

    @asynccontextmanager
    async def _payment_guard(self, booking_id: str) -> AsyncIterator[None]:
        lock, holders = self._payment_locks.get(booking_id, (asyncio.Lock(), 0))
        self._payment_locks[booking_id] = (lock, holders + 1)
        try:
            async with lock:
                yield
        finally:
            lock, holders = self._payment_locks[booking_id]
            if holders == 1:
                del self._payment_locks[booking_id]
            else:
                self._payment_locks[booking_id] = (lock, holders - 1)

    async def _commit(
        self, booking_id: str, payment_id: Optional[str] = None
    ) -> FinalizationResult:
        try:
            result = await self.store.commit_finalization(
                booking_id,
                payment_id=payment_id,
                enforce_capacity=self.settings.ENFORCE_CAPACITY,
            )
        except CapacityExceeded as exc:
            record_booking_attempt("capacity_exceeded")
            logger.warning("booking_capacity_exceeded", booking_id=booking_id, event_id=exc.event_id)
            raise

        if not result.applied:
            logger.info("booking_already_finalized", booking_id=booking_id)
            return result

        record_booking_attempt("finalized")
        if result.event.current_participants > result.event.max_participants:
            logger.warning(
                "event_overbooked",
                event_id=result.event.id,
                participants=result.event.current_participants,
                max_participants=result.event.max_participants,
            )
        logger.info(
            "booking_finalized",
            booking_id=booking_id,
            event_id=result.event.id,
            participants=result.event.current_participants,
        )
        return result

    async def _notify(self, kind: str, send: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await send(*args)
        except Exception:
            record_notification(kind, sent=False)
            logger.exception("notification_failed", kind=kind)
            return
        record_notification(kind, sent=True)

    async def _require_event(self, event_id: str) -> Event:
        event = await self.store.get_event(event_id)
        if event is None:
            raise NotFound("event", event_id)
        return event

    async def _require_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise NotFound("booking", booking_id)
        return booking

    async def _require_user(self, user_id: str) -> User:
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFound("user", user_id)
        return user
