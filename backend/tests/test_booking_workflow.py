"""
Tests for the booking workflow: submission, finalization, payment
confirmation, capacity and notification isolation.
"""

import asyncio
from decimal import Decimal

import pytest

from conftest import FailingNotifier, make_event, valid_form
from event_booking.core.exceptions import CapacityExceeded, InvalidState, NotFound, ValidationError
from event_booking.schemas.booking import BookingState, NextStep, PaymentStatus, booking_state
from event_booking.services.booking_service import BookingWorkflow
from event_booking.stores.memory import InMemoryRecordStore


@pytest.mark.asyncio
async def test_free_event_booking_completes_immediately(workflow, store, notifier, free_event):
    """Free submission: one user, one completed zero-amount booking, +1 participant."""
    result = await workflow.book(valid_form(), free_event.id)

    assert result.next_step == NextStep.FINALIZE
    assert result.booking.payment_status == PaymentStatus.COMPLETED
    assert result.booking.amount == Decimal("0")
    assert result.booking.payment_id is None
    assert result.booking.is_finalized

    assert len(await store.list_users()) == 1
    assert len(await store.list_bookings()) == 1
    assert (await store.get_event(free_event.id)).current_participants == 1

    assert [m.kind for m in notifier.outbox] == ["booking_confirmation"]
    assert notifier.outbox[0].to == "a@x.com"


@pytest.mark.asyncio
async def test_submit_free_event_waits_for_finalize(workflow, store, free_event):
    result = await workflow.submit(valid_form(), free_event.id)

    assert result.next_step == NextStep.FINALIZE
    assert result.booking.payment_status == PaymentStatus.COMPLETED
    assert booking_state(result.booking) == BookingState.FINALIZING
    assert (await store.get_event(free_event.id)).current_participants == 0

    booking = await workflow.finalize(result.booking.id)
    assert booking_state(booking) == BookingState.COMPLETED
    assert (await store.get_event(free_event.id)).current_participants == 1


@pytest.mark.asyncio
async def test_paid_event_scenario(workflow, store, notifier, paid_event):
    """Event e1 (500, 1/2 taken): submit, then confirm payment pay_123."""
    result = await workflow.submit(valid_form(), "e1")

    assert result.next_step == NextStep.AWAIT_PAYMENT
    assert result.booking.payment_status == PaymentStatus.PENDING
    assert result.booking.amount == Decimal("500")
    assert booking_state(result.booking) == BookingState.AWAITING_PAYMENT
    assert (await store.get_event("e1")).current_participants == 1
    assert notifier.outbox == []

    booking = await workflow.confirm_payment(result.booking.id, "pay_123")

    assert booking.payment_status == PaymentStatus.COMPLETED
    assert booking.payment_id == "pay_123"
    assert (await store.get_event("e1")).current_participants == 2
    assert [m.kind for m in notifier.outbox] == ["booking_confirmation", "payment_confirmation"]
    assert "pay_123" in notifier.outbox[1].body


@pytest.mark.asyncio
async def test_confirm_payment_twice_is_invalid(workflow, store, paid_event):
    result = await workflow.submit(valid_form(), "e1")
    await workflow.confirm_payment(result.booking.id, "pay_123")

    with pytest.raises(InvalidState):
        await workflow.confirm_payment(result.booking.id, "pay_456")

    booking = await store.get_booking(result.booking.id)
    assert booking.payment_id == "pay_123"
    assert (await store.get_event("e1")).current_participants == 2


@pytest.mark.asyncio
async def test_confirm_payment_unknown_booking(workflow):
    with pytest.raises(NotFound):
        await workflow.confirm_payment("no-such-booking", "pay_123")


@pytest.mark.asyncio
async def test_confirm_payment_requires_payment_id(workflow, paid_event):
    result = await workflow.submit(valid_form(), "e1")

    with pytest.raises(ValidationError) as exc_info:
        await workflow.confirm_payment(result.booking.id, "  ")
    assert exc_info.value.field == "payment_id"


@pytest.mark.asyncio
async def test_confirm_payment_on_free_booking_is_invalid(workflow, free_event):
    result = await workflow.book(valid_form(), free_event.id)
    with pytest.raises(InvalidState):
        await workflow.confirm_payment(result.booking.id, "pay_123")


@pytest.mark.asyncio
async def test_finalize_pending_booking_is_invalid(workflow, store, paid_event):
    result = await workflow.submit(valid_form(), "e1")

    with pytest.raises(InvalidState):
        await workflow.finalize(result.booking.id)
    assert (await store.get_event("e1")).current_participants == 1


@pytest.mark.asyncio
async def test_finalize_is_idempotent(workflow, store, notifier, free_event):
    result = await workflow.submit(valid_form(), free_event.id)

    first = await workflow.finalize(result.booking.id)
    second = await workflow.finalize(result.booking.id)

    assert first.finalized_at == second.finalized_at
    assert (await store.get_event(free_event.id)).current_participants == 1
    assert len(notifier.outbox) == 1


@pytest.mark.asyncio
async def test_finalize_after_confirm_payment_does_not_double_count(workflow, store, paid_event):
    result = await workflow.submit(valid_form(), "e1")
    await workflow.confirm_payment(result.booking.id, "pay_123")

    await workflow.finalize(result.booking.id)
    assert (await store.get_event("e1")).current_participants == 2


@pytest.mark.asyncio
async def test_finalize_on_full_event_raises(workflow, store):
    """Event at capacity: a further finalize fails instead of reaching 3/2."""
    event_id = await store.create_event(make_event(max_participants=2, current_participants=1))
    first = await workflow.submit(valid_form(), event_id)
    second = await workflow.submit(valid_form(email="b@x.com"), event_id)

    await workflow.finalize(first.booking.id)
    assert (await store.get_event(event_id)).current_participants == 2

    with pytest.raises(CapacityExceeded):
        await workflow.finalize(second.booking.id)

    assert (await store.get_event(event_id)).current_participants == 2
    assert booking_state(await store.get_booking(second.booking.id)) == BookingState.FINALIZING


@pytest.mark.asyncio
async def test_confirm_payment_on_full_event_keeps_booking_pending(workflow, store, paid_event):
    first = await workflow.submit(valid_form(), "e1")
    second = await workflow.submit(valid_form(email="b@x.com"), "e1")
    await workflow.confirm_payment(first.booking.id, "pay_1")

    with pytest.raises(CapacityExceeded):
        await workflow.confirm_payment(second.booking.id, "pay_2")

    booking = await store.get_booking(second.booking.id)
    assert booking.payment_status == PaymentStatus.PENDING
    assert booking.payment_id is None
    assert (await store.get_event("e1")).current_participants == 2


@pytest.mark.asyncio
async def test_submit_to_full_event_creates_nothing(workflow, store):
    event_id = await store.create_event(make_event(max_participants=2, current_participants=2))

    with pytest.raises(CapacityExceeded):
        await workflow.submit(valid_form(), event_id)

    assert await store.list_users() == []
    assert await store.list_bookings() == []


@pytest.mark.asyncio
async def test_invalid_email_creates_nothing(workflow, store, free_event):
    with pytest.raises(ValidationError) as exc_info:
        await workflow.submit(valid_form(email="not-an-email"), free_event.id)

    assert exc_info.value.field == "email"
    assert await store.list_users() == []
    assert await store.list_bookings() == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field, value",
    [
        ("name", "A"),
        ("name", "  A  "),
        ("phone", "12345"),
        ("phone", "1" * 16),
        ("student_id", ""),
        ("student_id", "   "),
    ],
)
async def test_invalid_field_is_named(workflow, store, free_event, field, value):
    with pytest.raises(ValidationError) as exc_info:
        await workflow.submit(valid_form(**{field: value}), free_event.id)

    assert exc_info.value.field == field
    assert await store.list_users() == []


@pytest.mark.asyncio
async def test_missing_field_is_named(workflow, free_event):
    form = valid_form()
    del form["phone"]

    with pytest.raises(ValidationError) as exc_info:
        await workflow.submit(form, free_event.id)
    assert exc_info.value.field == "phone"


@pytest.mark.asyncio
async def test_unknown_event_creates_nothing(workflow, store):
    with pytest.raises(NotFound):
        await workflow.submit(valid_form(), "no-such-event")
    assert await store.list_users() == []


@pytest.mark.asyncio
async def test_same_email_twice_yields_one_user(workflow, store, free_event):
    first = await workflow.book(valid_form(), free_event.id)
    second = await workflow.book(valid_form(name="Ann Lee-Park", phone="0987654321"), free_event.id)

    users = await store.list_users()
    assert len(users) == 1
    assert first.user.id == second.user.id == users[0].id
    assert second.user.name == "Ann Lee"

    bookings = await store.list_bookings(event_id=free_event.id)
    assert len(bookings) == 2
    assert {b.user_id for b in bookings} == {users[0].id}


@pytest.mark.asyncio
async def test_concurrent_finalize_never_exceeds_capacity(any_store, payments, notifier, settings):
    workflow = BookingWorkflow(store=any_store, payments=payments, notifier=notifier, settings=settings)
    event_id = await any_store.create_event(make_event(max_participants=3))
    submissions = [
        await workflow.submit(valid_form(email=f"student{i}@uni.edu"), event_id)
        for i in range(10)
    ]

    outcomes = await asyncio.gather(
        *(workflow.finalize(s.booking.id) for s in submissions),
        return_exceptions=True,
    )

    finalized = [o for o in outcomes if not isinstance(o, Exception)]
    rejected = [o for o in outcomes if isinstance(o, CapacityExceeded)]
    assert len(finalized) == 3
    assert len(rejected) == 7
    assert (await any_store.get_event(event_id)).current_participants == 3


@pytest.mark.asyncio
async def test_concurrent_finalize_of_one_booking_counts_once(workflow, store, free_event):
    result = await workflow.submit(valid_form(), free_event.id)

    await asyncio.gather(*(workflow.finalize(result.booking.id) for _ in range(5)))

    assert (await store.get_event(free_event.id)).current_participants == 1


@pytest.mark.asyncio
async def test_overbooking_allowed_when_capacity_not_enforced(store, payments, notifier, settings):
    lenient = BookingWorkflow(
        store=store,
        payments=payments,
        notifier=notifier,
        settings=settings.model_copy(update={"ENFORCE_CAPACITY": False}),
    )
    event_id = await store.create_event(make_event(max_participants=2, current_participants=2))

    result = await lenient.book(valid_form(), event_id)

    assert result.booking.is_finalized
    assert (await store.get_event(event_id)).current_participants == 3


@pytest.mark.asyncio
async def test_notification_failure_does_not_block_booking(store, payments, settings, paid_event):
    failing = FailingNotifier()
    workflow = BookingWorkflow(store=store, payments=payments, notifier=failing, settings=settings)

    result = await workflow.submit(valid_form(), "e1")
    booking = await workflow.confirm_payment(result.booking.id, "pay_123")

    assert failing.attempts == 2
    assert booking.payment_status == PaymentStatus.COMPLETED
    assert booking.is_finalized
    assert (await store.get_event("e1")).current_participants == 2


class SeatTakenStore(InMemoryRecordStore):
    """Another attempt takes the last seat right after our booking is stored."""

    async def create_booking(self, booking):
        booking_id = await super().create_booking(booking)
        event = await self.get_event(booking.event_id)
        await self.update_event(event.id, {"current_participants": event.max_participants})
        return booking_id


@pytest.mark.asyncio
async def test_book_losing_last_seat_leaves_no_booking(payments, notifier, settings):
    store = SeatTakenStore()
    workflow = BookingWorkflow(store=store, payments=payments, notifier=notifier, settings=settings)
    event_id = await store.create_event(make_event(max_participants=1))

    with pytest.raises(CapacityExceeded):
        await workflow.book(valid_form(), event_id)

    assert await store.list_bookings() == []
    assert (await store.get_event(event_id)).current_participants == 1
    assert notifier.outbox == []
