"""
Booking endpoints: status, payment and payment confirmation callback.
"""

from fastapi import APIRouter, Depends

from event_booking.api.deps import get_store, get_workflow
from event_booking.core.exceptions import NotFound
from event_booking.schemas.booking import BookingResponse, PaymentConfirmation
from event_booking.services.booking_service import BookingWorkflow
from event_booking.stores.interfaces import RecordStore

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: str,
    store: RecordStore = Depends(get_store),
):
    booking = await store.get_booking(booking_id)
    if booking is None:
        raise NotFound("booking", booking_id)
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/pay", response_model=BookingResponse)
async def pay_booking_endpoint(
    booking_id: str,
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Run the payment gateway for a pending booking.

    Returns 402 when the payment is cancelled or fails; the booking stays
    pending and the call can be repeated.
    """
    booking = await workflow.pay(booking_id)
    return BookingResponse.from_booking(booking)


@router.post("/{booking_id}/confirm-payment", response_model=BookingResponse)
async def confirm_payment_endpoint(
    booking_id: str,
    confirmation: PaymentConfirmation,
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """Payment provider callback: the booking was paid with ``payment_id``."""
    booking = await workflow.confirm_payment(booking_id, confirmation.payment_id)
    return BookingResponse.from_booking(booking)
