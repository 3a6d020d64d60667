"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from event_booking.schemas.user import User


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class BookingState(str, Enum):
    """Workflow state of a single booking attempt."""

    DRAFTED = "DRAFTED"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    FINALIZING = "FINALIZING"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"


class NextStep(str, Enum):
    AWAIT_PAYMENT = "AWAIT_PAYMENT"
    FINALIZE = "FINALIZE"


class BookingFormInput(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=10, max_length=15)
    student_id: str = Field(..., min_length=1, max_length=50)

    model_config = {"str_strip_whitespace": True}


class Booking(BaseModel):
    id: Optional[str] = None
    user_id: str
    event_id: str
    booking_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    payment_status: PaymentStatus
    amount: Decimal
    payment_id: Optional[str] = None
    # Set once, when the seat is committed against the event's capacity
    finalized_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None


def booking_state(booking: Booking) -> BookingState:
    """Workflow state implied by a stored booking.

    An aborted payment leaves the row pending, so it reads as
    AWAITING_PAYMENT and can be retried.
    """
    if booking.is_finalized:
        return BookingState.COMPLETED
    if booking.payment_status == PaymentStatus.PENDING:
        return BookingState.AWAITING_PAYMENT
    return BookingState.FINALIZING


class BookingResponse(Booking):
    state: BookingState

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(**booking.model_dump(), state=booking_state(booking))


class BookingResult(BaseModel):
    user: User
    booking: Booking
    next_step: NextStep


class PaymentConfirmation(BaseModel):
    payment_id: str = Field(..., min_length=1, max_length=255)


class BookingSubmitResponse(BaseModel):
    user: User
    booking: BookingResponse
    next_step: NextStep

    @classmethod
    def from_result(cls, result: BookingResult) -> "BookingSubmitResponse":
        return cls(
            user=result.user,
            booking=BookingResponse.from_booking(result.booking),
            next_step=result.next_step,
        )
