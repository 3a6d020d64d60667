from event_booking.schemas.user import User, UserDraft, AdminLogin, Token
from event_booking.schemas.event import Event, EventCreate, EventListResponse
from event_booking.schemas.booking import (
    Booking, BookingFormInput, BookingResponse, BookingResult, BookingState,
    BookingSubmitResponse, NextStep, booking_state,
    PaymentConfirmation, PaymentStatus,
)

__all__ = [
    "User", "UserDraft", "AdminLogin", "Token",
    "Event", "EventCreate", "EventListResponse",
    "Booking", "BookingFormInput", "BookingResponse", "BookingResult", "BookingState",
    "BookingSubmitResponse", "NextStep", "booking_state",
    "PaymentConfirmation", "PaymentStatus",
]
