"""
Error taxonomy for the booking core.

Every error carries a stable code, a user-safe message and the HTTP status
the API layer maps it to. Services raise these; nothing below the API layer
knows about HTTP beyond the status number.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    PAYMENT_CANCELLED = "PAYMENT_CANCELLED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"


class BookingError(Exception):
    """Base error with code and user-safe message."""

    code: ErrorCode = ErrorCode.INVALID_STATE
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(BookingError):
    """Bad form input. Recoverable by resubmitting with the field fixed."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 422

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class NotFound(BookingError):
    """Reference to an unknown user, event or booking."""

    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity.capitalize()} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidState(BookingError):
    """Operation attempted against a booking in the wrong state."""

    code = ErrorCode.INVALID_STATE
    status_code = 409


class CapacityExceeded(BookingError):
    code = ErrorCode.CAPACITY_EXCEEDED
    status_code = 409

    def __init__(self, event_id: str, max_participants: Optional[int] = None) -> None:
        super().__init__(f"Event {event_id} is fully booked")
        self.event_id = event_id
        self.max_participants = max_participants


class PaymentCancelledError(BookingError):
    code = ErrorCode.PAYMENT_CANCELLED
    status_code = 402

    def __init__(self, booking_id: str) -> None:
        super().__init__("Payment was cancelled; the booking is still pending")
        self.booking_id = booking_id


class PaymentFailedError(BookingError):
    code = ErrorCode.PAYMENT_FAILED
    status_code = 402

    def __init__(self, booking_id: str, reason: str) -> None:
        super().__init__(f"Payment failed: {reason}")
        self.booking_id = booking_id
        self.reason = reason


class AuthenticationError(BookingError):
    code = ErrorCode.AUTHENTICATION_FAILED
    status_code = 401

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)
