"""
Notification boundary: confirmation emails sent after a booking is final.
"""

from abc import ABC, abstractmethod

from event_booking.schemas.event import Event
from event_booking.schemas.user import User


class Notifier(ABC):
    """
    Interface for delivering booking notifications.

    Implementations:
    - MockEmailService: renders the email, logs it and keeps an outbox

    Callers treat every method as fire-and-forget: an exception raised here
    is logged by the workflow and never undoes a booking.
    """

    @abstractmethod
    async def send_booking_confirmation(self, user: User, event: Event, booking_id: str) -> None:
        pass

    @abstractmethod
    async def send_payment_confirmation(self, user: User, event: Event, payment_id: str) -> None:
        pass
