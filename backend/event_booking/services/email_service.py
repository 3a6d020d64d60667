"""
Mock email service.

Renders confirmation emails, logs them and keeps every message in an
in-process outbox. The outbox doubles as the admin email history.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from event_booking.core.config import Settings, get_settings
from event_booking.core.logging import get_logger
from event_booking.schemas.event import Event
from event_booking.schemas.user import User
from event_booking.services.interfaces.notifier import Notifier

logger = get_logger(__name__)


class EmailRecord(BaseModel):
    to: str
    subject: str
    body: str
    kind: str  # booking_confirmation, payment_confirmation
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


class MockEmailService(Notifier):
    """Email notifier that records messages instead of delivering them."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.outbox: list[EmailRecord] = []

    async def send_email(self, to: str, subject: str, body: str, kind: str) -> EmailRecord:
        record = EmailRecord(to=to, subject=subject, body=body, kind=kind)
        self.outbox.append(record)
        logger.info(
            "email_sent",
            sender=self.settings.EMAIL_SENDER,
            to=to,
            subject=subject,
            kind=kind,
        )
        return record

    async def send_booking_confirmation(self, user: User, event: Event, booking_id: str) -> None:
        subject = f"Booking Confirmed - {event.title}"
        body = f"""
        Dear {user.name},

        Your spot is booked!

        Booking Details:
        ----------------
        Booking ID: {booking_id}
        Event: {event.title}
        Date: {event.date.isoformat()}
        Time: {event.time}
        {f'Location: {event.location}' if event.location else ''}
        Price: {self._format_price(event)}

        See you there!
        """
        await self.send_email(user.email, subject, body.strip(), kind="booking_confirmation")

    async def send_payment_confirmation(self, user: User, event: Event, payment_id: str) -> None:
        subject = f"Payment Received - {event.title}"
        body = f"""
        Dear {user.name},

        We have received your payment.

        Payment Details:
        ----------------
        Payment ID: {payment_id}
        Event: {event.title}
        Amount Paid: {self._format_price(event)}
        Status: Paid
        """
        await self.send_email(user.email, subject, body.strip(), kind="payment_confirmation")

    def history(self, to: Optional[str] = None) -> list[EmailRecord]:
        """Sent emails, newest first, optionally for one recipient."""
        records = [r for r in self.outbox if to is None or r.to == to]
        return list(reversed(records))

    def _format_price(self, event: Event) -> str:
        if event.is_free:
            return "Free"
        return f"{self.settings.CURRENCY_SYMBOL}{event.price:.2f}"
