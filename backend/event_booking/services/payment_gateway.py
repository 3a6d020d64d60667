"""
Simulated payment gateway.

Stands in for a hosted checkout: by default every request succeeds with a
fresh ``pay_`` identifier. Outcomes can be scripted to exercise the
cancellation and failure paths.
"""

import asyncio
from collections import deque
from decimal import Decimal
from typing import Iterable
from uuid import uuid4

from event_booking.core.logging import get_logger
from event_booking.services.interfaces.payment import (
    PaymentGateway,
    PaymentOutcome,
    PaymentSuccess,
)

logger = get_logger(__name__)


class MockPaymentGateway(PaymentGateway):
    def __init__(self, outcomes: Iterable[PaymentOutcome] = (), latency: float = 0.0):
        self._scripted: deque[PaymentOutcome] = deque(outcomes)
        self.latency = latency
        self.requests: list[tuple[Decimal, str]] = []

    def script(self, *outcomes: PaymentOutcome) -> None:
        """Queue outcomes for the next requests, in order."""
        self._scripted.extend(outcomes)

    async def request_payment(self, amount: Decimal, booking_id: str) -> PaymentOutcome:
        self.requests.append((amount, booking_id))
        if self.latency:
            await asyncio.sleep(self.latency)

        if self._scripted:
            outcome = self._scripted.popleft()
        else:
            outcome = PaymentSuccess(payment_id=f"pay_{uuid4().hex[:14]}")

        logger.info(
            "mock_payment_processed",
            booking_id=booking_id,
            amount=str(amount),
            outcome=type(outcome).__name__,
        )
        return outcome
