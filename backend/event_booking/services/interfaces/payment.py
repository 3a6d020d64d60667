"""
Payment confirmation boundary.
The workflow only needs to know whether money was collected for a booking.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Union


@dataclass(frozen=True)
class PaymentSuccess:
    payment_id: str


@dataclass(frozen=True)
class PaymentCancelled:
    """The payer backed out. Nothing was charged."""


@dataclass(frozen=True)
class PaymentFailed:
    reason: str


PaymentOutcome = Union[PaymentSuccess, PaymentCancelled, PaymentFailed]


class PaymentGateway(ABC):
    """
    Interface for payment providers.

    Implementations:
    - MockPaymentGateway: simulated checkout, optionally scripted
    """

    @abstractmethod
    async def request_payment(self, amount: Decimal, booking_id: str) -> PaymentOutcome:
        """
        Collect ``amount`` for a booking.

        Args:
            amount: Amount to charge, always > 0
            booking_id: Booking the payment is for (reference for the provider)

        Returns:
            PaymentSuccess with the provider's payment id, PaymentCancelled,
            or PaymentFailed with a reason. Provider errors are reported as
            PaymentFailed rather than raised.
        """
        pass
