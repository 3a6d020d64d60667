"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment import PaymentGateway, PaymentOutcome, PaymentSuccess, PaymentCancelled, PaymentFailed
from .notifier import Notifier

__all__ = [
    'PaymentGateway', 'PaymentOutcome', 'PaymentSuccess', 'PaymentCancelled', 'PaymentFailed',
    'Notifier',
]
