"""
Record store layer: the only shared mutable state in the process.
"""

from event_booking.stores.interfaces import FinalizationResult, RecordStore, normalize_email
from event_booking.stores.memory import InMemoryRecordStore
from event_booking.stores.factory import get_record_store

__all__ = [
    "FinalizationResult",
    "RecordStore",
    "InMemoryRecordStore",
    "get_record_store",
    "normalize_email",
]
