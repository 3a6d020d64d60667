"""
Record store factory.
Configures which store backend to use.
"""

from event_booking.core.config import Settings
from event_booking.stores.interfaces import RecordStore
from event_booking.stores.memory import InMemoryRecordStore


def get_record_store(settings: Settings) -> RecordStore:
    """
    Build the configured record store.

    Backend selection via STORE_BACKEND:
    - memory: InMemoryRecordStore (default, process lifetime)
    - sql:    SqlRecordStore on DATABASE_URL (durable)

    Every call returns a new, isolated instance.
    """
    backend = settings.STORE_BACKEND.lower()

    if backend == "sql":
        # Imported lazily so the in-memory backend needs no database driver
        from event_booking.stores.sql import SqlRecordStore

        return SqlRecordStore(settings.DATABASE_URL, echo=settings.DB_ECHO)
    if backend == "memory":
        return InMemoryRecordStore()
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")
