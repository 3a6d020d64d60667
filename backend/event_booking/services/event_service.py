"""
Event service handling catalog operations.
"""

from event_booking.core.exceptions import NotFound
from event_booking.core.logging import get_logger
from event_booking.schemas.event import Event, EventCreate
from event_booking.stores.interfaces import RecordStore

logger = get_logger(__name__)


async def create_event(store: RecordStore, event_data: EventCreate) -> Event:
    """Create a new event with no participants yet."""
    event = Event(**event_data.model_dump(), current_participants=0)
    event_id = await store.create_event(event)
    event = event.model_copy(update={"id": event_id})

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        price=str(event.price),
        max_participants=event.max_participants,
    )
    return event


async def get_event(store: RecordStore, event_id: str) -> Event:
    """Get a single event by ID."""
    event = await store.get_event(event_id)
    if event is None:
        raise NotFound("event", event_id)
    return event


async def list_events(store: RecordStore, available_only: bool = False) -> list[Event]:
    """List events by date. ``available_only`` hides events that are full."""
    events = await store.list_events()
    if available_only:
        events = [e for e in events if not e.is_full]
    return events
