from event_booking.models.user import User
from event_booking.models.event import Event
from event_booking.models.booking import Booking

__all__ = ["User", "Event", "Booking"]
