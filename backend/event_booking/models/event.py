"""
Event model with participant accounting.

Key design decisions:
- `current_participants` is denormalized (avoids COUNT query on bookings)
  and incremented by finalization through a conditional UPDATE
- No CHECK ties current_participants to max_participants: overbooking is
  allowed when capacity enforcement is switched off, so the conditional
  UPDATE in SqlRecordStore.commit_finalization is the only capacity guard
"""

from sqlalchemy import Column, Integer, String, Date, Numeric, Index, CheckConstraint
from sqlalchemy.orm import relationship

from event_booking.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    location = Column(String(255), nullable=True)
    date = Column(Date, nullable=False)
    time = Column(String(32), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=0)

    bookings = relationship("Booking", back_populates="event", lazy="raise")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_event_price_non_negative"),
        CheckConstraint("max_participants > 0", name="check_max_participants_positive"),
        CheckConstraint("current_participants >= 0", name="check_current_participants_non_negative"),
        Index("ix_events_date_time", "date", "time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, "
            f"participants={self.current_participants}/{self.max_participants})>"
        )
