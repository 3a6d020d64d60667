"""
Booking model: one seat for one user at one event.

Key design decisions:
- user_id / event_id are foreign keys, never embedded copies
- finalized_at is set exactly once, in the same transaction that
  increments the event's participant count
"""

from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from event_booking.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    booking_date = Column(DateTime(timezone=True), nullable=False)
    payment_status = Column(String(20), nullable=False)  # pending, completed
    amount = Column(Numeric(10, 2), nullable=False)
    payment_id = Column(String(255), nullable=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="bookings", lazy="raise")
    event = relationship("Event", back_populates="bookings", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('pending', 'completed')", name="check_booking_payment_status"
        ),
        CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, user={self.user_id}, event={self.event_id}, "
            f"status={self.payment_status})>"
        )
