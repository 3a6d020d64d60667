"""
User table. One row per distinct (lowercased) email.
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from event_booking.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    # Unique index is the deduplication guarantee for identity resolution
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), nullable=False)
    student_id = Column(String(50), nullable=False)
    registration_date = Column(DateTime(timezone=True), nullable=False)

    bookings = relationship("Booking", back_populates="user", lazy="raise")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
