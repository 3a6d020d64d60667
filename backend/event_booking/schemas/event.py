"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import date as Date, datetime, timezone
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=255)
    date: Date
    time: str = Field(..., min_length=1, max_length=32)
    price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    max_participants: int = Field(..., gt=0, le=100000)


class Event(BaseModel):
    id: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: Date
    time: str
    price: Decimal = Decimal("0")
    max_participants: int
    current_participants: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"from_attributes": True}

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    @property
    def spots_left(self) -> int:
        return max(self.max_participants - self.current_participants, 0)

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants


class EventListResponse(BaseModel):
    events: list[Event]
    total: int
