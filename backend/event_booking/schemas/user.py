"""
Pydantic schemas for users and admin login.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field


class UserDraft(BaseModel):
    """Contact details of a would-be user, before identity resolution."""

    name: str
    email: str
    phone: str
    student_id: str


class User(BaseModel):
    id: Optional[str] = None
    name: str
    email: str
    phone: str
    student_id: str
    registration_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"from_attributes": True}

    @classmethod
    def from_draft(cls, draft: UserDraft) -> "User":
        return cls(**draft.model_dump())


class AdminLogin(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
