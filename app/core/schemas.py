from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Plain acknowledgement returned by state-changing endpoints."""

    success: bool = True
    message: str


class ReasonRequest(BaseModel):
    """Optional free-text note stored on the enrollment row being closed."""

    reason: Optional[str] = Field(None, max_length=500)


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True
