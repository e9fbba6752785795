"""Rating schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class RatingSubmit(BaseModel):
    """Schema for submitting or replacing the caller's rating of a doctor."""

    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


class RatingRespond(BaseModel):
    """Schema for a doctor's public reply to a review."""

    response: str = Field(..., min_length=1, max_length=2000)


class RatingResponse(BaseModel):
    """Rating response schema."""

    id: UUID
    doctor_id: UUID
    user_id: UUID
    rating: int
    comment: str | None = None
    doctor_response: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
