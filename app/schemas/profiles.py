"""Profile schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.profiles import UserRole


class ProfileUpdate(BaseModel):
    """Schema for updating the signed-in user's profile."""

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    role: UserRole | None = None


class ProfileResponse(BaseModel):
    """Profile response schema."""

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PublicProfileResponse(BaseModel):
    """Profile fields shown next to reviews."""

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole
