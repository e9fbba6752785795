"""Doctor schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from app.services.verification_service import VerificationState

# ============================================================================
# Contact
# ============================================================================


class DoctorContact(BaseModel):
    """Structured contact details for a doctor listing."""

    phone: str = Field("", max_length=50)
    email: str = Field("", max_length=320)
    address: str = ""
    city: str | None = None
    region: str | None = None


# ============================================================================
# Doctor Base Schemas
# ============================================================================


class DoctorBase(BaseModel):
    """Base schema for doctor."""

    name: str = Field(..., min_length=1, max_length=200)
    specialty: str = Field(..., min_length=1, max_length=200)
    subspecialties: list[str] | None = None
    hospital: str = Field(..., min_length=1)
    experience: int = Field(0, ge=0, le=80)
    education: list[str] = Field(default_factory=list)
    bio: str = ""
    languages: list[str] = Field(default_factory=list)
    accepting_new_patients: bool = True
    image_url: str | None = None
    contact: DoctorContact = Field(default_factory=DoctorContact)


class DoctorCreate(DoctorBase):
    """Schema for creating a doctor."""


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor. Only provided fields are written."""

    name: str | None = Field(None, min_length=1, max_length=200)
    specialty: str | None = Field(None, min_length=1, max_length=200)
    subspecialties: list[str] | None = None
    hospital: str | None = Field(None, min_length=1)
    experience: int | None = Field(None, ge=0, le=80)
    education: list[str] | None = None
    bio: str | None = None
    languages: list[str] | None = None
    accepting_new_patients: bool | None = None
    image_url: str | None = None
    contact: DoctorContact | None = None


class DoctorResponse(DoctorBase):
    """Doctor response schema."""

    id: UUID
    rating: Decimal = Decimal("0")
    created_by_user_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("rating", when_used="json")
    def serialize_rating(self, value: Decimal) -> float:
        """Serialize the cached average as a one-decimal number."""
        return round(float(value), 1)


class DoctorDetailResponse(DoctorResponse):
    """Doctor detail with verification state for the current viewer."""

    is_verified: bool = False
    verification_state: VerificationState = VerificationState.UNCLAIMED
    can_manage: bool = False


# ============================================================================
# Doctor Verification Schemas
# ============================================================================


class DoctorVerificationStatus(BaseModel):
    """Verification and ownership as seen by the current viewer."""

    doctor_id: UUID
    is_verified: bool
    verification_state: VerificationState
    can_manage: bool
    can_claim: bool


class DoctorVerificationResponse(BaseModel):
    """A stored profile claim."""

    id: UUID
    doctor_id: UUID
    user_id: UUID
    verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Doctor Search Schemas
# ============================================================================


class DoctorSearchParams(BaseModel):
    """Doctor search parameters."""

    specialty: str | None = None
    search: str | None = None
    city: str | None = None
    region: str | None = None
    skip: int = Field(0, ge=0)
    limit: int = Field(20, ge=1, le=100)

    def cache_key(self) -> str:
        """Stable cache key for this filter combination."""
        parts = [self.specialty, self.search, self.city, self.region]
        normalized = ":".join((p or "").strip().lower() for p in parts)
        return f"doctor:list:{self.skip}:{self.limit}:{normalized}"
