"""Profile model definition using SQLAlchemy Core."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Table, Text, Uuid, func

from app.models.base import metadata


class UserRole(str, Enum):
    """Application roles attached to a profile."""

    PATIENT = "patient"
    DOCTOR = "doctor"


profiles = Table(
    "profiles",
    metadata,
    # Same ID as the identity it belongs to
    Column("id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("role", Text, nullable=False, server_default=UserRole.PATIENT.value),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("role IN ('patient', 'doctor')", name="ck_profiles_role"),
)
