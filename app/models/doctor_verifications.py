"""Doctor verification (profile claim) model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Table,
    UniqueConstraint,
    Uuid,
    func,
    text,
)

from app.models.base import metadata

doctor_verifications = Table(
    "doctor_verifications",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column(
        "doctor_id",
        Uuid,
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("verified", Boolean, nullable=False, server_default="0", default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("doctor_id", "user_id", name="uq_doctor_verifications_doctor_user"),
    # A person may hold at most one verified claim
    Index(
        "uq_doctor_verifications_verified_user",
        "user_id",
        unique=True,
        postgresql_where=text("verified"),
        sqlite_where=text("verified"),
    ),
)
