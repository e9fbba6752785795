"""Doctor model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Listing
    Column("name", Text, nullable=False, index=True),
    Column("specialty", String(200), nullable=False, index=True),
    Column("subspecialties", JSON),
    Column("hospital", Text, nullable=False),
    Column("experience", Integer, nullable=False, server_default="0"),
    Column("education", JSON, nullable=False, default=list),
    Column("bio", Text, nullable=False, server_default=""),
    Column("languages", JSON, nullable=False, default=list),
    Column("accepting_new_patients", Boolean, nullable=False, server_default="1", default=True),
    Column("image_url", Text),
    # {"phone", "email", "address", "city", "region"}
    Column("contact", JSON, nullable=False, default=dict),
    # Cached average of doctor_ratings.rating, rounded to one decimal
    Column("rating", Numeric(2, 1), nullable=False, server_default="0", default=0),
    # Ownership
    Column(
        "created_by_user_id",
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        index=True,
    ),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
