"""Create users, profiles, doctors, ratings and verifications tables

Revision ID: 001
Revises:
Create Date: 2026-10-01 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def upgrade() -> None:
    """Create the directory schema."""
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.Column("last_login_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=False, server_default=sa.text("'patient'")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("role IN ('patient', 'doctor')", name="ck_profiles_role"),
    )

    op.create_table(
        "doctors",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("specialty", sa.String(200), nullable=False),
        sa.Column("subspecialties", sa.JSON(), nullable=True),
        sa.Column("hospital", sa.Text(), nullable=False),
        sa.Column("experience", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("education", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("bio", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("languages", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column(
            "accepting_new_patients",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("contact", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("rating", sa.Numeric(2, 1), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by_user_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_doctors_name", "doctors", ["name"])
    op.create_index("ix_doctors_specialty", "doctors", ["specialty"])
    op.create_index("ix_doctors_created_by_user_id", "doctors", ["created_by_user_id"])

    op.create_table(
        "doctor_ratings",
        _uuid_pk(),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("doctor_response", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("doctor_id", "user_id", name="uq_doctor_ratings_doctor_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_doctor_ratings_rating_range"),
    )
    op.create_index("ix_doctor_ratings_doctor_id", "doctor_ratings", ["doctor_id"])

    op.create_table(
        "doctor_verifications",
        _uuid_pk(),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["doctor_id"], ["doctors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "doctor_id", "user_id", name="uq_doctor_verifications_doctor_user"
        ),
    )
    op.create_index("ix_doctor_verifications_doctor_id", "doctor_verifications", ["doctor_id"])
    # One verified claim per person
    op.create_index(
        "uq_doctor_verifications_verified_user",
        "doctor_verifications",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("verified"),
    )


def downgrade() -> None:
    """Drop the directory schema."""
    op.drop_index("uq_doctor_verifications_verified_user", table_name="doctor_verifications")
    op.drop_index("ix_doctor_verifications_doctor_id", table_name="doctor_verifications")
    op.drop_table("doctor_verifications")
    op.drop_index("ix_doctor_ratings_doctor_id", table_name="doctor_ratings")
    op.drop_table("doctor_ratings")
    op.drop_index("ix_doctors_created_by_user_id", table_name="doctors")
    op.drop_index("ix_doctors_specialty", table_name="doctors")
    op.drop_index("ix_doctors_name", table_name="doctors")
    op.drop_table("doctors")
    op.drop_table("profiles")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
