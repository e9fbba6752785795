"""Profile service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.profiles import UserRole, profiles
from app.schemas.profiles import ProfileUpdate


class ProfileService:
    """Service for profile operations."""

    async def get_profile(self, db: AsyncSession, user_id: UUID) -> dict | None:
        """Get the profile attached to an identity."""
        query = select(profiles).where(profiles.c.id == user_id)
        result = await db.execute(query)
        profile = result.mappings().first()
        return dict(profile) if profile else None

    async def create_profile(
        self,
        db: AsyncSession,
        user_id: UUID,
        role: UserRole,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> dict:
        """
        Provision the profile for a new identity.

        The caller owns the transaction: sign-up creates the identity and its
        profile together and commits once.
        """
        query = (
            profiles.insert()
            .values(id=user_id, role=role.value, first_name=first_name, last_name=last_name)
            .returning(profiles)
        )
        result = await db.execute(query)
        profile = result.mappings().first()

        if not profile:
            raise ValueError("Failed to create profile")

        return dict(profile)

    async def update_profile(
        self, db: AsyncSession, user_id: UUID, profile_data: ProfileUpdate
    ) -> dict | None:
        """Update the signed-in user's own profile."""
        update_values = profile_data.model_dump(exclude_unset=True, exclude_none=True)
        if "role" in update_values:
            update_values["role"] = UserRole(update_values["role"]).value

        if not update_values:
            return await self.get_profile(db, user_id)

        query = (
            update(profiles)
            .where(profiles.c.id == user_id)
            .values(**update_values, updated_at=datetime.now(UTC))
            .returning(profiles)
        )
        result = await db.execute(query)
        profile = result.mappings().first()
        await db.commit()

        return dict(profile) if profile else None
