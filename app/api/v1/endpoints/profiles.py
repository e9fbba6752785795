"""Profile endpoints."""

from uuid import UUID

from fastapi import APIRouter

from app.core.exceptions import NotFoundException
from app.dependencies import CurrentUserId, DatabaseSession, ProfileServiceDep
from app.schemas.profiles import ProfileResponse, ProfileUpdate, PublicProfileResponse

router = APIRouter()


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_id: CurrentUserId,
    db: DatabaseSession,
    profile_service: ProfileServiceDep,
):
    """Get the signed-in user's profile."""
    profile = await profile_service.get_profile(db, user_id)
    if not profile:
        raise NotFoundException("Profile not found")
    return profile


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    user_id: CurrentUserId,
    db: DatabaseSession,
    profile_service: ProfileServiceDep,
):
    """Update the signed-in user's names or role. Only provided fields are written."""
    profile = await profile_service.update_profile(db, user_id, profile_data)
    if not profile:
        raise NotFoundException("Profile not found")
    return profile


@router.get("/{profile_id}", response_model=PublicProfileResponse)
async def get_profile(
    profile_id: UUID,
    db: DatabaseSession,
    profile_service: ProfileServiceDep,
):
    """Get the public part of a profile, e.g. to name a reviewer."""
    profile = await profile_service.get_profile(db, profile_id)
    if not profile:
        raise NotFoundException("Profile not found")
    return profile
