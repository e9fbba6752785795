"""Rating and review endpoints."""

from uuid import UUID

from fastapi import APIRouter

from app.core.exceptions import NotFoundException
from app.dependencies import (
    CurrentSession,
    CurrentUserId,
    DatabaseSession,
    DoctorServiceDep,
    RatingServiceDep,
)
from app.schemas.ratings import RatingRespond, RatingResponse, RatingSubmit

router = APIRouter()


@router.get("/doctors/{doctor_id}/ratings", response_model=list[RatingResponse])
async def list_doctor_ratings(
    doctor_id: UUID,
    db: DatabaseSession,
    doctor_service: DoctorServiceDep,
    rating_service: RatingServiceDep,
):
    """List a doctor's reviews, newest first."""
    if not await doctor_service.get_doctor_by_id(db, doctor_id):
        raise NotFoundException("Doctor not found")

    return await rating_service.list_ratings_for_doctor(db, doctor_id)


@router.get("/doctors/{doctor_id}/ratings/me", response_model=RatingResponse)
async def get_my_rating(
    doctor_id: UUID,
    user_id: CurrentUserId,
    db: DatabaseSession,
    rating_service: RatingServiceDep,
):
    """Get the rating the signed-in user left for this doctor."""
    rating = await rating_service.get_user_rating(db, doctor_id, user_id)
    if not rating:
        raise NotFoundException("Rating not found")
    return rating


@router.put("/doctors/{doctor_id}/ratings", response_model=RatingResponse)
async def submit_rating(
    doctor_id: UUID,
    rating_data: RatingSubmit,
    user_id: CurrentUserId,
    db: DatabaseSession,
    rating_service: RatingServiceDep,
):
    """
    Rate a doctor.

    A second submission by the same user replaces the first; the doctor's
    average rating is refreshed either way.
    """
    return await rating_service.submit_rating(
        db, doctor_id, user_id, rating_data.rating, rating_data.comment
    )


@router.get("/doctors/{doctor_id}/ratings/unanswered", response_model=list[RatingResponse])
async def list_unanswered_ratings(
    doctor_id: UUID,
    session: CurrentSession,
    db: DatabaseSession,
    rating_service: RatingServiceDep,
):
    """Reviews without a reply yet. Polled by the profile owner's notification panel."""
    session.require_user()
    return await rating_service.list_unanswered_ratings(db, doctor_id, session.user_id)


@router.post("/ratings/{rating_id}/response", response_model=RatingResponse)
async def respond_to_rating(
    rating_id: UUID,
    response_data: RatingRespond,
    user_id: CurrentUserId,
    db: DatabaseSession,
    rating_service: RatingServiceDep,
):
    """Reply publicly to a review of a profile you manage."""
    return await rating_service.respond_to_rating(db, rating_id, response_data.response, user_id)
