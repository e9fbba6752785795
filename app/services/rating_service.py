"""Rating service: reviews and the cached average on each doctor."""

from collections.abc import Iterable
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.core.redis_client import CacheManager
from app.models.doctor_ratings import doctor_ratings
from app.models.doctors import doctors
from app.services.verification_service import VerificationService

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def average_rating(scores: Iterable[int]) -> Decimal:
    """Mean of ``scores`` rounded half-up to one decimal, or 0 when empty."""
    values = list(scores)
    if not values:
        return Decimal("0")

    mean = Decimal(sum(values)) / Decimal(len(values))
    return mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


class RatingService:
    """Service for rating operations."""

    def __init__(
        self,
        cache_manager: CacheManager | None = None,
        verification_service: VerificationService | None = None,
    ):
        """Initialize service with optional cache manager and resolver."""
        self.cache = cache_manager
        self.verification = verification_service or VerificationService()

    # ------------------------------------------------------------------
    # Store reads
    # ------------------------------------------------------------------

    async def list_ratings_for_doctor(self, db: AsyncSession, doctor_id: UUID) -> list[dict]:
        """Get all ratings for a doctor, newest first."""
        query = (
            select(doctor_ratings)
            .where(doctor_ratings.c.doctor_id == doctor_id)
            .order_by(doctor_ratings.c.created_at.desc())
        )
        result = await db.execute(query)
        return [dict(r) for r in result.mappings().all()]

    async def get_user_rating(
        self, db: AsyncSession, doctor_id: UUID, user_id: UUID
    ) -> dict | None:
        """Get the rating a user left for a doctor."""
        query = select(doctor_ratings).where(
            doctor_ratings.c.doctor_id == doctor_id,
            doctor_ratings.c.user_id == user_id,
        )
        result = await db.execute(query)
        rating = result.mappings().first()
        return dict(rating) if rating else None

    async def get_rating_by_id(self, db: AsyncSession, rating_id: UUID) -> dict | None:
        """Get rating by ID."""
        result = await db.execute(select(doctor_ratings).where(doctor_ratings.c.id == rating_id))
        rating = result.mappings().first()
        return dict(rating) if rating else None

    async def list_unanswered_ratings(
        self, db: AsyncSession, doctor_id: UUID, viewer_id: UUID | None
    ) -> list[dict]:
        """Get reviews still waiting for a doctor reply. Owners only."""
        if not await self.verification.can_manage(db, doctor_id, viewer_id):
            raise ForbiddenException("Only the owner of this profile can see pending reviews")

        query = (
            select(doctor_ratings)
            .where(
                doctor_ratings.c.doctor_id == doctor_id,
                doctor_ratings.c.doctor_response.is_(None),
            )
            .order_by(doctor_ratings.c.created_at.desc())
        )
        result = await db.execute(query)
        return [dict(r) for r in result.mappings().all()]

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    async def recompute_average(self, db: AsyncSession, doctor_id: UUID) -> float:
        """
        Recompute and store a doctor's average rating.

        Always reads the full current rating set, so running it again after a
        concurrent write converges on the right value. The doctor row and the
        cached listings are only touched when the average actually changed.

        Args:
            db: Database session
            doctor_id: Doctor whose cached average is refreshed

        Returns:
            The stored average, 0 when the doctor has no ratings
        """
        result = await db.execute(
            select(doctor_ratings.c.rating).where(doctor_ratings.c.doctor_id == doctor_id)
        )
        average = average_rating(result.scalars().all())

        current = await db.execute(select(doctors.c.rating).where(doctors.c.id == doctor_id))
        stored = current.scalar_one_or_none()
        if stored is not None and Decimal(str(stored)) == average:
            return float(average)

        await db.execute(update(doctors).where(doctors.c.id == doctor_id).values(rating=average))
        await db.commit()

        if self.cache:
            self.cache.delete_pattern("doctor:list:*")

        return float(average)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _insert_rating(
        self, db: AsyncSession, doctor_id: UUID, user_id: UUID, rating: int, comment: str | None
    ) -> dict:
        query = (
            doctor_ratings.insert()
            .values(doctor_id=doctor_id, user_id=user_id, rating=rating, comment=comment)
            .returning(doctor_ratings)
        )
        result = await db.execute(query)
        stored = result.mappings().first()
        await db.commit()

        if not stored:
            raise ValueError("Failed to create rating")

        return dict(stored)

    async def _update_rating(
        self, db: AsyncSession, rating_id: UUID, rating: int, comment: str | None
    ) -> dict:
        # doctor_response is left untouched
        query = (
            update(doctor_ratings)
            .where(doctor_ratings.c.id == rating_id)
            .values(rating=rating, comment=comment, updated_at=datetime.now(UTC))
            .returning(doctor_ratings)
        )
        result = await db.execute(query)
        stored = result.mappings().first()
        await db.commit()

        if not stored:
            raise NotFoundException("Rating not found")

        return dict(stored)

    async def submit_rating(
        self,
        db: AsyncSession,
        doctor_id: UUID,
        user_id: UUID,
        rating: int,
        comment: str | None = None,
    ) -> dict:
        """
        Create or replace a user's rating of a doctor and refresh the average.

        Args:
            db: Database session
            doctor_id: Doctor being rated
            user_id: Rater identity
            rating: Score between 1 and 5
            comment: Optional review text

        Returns:
            The stored rating

        Raises:
            ValidationException: If the score is outside 1..5
            NotFoundException: If the doctor does not exist
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValidationException("Rating must be a whole number")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationException(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        doctor = await db.execute(select(doctors.c.id).where(doctors.c.id == doctor_id))
        if doctor.first() is None:
            raise NotFoundException("Doctor not found")

        existing = await self.get_user_rating(db, doctor_id, user_id)
        if existing:
            stored = await self._update_rating(db, existing["id"], rating, comment)
        else:
            try:
                stored = await self._insert_rating(db, doctor_id, user_id, rating, comment)
            except IntegrityError:
                # Lost a race with a concurrent submission from the same rater.
                await db.rollback()
                winner = await self.get_user_rating(db, doctor_id, user_id)
                if winner is None:
                    raise
                stored = await self._update_rating(db, winner["id"], rating, comment)

        logger.info(
            "rating_submitted",
            doctor_id=str(doctor_id),
            user_id=str(user_id),
            rating=rating,
            replaced=existing is not None,
        )

        # The rating is saved at this point; a stale average heals on the next read.
        try:
            await self.recompute_average(db, doctor_id)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("average_recompute_failed", doctor_id=str(doctor_id), error=str(e))

        return stored

    async def respond_to_rating(
        self,
        db: AsyncSession,
        rating_id: UUID,
        response_text: str,
        responder_id: UUID | None,
    ) -> dict:
        """Store the doctor's public reply to a review."""
        rating = await self.get_rating_by_id(db, rating_id)
        if not rating:
            raise NotFoundException("Rating not found")

        if not await self.verification.can_manage(db, rating["doctor_id"], responder_id):
            raise ForbiddenException("Only the owner of this profile can respond to reviews")

        response_text = response_text.strip()
        if not response_text:
            raise ValidationException("Response cannot be empty")

        query = (
            update(doctor_ratings)
            .where(doctor_ratings.c.id == rating_id)
            .values(doctor_response=response_text, updated_at=datetime.now(UTC))
            .returning(doctor_ratings)
        )
        result = await db.execute(query)
        updated = result.mappings().first()
        await db.commit()

        if not updated:
            raise NotFoundException("Rating not found")

        logger.info("rating_response_submitted", rating_id=str(rating_id))
        return dict(updated)
