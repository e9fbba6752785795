"""Ownership and verification resolution for doctor profiles.

A doctor listing is *verified* when someone holds an explicit verified claim on
it, or, failing that, when it was created by an account whose profile role is
``doctor``. The explicit claim always wins; the creator-role rule is only a
fallback. Who may *manage* a listing is a separate question: its creator and
any holder of a verified claim.

Read-only checks never raise on a data-store failure. They log it and return
the most restrictive answer so callers can show a generic "try again" message.
"""

from enum import Enum
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyClaimedElsewhereException,
    NotFoundException,
    UnauthorizedException,
)
from app.models.doctor_verifications import doctor_verifications
from app.models.doctors import doctors
from app.models.profiles import UserRole
from app.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)


class VerificationState(str, Enum):
    """Verification badge state of a doctor listing."""

    UNCLAIMED = "unclaimed"
    IMPLICITLY_VERIFIED = "implicitly_verified"
    EXPLICITLY_VERIFIED = "explicitly_verified"


class Ownership(str, Enum):
    """Relationship between a viewer and a doctor listing."""

    NONE = "none"
    OWNED_BY_CREATOR = "owned_by_creator"
    OWNED_BY_CLAIMER = "owned_by_claimer"


class VerificationService:
    """Service for profile claims and ownership checks."""

    def __init__(self, profile_service: ProfileService | None = None):
        """Initialize service with an optional profile service."""
        self.profiles = profile_service or ProfileService()

    @staticmethod
    async def _degrade(db: AsyncSession, event: str, error: SQLAlchemyError, **context) -> None:
        """Log a failed read and reset the session so later queries can run."""
        logger.error(event, error=str(error), **{k: str(v) for k, v in context.items()})
        await db.rollback()

    # ------------------------------------------------------------------
    # Store reads
    # ------------------------------------------------------------------

    async def get_verification(
        self, db: AsyncSession, doctor_id: UUID, user_id: UUID
    ) -> dict | None:
        """Get the claim a user holds on a doctor, verified or not."""
        query = select(doctor_verifications).where(
            doctor_verifications.c.doctor_id == doctor_id,
            doctor_verifications.c.user_id == user_id,
        )
        result = await db.execute(query)
        verification = result.mappings().first()
        return dict(verification) if verification else None

    async def list_verified_by_user(self, db: AsyncSession, user_id: UUID) -> list[dict]:
        """Get every verified claim held by a user."""
        query = select(doctor_verifications).where(
            doctor_verifications.c.user_id == user_id,
            doctor_verifications.c.verified.is_(True),
        )
        result = await db.execute(query)
        return [dict(v) for v in result.mappings().all()]

    async def _holds_verified_claim(self, db: AsyncSession, user_id: UUID) -> bool:
        query = select(doctor_verifications.c.id).where(
            doctor_verifications.c.user_id == user_id,
            doctor_verifications.c.verified.is_(True),
        )
        result = await db.execute(query.limit(1))
        return result.first() is not None

    async def list_verifications_for_doctor(
        self, db: AsyncSession, doctor_id: UUID
    ) -> list[dict]:
        """Get every claim on a doctor, oldest first."""
        query = (
            select(doctor_verifications)
            .where(doctor_verifications.c.doctor_id == doctor_id)
            .order_by(doctor_verifications.c.created_at)
        )
        result = await db.execute(query)
        return [dict(v) for v in result.mappings().all()]

    async def _get_creator_id(self, db: AsyncSession, doctor_id: UUID) -> UUID | None:
        query = select(doctors.c.created_by_user_id).where(doctors.c.id == doctor_id)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def _doctor_exists(self, db: AsyncSession, doctor_id: UUID) -> bool:
        result = await db.execute(select(doctors.c.id).where(doctors.c.id == doctor_id))
        return result.first() is not None

    # ------------------------------------------------------------------
    # Verification badge
    # ------------------------------------------------------------------

    async def get_verification_state(
        self, db: AsyncSession, doctor_id: UUID
    ) -> VerificationState:
        """Classify a doctor listing for the verification badge."""
        try:
            query = (
                select(doctor_verifications.c.id)
                .where(
                    doctor_verifications.c.doctor_id == doctor_id,
                    doctor_verifications.c.verified.is_(True),
                )
                .limit(1)
            )
            result = await db.execute(query)
            if result.first() is not None:
                return VerificationState.EXPLICITLY_VERIFIED

            creator_id = await self._get_creator_id(db, doctor_id)
        except SQLAlchemyError as e:
            await self._degrade(db, "verification_state_lookup_failed", e, doctor_id=doctor_id)
            return VerificationState.UNCLAIMED

        if creator_id is None:
            return VerificationState.UNCLAIMED

        # The creator may no longer resolve to a profile; that is simply "not implicit".
        try:
            creator = await self.profiles.get_profile(db, creator_id)
        except SQLAlchemyError as e:
            await self._degrade(db, "creator_profile_lookup_failed", e, doctor_id=doctor_id)
            return VerificationState.UNCLAIMED

        if creator and creator["role"] == UserRole.DOCTOR.value:
            return VerificationState.IMPLICITLY_VERIFIED

        return VerificationState.UNCLAIMED

    async def is_verified(self, db: AsyncSession, doctor_id: UUID) -> bool:
        """Whether the verification badge is shown for a doctor."""
        state = await self.get_verification_state(db, doctor_id)
        return state is not VerificationState.UNCLAIMED

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    async def get_ownership(
        self, db: AsyncSession, doctor_id: UUID, viewer_id: UUID | None
    ) -> Ownership:
        """Classify the viewer's relationship to a doctor listing."""
        if viewer_id is None:
            return Ownership.NONE

        try:
            if await self._get_creator_id(db, doctor_id) == viewer_id:
                return Ownership.OWNED_BY_CREATOR

            verification = await self.get_verification(db, doctor_id, viewer_id)
        except SQLAlchemyError as e:
            await self._degrade(
                db, "ownership_lookup_failed", e, doctor_id=doctor_id, viewer_id=viewer_id
            )
            return Ownership.NONE

        if verification and verification["verified"]:
            return Ownership.OWNED_BY_CLAIMER

        return Ownership.NONE

    async def can_manage(self, db: AsyncSession, doctor_id: UUID, viewer_id: UUID | None) -> bool:
        """Whether the viewer may edit the listing and reply to its reviews."""
        return await self.get_ownership(db, doctor_id, viewer_id) is not Ownership.NONE

    async def can_claim(self, db: AsyncSession, doctor_id: UUID, viewer_id: UUID | None) -> bool:
        """Whether the viewer may claim the listing as their own."""
        if viewer_id is None:
            return False

        if await self.can_manage(db, doctor_id, viewer_id):
            return False

        try:
            return not await self.list_verified_by_user(db, viewer_id)
        except SQLAlchemyError as e:
            await self._degrade(db, "claim_eligibility_lookup_failed", e, viewer_id=viewer_id)
            return False

    async def can_create_profile(self, db: AsyncSession, user_id: UUID | None) -> bool:
        """Whether the user may create a doctor listing (doctors only, one each)."""
        if user_id is None:
            return False

        try:
            profile = await self.profiles.get_profile(db, user_id)
            if not profile or profile["role"] != UserRole.DOCTOR.value:
                return False

            query = select(doctors.c.id).where(doctors.c.created_by_user_id == user_id).limit(1)
            result = await db.execute(query)
            return result.first() is None
        except SQLAlchemyError as e:
            await self._degrade(db, "create_eligibility_lookup_failed", e, user_id=user_id)
            return False

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    async def request_claim(
        self, db: AsyncSession, doctor_id: UUID, claimant_id: UUID | None
    ) -> dict:
        """
        Claim a doctor listing for the signed-in user.

        Args:
            db: Database session
            doctor_id: Listing being claimed
            claimant_id: Signed-in identity, None for anonymous requests

        Returns:
            The stored verified claim

        Raises:
            UnauthorizedException: If the request is anonymous
            NotFoundException: If the doctor does not exist
            AlreadyClaimedElsewhereException: If the claimant already holds a verified claim
        """
        if claimant_id is None:
            raise UnauthorizedException("You must be logged in to claim a profile")

        if not await self._doctor_exists(db, doctor_id):
            raise NotFoundException("Doctor not found")

        if await self.list_verified_by_user(db, claimant_id):
            raise AlreadyClaimedElsewhereException()

        # An older unverified request for the same listing is promoted in place.
        pending = await self.get_verification(db, doctor_id, claimant_id)
        if pending:
            query = (
                update(doctor_verifications)
                .where(doctor_verifications.c.id == pending["id"])
                .values(verified=True, updated_at=func.now())
                .returning(doctor_verifications)
            )
        else:
            query = (
                doctor_verifications.insert()
                .values(doctor_id=doctor_id, user_id=claimant_id, verified=True)
                .returning(doctor_verifications)
            )

        try:
            result = await db.execute(query)
            verification = result.mappings().first()
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            # Only a verified claim that now exists for this person maps to a
            # conflict; anything else (a vanished identity) propagates.
            if not await self._holds_verified_claim(db, claimant_id):
                raise
            logger.warning(
                "doctor_claim_rejected_by_store",
                doctor_id=str(doctor_id),
                user_id=str(claimant_id),
            )
            raise AlreadyClaimedElsewhereException() from e

        if not verification:
            raise ValueError("Failed to claim doctor profile")

        logger.info("doctor_claimed", doctor_id=str(doctor_id), user_id=str(claimant_id))
        return dict(verification)

    async def list_claimed_doctors(self, db: AsyncSession, user_id: UUID) -> list[dict]:
        """Get the listings a user manages, as creator or verified claimer."""
        claimed_ids = select(doctor_verifications.c.doctor_id).where(
            doctor_verifications.c.user_id == user_id,
            doctor_verifications.c.verified.is_(True),
        )
        query = (
            select(doctors)
            .where(or_(doctors.c.created_by_user_id == user_id, doctors.c.id.in_(claimed_ids)))
            .order_by(doctors.c.created_at)
        )
        result = await db.execute(query)
        return [dict(d) for d in result.mappings().all()]
