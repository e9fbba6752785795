"""Doctor service for business logic."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException
from app.core.redis_client import CacheManager
from app.models.doctors import doctors
from app.schemas.doctors import DoctorCreate, DoctorSearchParams, DoctorUpdate
from app.services.rating_service import RatingService
from app.services.verification_service import VerificationService, VerificationState

logger = structlog.get_logger(__name__)

# Columns a PATCH may set back to NULL
NULLABLE_FIELDS = {"subspecialties", "image_url"}


class DoctorService:
    """Service for doctor operations."""

    # Cache TTL in seconds
    DOCTOR_LIST_CACHE_TTL = 300  # 5 minutes for lists
    SPECIALTIES_CACHE_TTL = 3600
    SPECIALTIES_CACHE_KEY = "doctor:specialties"

    def __init__(
        self,
        cache_manager: CacheManager | None = None,
        verification_service: VerificationService | None = None,
        rating_service: RatingService | None = None,
    ):
        """Initialize service with optional cache manager and collaborators."""
        self.cache = cache_manager
        self.verification = verification_service or VerificationService()
        self.ratings = rating_service or RatingService(cache_manager, self.verification)

    def _invalidate_listings(self) -> None:
        if self.cache:
            self.cache.delete_pattern("doctor:list:*")
            self.cache.delete(self.SPECIALTIES_CACHE_KEY)

    async def get_doctor_by_id(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """Get doctor by ID."""
        query = select(doctors).where(doctors.c.id == doctor_id)
        result = await db.execute(query)
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

    async def get_doctor_with_details(
        self, db: AsyncSession, doctor_id: UUID, viewer_id: UUID | None = None
    ) -> dict | None:
        """Get doctor with a freshly healed rating and the viewer's verification view."""
        if not await self.get_doctor_by_id(db, doctor_id):
            return None

        try:
            await self.ratings.recompute_average(db, doctor_id)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.warning("average_heal_failed", doctor_id=str(doctor_id), error=str(e))

        doctor = await self.get_doctor_by_id(db, doctor_id)
        if not doctor:
            return None

        state = await self.verification.get_verification_state(db, doctor_id)
        doctor["verification_state"] = state
        doctor["is_verified"] = state is not VerificationState.UNCLAIMED
        doctor["can_manage"] = await self.verification.can_manage(db, doctor_id, viewer_id)

        return doctor

    async def get_doctors(self, db: AsyncSession, params: DoctorSearchParams) -> list[dict]:
        """Get list of doctors with filtering."""
        cache_key = params.cache_key()
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached is not None:
                return cached

        conditions: list = []

        if params.specialty:
            conditions.append(doctors.c.specialty == params.specialty)

        if params.search and params.search.strip():
            term = f"%{params.search.strip()}%"
            conditions.append(
                or_(
                    doctors.c.name.ilike(term),
                    doctors.c.specialty.ilike(term),
                    doctors.c.hospital.ilike(term),
                )
            )

        if params.city and params.city.strip():
            conditions.append(
                doctors.c.contact["city"].as_string().ilike(f"%{params.city.strip()}%")
            )

        if params.region and params.region.strip():
            conditions.append(
                doctors.c.contact["region"].as_string().ilike(f"%{params.region.strip()}%")
            )

        query = (
            select(doctors)
            .where(*conditions)
            .order_by(doctors.c.rating.desc(), doctors.c.name)
            .offset(params.skip)
            .limit(params.limit)
        )

        result = await db.execute(query)
        doctor_list = [dict(d) for d in result.mappings().all()]

        if self.cache:
            self.cache.set_json(cache_key, doctor_list, ttl=self.DOCTOR_LIST_CACHE_TTL)

        return doctor_list

    async def list_specialties(self, db: AsyncSession) -> list[str]:
        """Get the distinct specialties present in the directory."""
        if self.cache:
            cached = self.cache.get_json(self.SPECIALTIES_CACHE_KEY)
            if cached is not None:
                return cached

        query = select(doctors.c.specialty).distinct().order_by(doctors.c.specialty)
        result = await db.execute(query)
        specialties = [s for s in result.scalars().all() if s and s.strip()]

        if self.cache:
            self.cache.set_json(
                self.SPECIALTIES_CACHE_KEY, specialties, ttl=self.SPECIALTIES_CACHE_TTL
            )

        return specialties

    async def create_doctor(
        self, db: AsyncSession, doctor_data: DoctorCreate, creator_id: UUID
    ) -> dict:
        """
        Create a doctor listing owned by its creator.

        Raises:
            ForbiddenException: If the creator is not a doctor or already created a listing
        """
        if not await self.verification.can_create_profile(db, creator_id):
            raise ForbiddenException(
                "Only doctor accounts without an existing profile can create one"
            )

        values = doctor_data.model_dump()
        query = (
            doctors.insert()
            .values(**values, rating=0, created_by_user_id=creator_id)
            .returning(doctors)
        )

        result = await db.execute(query)
        doctor = result.mappings().first()

        if not doctor:
            raise ValueError("Failed to create doctor")

        await db.commit()
        self._invalidate_listings()

        logger.info("doctor_created", doctor_id=str(doctor["id"]), user_id=str(creator_id))
        return dict(doctor)

    async def update_doctor(
        self, db: AsyncSession, doctor_id: UUID, doctor_data: DoctorUpdate, editor_id: UUID
    ) -> dict:
        """
        Update doctor information.

        Raises:
            NotFoundException: If the doctor does not exist
            ForbiddenException: If the editor neither created nor claimed the listing
        """
        existing = await self.get_doctor_by_id(db, doctor_id)
        if not existing:
            raise NotFoundException("Doctor not found")

        if not await self.verification.can_manage(db, doctor_id, editor_id):
            raise ForbiddenException("You can only edit a profile you created or claimed")

        update_values = {
            field: value
            for field, value in doctor_data.model_dump(exclude_unset=True).items()
            if value is not None or field in NULLABLE_FIELDS
        }

        if not update_values:
            return existing

        query = (
            update(doctors)
            .where(doctors.c.id == doctor_id)
            .values(**update_values, updated_at=datetime.now(UTC))
            .returning(doctors)
        )

        result = await db.execute(query)
        updated_doctor = result.mappings().first()

        await db.commit()
        self._invalidate_listings()

        if not updated_doctor:
            raise NotFoundException("Doctor not found")

        logger.info(
            "doctor_updated",
            doctor_id=str(doctor_id),
            user_id=str(editor_id),
            fields=sorted(update_values),
        )
        return dict(updated_doctor)
