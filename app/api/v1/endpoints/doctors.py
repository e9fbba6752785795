"""Doctor directory endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.exceptions import NotFoundException
from app.dependencies import (
    CurrentSession,
    CurrentUserId,
    DatabaseSession,
    DoctorServiceDep,
    VerificationServiceDep,
)
from app.schemas.doctors import (
    DoctorCreate,
    DoctorDetailResponse,
    DoctorResponse,
    DoctorSearchParams,
    DoctorUpdate,
    DoctorVerificationResponse,
    DoctorVerificationStatus,
)
from app.services.verification_service import VerificationState

router = APIRouter()


# ============================================================================
# Doctor Listing Endpoints
# ============================================================================


@router.get("/", response_model=list[DoctorResponse])
async def list_doctors(
    db: DatabaseSession,
    doctor_service: DoctorServiceDep,
    specialty: str | None = Query(None, description="Exact specialty"),
    search: str | None = Query(None, description="Matches name, specialty or hospital"),
    city: str | None = Query(None, description="City contains"),
    region: str | None = Query(None, description="Region contains"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Number of records to return"),
):
    """
    List doctors with optional filtering, best rated first.

    - **specialty**: Filter by exact specialty
    - **search**: Case-insensitive substring of name, specialty or hospital
    - **city** / **region**: Case-insensitive substring of the contact location
    """
    params = DoctorSearchParams(
        specialty=specialty,
        search=search,
        city=city,
        region=region,
        skip=skip,
        limit=limit,
    )
    return await doctor_service.get_doctors(db, params)


@router.get("/specialties", response_model=list[str])
async def list_specialties(db: DatabaseSession, doctor_service: DoctorServiceDep):
    """List the specialties present in the directory, for the search filter."""
    return await doctor_service.list_specialties(db)


@router.get("/mine", response_model=list[DoctorResponse])
async def list_my_doctors(
    user_id: CurrentUserId,
    db: DatabaseSession,
    verification_service: VerificationServiceDep,
):
    """List the profiles the signed-in user created or claimed."""
    return await verification_service.list_claimed_doctors(db, user_id)


# ============================================================================
# Doctor CRUD Endpoints
# ============================================================================


@router.post("/", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    user_id: CurrentUserId,
    db: DatabaseSession,
    doctor_service: DoctorServiceDep,
):
    """
    Create a doctor profile owned by the signed-in user.

    Only accounts with the `doctor` role may create a profile, and only one.
    """
    return await doctor_service.create_doctor(db, doctor_data, user_id)


@router.get("/{doctor_id}", response_model=DoctorDetailResponse)
async def get_doctor(
    doctor_id: UUID,
    session: CurrentSession,
    db: DatabaseSession,
    doctor_service: DoctorServiceDep,
):
    """
    Get doctor details by ID.

    The cached average rating is recomputed on every read, and the response
    says whether the profile is verified and whether the viewer may manage it.
    """
    doctor = await doctor_service.get_doctor_with_details(db, doctor_id, session.user_id)
    if not doctor:
        raise NotFoundException("Doctor not found")
    return doctor


@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: UUID,
    doctor_data: DoctorUpdate,
    user_id: CurrentUserId,
    db: DatabaseSession,
    doctor_service: DoctorServiceDep,
):
    """
    Update doctor information.

    All fields are optional. Only provided fields will be updated. Allowed for
    the profile's creator and for whoever claimed it.
    """
    return await doctor_service.update_doctor(db, doctor_id, doctor_data, user_id)


# ============================================================================
# Doctor Verification Endpoints
# ============================================================================


@router.get("/{doctor_id}/verification", response_model=DoctorVerificationStatus)
async def get_verification_status(
    doctor_id: UUID,
    session: CurrentSession,
    db: DatabaseSession,
    doctor_service: DoctorServiceDep,
    verification_service: VerificationServiceDep,
):
    """Verification badge and what the current viewer may do with this profile."""
    if not await doctor_service.get_doctor_by_id(db, doctor_id):
        raise NotFoundException("Doctor not found")

    state = await verification_service.get_verification_state(db, doctor_id)
    return DoctorVerificationStatus(
        doctor_id=doctor_id,
        is_verified=state is not VerificationState.UNCLAIMED,
        verification_state=state,
        can_manage=await verification_service.can_manage(db, doctor_id, session.user_id),
        can_claim=await verification_service.can_claim(db, doctor_id, session.user_id),
    )


@router.post(
    "/{doctor_id}/claim",
    response_model=DoctorVerificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def claim_doctor(
    doctor_id: UUID,
    session: CurrentSession,
    db: DatabaseSession,
    verification_service: VerificationServiceDep,
):
    """
    Claim this profile as your own.

    Each person may hold a single claimed profile; a second claim returns 409.
    """
    return await verification_service.request_claim(db, doctor_id, session.user_id)
