"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.dependencies import AuthServiceDep, CurrentSession, DatabaseSession
from app.models.profiles import UserRole
from app.schemas.auth import (
    AuthResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    Token,
    TokenRefresh,
)
from app.services.profile_service import ProfileService

router = APIRouter()


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register with email and password",
)
async def sign_up(
    request: SignUpRequest,
    db: DatabaseSession,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    """
    Create an account and its profile, and sign in.

    - **email**: Account email (unique)
    - **password**: At least 8 characters
    - **first_name** / **last_name**: Optional display names
    - **role**: `patient` (default) or `doctor`
    """
    user, profile, tokens = await auth_service.sign_up(db, request)
    return AuthResponse(**tokens.model_dump(), user_id=user["id"], role=profile["role"])


@router.post(
    "/signin",
    response_model=AuthResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign in with email and password",
)
async def sign_in(
    request: SignInRequest,
    db: DatabaseSession,
    auth_service: AuthServiceDep,
) -> AuthResponse:
    """Check credentials and return a fresh token pair."""
    user, tokens = await auth_service.sign_in(db, request.email, request.password)
    profile = await ProfileService().get_profile(db, user["id"])
    role = profile["role"] if profile else UserRole.PATIENT
    return AuthResponse(**tokens.model_dump(), user_id=user["id"], role=role)


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    db: DatabaseSession,
    auth_service: AuthServiceDep,
) -> Token:
    """Exchange a refresh token for a new token pair; the old one stops working."""
    return await auth_service.refresh_access_token(db, request.refresh_token)


@router.post(
    "/signout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out and revoke the refresh token",
)
async def sign_out(request: TokenRefresh, auth_service: AuthServiceDep) -> None:
    """Revoke a valid refresh token; the client drops its access token."""
    auth_service.sign_out(request.refresh_token)


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current session",
)
async def current_session(session: CurrentSession) -> SessionResponse:
    """Return the identity bound to this request, if any."""
    return SessionResponse(authenticated=session.is_authenticated, user_id=session.user_id)
