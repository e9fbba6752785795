"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.core.session import ANONYMOUS, SessionContext
from app.database import get_db
from app.services.auth_service import AuthService
from app.services.doctor_service import DoctorService
from app.services.profile_service import ProfileService
from app.services.rating_service import RatingService
from app.services.verification_service import VerificationService

# Bearer auth is optional: browsing the directory works anonymously
security = HTTPBearer(auto_error=False)


def get_cache_manager() -> CacheManager | None:
    """Get the Redis-backed cache manager."""
    return CacheManager(get_redis_client())


async def get_session_context(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> SessionContext:
    """
    Resolve the request's session from the bearer token.

    Args:
        credentials: Bearer token credentials, if sent

    Returns:
        Session context, anonymous when no token was sent

    Raises:
        HTTPException: If a token was sent but is invalid or expired
    """
    if credentials is None:
        return ANONYMOUS

    payload = decode_access_token(credentials.credentials)
    user_id_str = payload.get("sub") if payload else None

    if not isinstance(user_id_str, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return SessionContext(user_id=UUID(user_id_str))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user_id(
    session: Annotated[SessionContext, Depends(get_session_context)],
) -> UUID:
    """Require a signed-in identity."""
    return session.require_user()


def get_verification_service() -> VerificationService:
    """Get verification service instance."""
    return VerificationService()


def get_rating_service(
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
    verification_service: Annotated[VerificationService, Depends(get_verification_service)],
) -> RatingService:
    """Get rating service instance."""
    return RatingService(cache_manager=cache_manager, verification_service=verification_service)


def get_doctor_service(
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
    verification_service: Annotated[VerificationService, Depends(get_verification_service)],
    rating_service: Annotated[RatingService, Depends(get_rating_service)],
) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(
        cache_manager=cache_manager,
        verification_service=verification_service,
        rating_service=rating_service,
    )


def get_auth_service(
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
) -> AuthService:
    """Get auth service instance."""
    return AuthService(cache_manager=cache_manager)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentSession = Annotated[SessionContext, Depends(get_session_context)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
ProfileServiceDep = Annotated[ProfileService, Depends(ProfileService)]
VerificationServiceDep = Annotated[VerificationService, Depends(get_verification_service)]
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
DoctorServiceDep = Annotated[DoctorService, Depends(get_doctor_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
