"""Authentication service: email/password identities and JWT sessions."""

from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictException, UnauthorizedException
from app.core.redis_client import CacheManager
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from app.models.users import users
from app.schemas.auth import SignUpRequest, Token
from app.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)


class AuthService:
    """Authentication service for sign-up, sign-in and token lifecycle."""

    def __init__(
        self,
        cache_manager: CacheManager | None = None,
        profile_service: ProfileService | None = None,
    ):
        """Initialize auth service with cache manager."""
        self.cache = cache_manager
        self.profiles = profile_service or ProfileService()

    @staticmethod
    def _blacklist_key(refresh_token: str) -> str:
        return f"blacklist:{refresh_token}"

    async def get_user_by_email(self, db: AsyncSession, email: str) -> dict | None:
        """Get identity by email."""
        query = select(users).where(users.c.email == email.lower())
        result = await db.execute(query)
        user = result.mappings().first()
        return dict(user) if user else None

    async def sign_up(self, db: AsyncSession, data: SignUpRequest) -> tuple[dict, dict, Token]:
        """
        Register an identity and provision its profile.

        Args:
            db: Database session
            data: Credentials, names and role

        Returns:
            Tuple of (user dict, profile dict, token pair)

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.get_user_by_email(db, data.email):
            raise ConflictException("An account with this email already exists")

        try:
            result = await db.execute(
                users.insert()
                .values(email=data.email.lower(), password_hash=get_password_hash(data.password))
                .returning(users)
            )
            user = dict(result.mappings().one())
            profile = await self.profiles.create_profile(
                db,
                user["id"],
                role=data.role,
                first_name=data.first_name,
                last_name=data.last_name,
            )
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise ConflictException("An account with this email already exists") from e

        logger.info("user_signed_up", user_id=str(user["id"]), role=profile["role"])
        return user, profile, self.create_tokens(str(user["id"]))

    async def sign_in(self, db: AsyncSession, email: str, password: str) -> tuple[dict, Token]:
        """
        Check credentials and issue a token pair.

        Raises:
            UnauthorizedException: On unknown email, wrong password or inactive account
        """
        user = await self.get_user_by_email(db, email)
        if not user or not verify_password(password, user["password_hash"]):
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise UnauthorizedException("User account is deactivated")

        await db.execute(
            update(users).where(users.c.id == user["id"]).values(last_login_at=datetime.now(UTC))
        )
        await db.commit()

        logger.info("user_signed_in", user_id=str(user["id"]))
        return user, self.create_tokens(str(user["id"]))

    def create_tokens(self, user_id: str) -> Token:
        """Create access and refresh tokens for an identity."""
        return Token(
            access_token=create_access_token(user_id),
            refresh_token=create_refresh_token(user_id),
            token_type="bearer",
        )

    async def refresh_access_token(self, db: AsyncSession, refresh_token: str) -> Token:
        """
        Rotate a refresh token into a new token pair.

        The presented refresh token is revoked once the new pair is issued.

        Raises:
            UnauthorizedException: If the token is invalid or revoked, or the
                account is gone or deactivated
        """
        user_id = self._refresh_token_subject(refresh_token)

        if self.cache and self.cache.exists(self._blacklist_key(refresh_token)):
            raise UnauthorizedException("Token has been revoked")

        result = await db.execute(select(users.c.is_active).where(users.c.id == user_id))
        is_active = result.scalar_one_or_none()
        if is_active is None:
            raise UnauthorizedException("Invalid refresh token")
        if not is_active:
            raise UnauthorizedException("User account is deactivated")

        self._revoke(refresh_token)
        return self.create_tokens(str(user_id))

    def sign_out(self, refresh_token: str) -> None:
        """
        Revoke a refresh token for the rest of its lifetime.

        Raises:
            UnauthorizedException: If the token is not a valid refresh token
        """
        self._refresh_token_subject(refresh_token)
        self._revoke(refresh_token)

    @staticmethod
    def _refresh_token_subject(refresh_token: str) -> UUID:
        payload = decode_refresh_token(refresh_token)
        if payload is None or payload.get("sub") is None:
            raise UnauthorizedException("Invalid refresh token")

        try:
            return UUID(payload["sub"])
        except ValueError as e:
            raise UnauthorizedException("Invalid refresh token") from e

    def _revoke(self, refresh_token: str) -> None:
        if self.cache is None:
            return

        ttl = settings.refresh_token_expire_days * 86400
        self.cache.set(self._blacklist_key(refresh_token), "1", ttl=ttl)
