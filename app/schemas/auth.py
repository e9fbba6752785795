"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.profiles import UserRole


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class SignUpRequest(BaseModel):
    """Email/password sign-up request."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    role: UserRole = UserRole.PATIENT


class SignInRequest(BaseModel):
    """Email/password sign-in request."""

    email: EmailStr
    password: str


class AuthResponse(Token):
    """Token pair plus the identity it was issued for."""

    user_id: UUID
    role: UserRole


class SessionResponse(BaseModel):
    """Current session as seen by the API."""

    authenticated: bool
    user_id: UUID | None = None
