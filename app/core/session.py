"""Per-request session context."""

from dataclasses import dataclass
from uuid import UUID

from app.core.exceptions import UnauthorizedException


@dataclass(frozen=True)
class SessionContext:
    """
    Identity attached to a single request.

    Built by the ``get_session_context`` dependency from the bearer token (if
    any) and handed to every handler that needs it. An anonymous request gets a
    context with ``user_id=None``; signing out simply stops sending the token.
    """

    user_id: UUID | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def require_user(self) -> UUID:
        """Return the signed-in identity or raise 401."""
        if self.user_id is None:
            raise UnauthorizedException("You must be signed in")
        return self.user_id


ANONYMOUS = SessionContext()
