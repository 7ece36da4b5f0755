"""FastAPI dependencies for authenticated routes.

Usage:
    @router.get("/me")
    async def me(identity: CurrentIdentity) -> UserResponse:
        ...

    @router.get("/audit-log", dependencies=[Depends(require_role(Role.ADMIN))])
    async def audit_log() -> ...:
        ...
"""

import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from crmshield.auth.sessions import SessionStore
from crmshield.auth.tokens import BearerTokenCodec
from crmshield.auth.users import Role, role_satisfies
from crmshield.core.exceptions import AuthInvalidError, AuthRequiredError, RoleForbiddenError

_BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class Identity:
    """The authenticated caller."""

    id: str
    email: str
    role: str


class SessionAuthenticator:
    """Resolves a bearer credential to an identity.

    The credential must carry a valid signature and unexpired claims, and a
    live session must be stored under the same token for the same user.
    """

    def __init__(
        self,
        tokens: BearerTokenCodec,
        sessions: SessionStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.tokens = tokens
        self.sessions = sessions
        self._clock = clock

    @staticmethod
    def extract_bearer(authorization: str | None) -> str | None:
        """Pull the token out of an Authorization header value."""
        if not authorization:
            return None
        match = _BEARER_PATTERN.match(authorization.strip())
        return match.group(1) if match else None

    async def authenticate(self, authorization: str | None) -> Identity:
        """Authenticate an Authorization header value.

        Raises:
            AuthRequiredError: No bearer credential supplied
            AuthInvalidError: Bad credential, or no live matching session
        """
        token = self.extract_bearer(authorization)
        if not token:
            raise AuthRequiredError()

        claims = self.tokens.decode(token)

        session = await self.sessions.find_by_token(token)
        if (
            session is None
            or session.user_id != claims.user_id
            or session.is_expired(self._clock())
        ):
            raise AuthInvalidError("Invalid or expired session")

        return Identity(id=claims.user_id, email=claims.email, role=claims.role)


def get_authenticator(request: Request) -> SessionAuthenticator:
    return request.app.state.authenticator


async def get_current_identity(
    request: Request,
    authenticator: Annotated[SessionAuthenticator, Depends(get_authenticator)],
) -> Identity:
    """Authenticate the request and attach the identity to ``request.state``."""
    identity = await authenticator.authenticate(request.headers.get("authorization"))
    request.state.identity = identity
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


def require_role(min_role: Role | str) -> Callable[..., Awaitable[Identity]]:
    """Build a dependency that rejects identities below ``min_role``.

    Args:
        min_role: ``admin`` or ``user``

    Returns:
        Dependency returning the identity when the role is sufficient

    Raises:
        ValueError: If ``min_role`` is not a known role
    """
    required = Role(min_role)

    async def dependency(identity: CurrentIdentity) -> Identity:
        if not role_satisfies(identity.role, required):
            raise RoleForbiddenError()
        return identity

    return dependency
