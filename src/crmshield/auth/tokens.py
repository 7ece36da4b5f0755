"""Bearer credentials.

A bearer credential is an HS256 JWT naming the user it was issued to:

    {"userId": "...", "email": "...", "role": "user", "jti": "<uuid4>",
     "iat": 1700000000, "exp": 1700604800}

The credential alone is not sufficient; ``SessionAuthenticator`` also
requires a live session stored under the same token string.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

import jwt

from crmshield.core.exceptions import AuthInvalidError

_ALGORITHM = "HS256"


@dataclass(frozen=True, slots=True)
class BearerClaims:
    """Verified claims of a bearer credential."""

    user_id: str
    email: str
    role: str
    expires_at: float


class BearerTokenCodec:
    """Issues and verifies bearer credentials."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = 7 * 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def issue(self, user_id: str, email: str, role: str) -> str:
        """Sign a credential for a user."""
        now = int(self._clock())
        claims = {
            "userId": user_id,
            "email": email,
            "role": role,
            "jti": str(uuid4()),
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> BearerClaims:
        """Verify signature and expiry.

        Raises:
            AuthInvalidError: If the credential cannot be trusted
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp"]},
            )
        except jwt.PyJWTError as exc:
            raise AuthInvalidError() from exc

        try:
            bearer = BearerClaims(
                user_id=str(claims["userId"]),
                email=str(claims["email"]),
                role=str(claims["role"]),
                expires_at=float(claims["exp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthInvalidError() from exc

        if bearer.expires_at < self._clock():
            raise AuthInvalidError()
        return bearer
