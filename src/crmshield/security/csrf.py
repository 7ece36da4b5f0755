"""CSRF token issuance and verification.

Tokens are HS256-signed JWTs carrying the session they are bound to, the
issue time in milliseconds and a random nonce:

    {"sessionId": "...", "timestamp": 1700000000000, "nonce": "<uuid4>",
     "iat": 1700000000, "exp": 1700003600}

Verification never raises to the caller. Any decode or signature problem is
reported as ``False`` so failures are indistinguishable from the outside.
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from uuid import uuid4

import jwt

from crmshield.core.exceptions import CrmShieldError
from crmshield.core.logging import get_logger
from crmshield.security.config import CsrfConfig
from crmshield.security.sanitization import secure_compare

logger = get_logger(__name__)

_ALGORITHM = "HS256"


class CsrfTokenError(CrmShieldError):
    """Internal decode failure; mapped to ``False`` by the public API."""

    pass


@dataclass(frozen=True, slots=True)
class CsrfTokenPayload:
    """Decoded CSRF token claims.

    Attributes:
        session_id: Session the token is bound to ("anonymous" if none)
        issued_at_ms: Issue time in epoch milliseconds
        nonce: Random UUID making each token unique
    """

    session_id: str
    issued_at_ms: int
    nonce: str


class ReplayCache:
    """Set of consumed tokens.

    The set is cleared wholesale once it grows past ``max_size``; staleness
    after a clear is accepted in exchange for bounded memory.
    """

    def __init__(self, max_size: int = 10_000) -> None:
        self.max_size = max_size
        self._used: set[str] = set()

    def __contains__(self, token: object) -> bool:
        return token in self._used

    def __len__(self) -> int:
        return len(self._used)

    def add(self, token: str) -> None:
        """Record a consumed token."""
        self._used.add(token)
        if len(self._used) > self.max_size:
            logger.debug("csrf_replay_cache_cleared", size=len(self._used))
            self._used.clear()


class TokenCodec:
    """Issues and verifies session-bound, time-limited CSRF tokens.

    Example:
        codec = TokenCodec(secret="change-me")
        token = codec.issue(session_id="sess-123")
        codec.verify(token, "sess-123")             # True
        codec.verify_and_consume(token, "sess-123")  # True
        codec.verify_and_consume(token, "sess-123")  # False (replay)
    """

    def __init__(
        self,
        secret: str,
        config: CsrfConfig | None = None,
        replay_cache: ReplayCache | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the codec.

        Args:
            secret: Symmetric signing key
            config: CSRF configuration
            replay_cache: Store of consumed tokens (created if omitted)
            clock: Returns the current time in epoch seconds
        """
        self._secret = secret
        self.config = config or CsrfConfig()
        self.replay_cache = replay_cache or ReplayCache(self.config.replay_cache_size)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self.config.token_ttl_seconds

    def issue(self, session_id: str | None = None) -> str:
        """Issue a new token bound to ``session_id``.

        Args:
            session_id: Session identifier; "anonymous" when not logged in

        Returns:
            Signed token string
        """
        now = self._clock()
        claims = {
            "sessionId": session_id or self.config.anonymous_session_id,
            "timestamp": int(now * 1000),
            "nonce": str(uuid4()),
            "iat": int(now),
            "exp": int(now) + self.ttl_seconds,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def _decode(self, token: str) -> CsrfTokenPayload:
        """Decode and check signature and expiry claim.

        Expiry is checked against the injected clock rather than by PyJWT so
        that the codec's notion of time is consistent.

        Raises:
            CsrfTokenError: If the token cannot be trusted
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp"]},
            )
        except jwt.PyJWTError as exc:
            raise CsrfTokenError(f"undecodable token: {type(exc).__name__}") from exc

        try:
            expires_at = float(claims["exp"])
            payload = CsrfTokenPayload(
                session_id=str(claims["sessionId"]),
                issued_at_ms=int(claims["timestamp"]),
                nonce=str(claims["nonce"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise CsrfTokenError("malformed payload") from exc

        if expires_at < self._clock():
            raise CsrfTokenError("token expired")
        return payload

    def verify(self, token: str | None, session_id: str | None = None) -> bool:
        """Verify a token without consuming it.

        Fails when the signature is invalid, the token is older than the TTL,
        or ``session_id`` is given and differs from the bound session.

        Args:
            token: Token to verify
            session_id: Expected session, if known

        Returns:
            True if the token is valid
        """
        if not token:
            return False

        try:
            payload = self._decode(token)
        except CsrfTokenError as exc:
            logger.debug("csrf_token_invalid", reason=str(exc))
            return False

        age_ms = self._clock() * 1000 - payload.issued_at_ms
        if age_ms > self.ttl_seconds * 1000:
            logger.debug("csrf_token_invalid", reason="token too old")
            return False

        if session_id and payload.session_id != session_id:
            logger.debug("csrf_token_invalid", reason="session mismatch")
            return False

        return True

    def verify_and_consume(self, token: str | None, session_id: str | None = None) -> bool:
        """Verify a token and mark it as used.

        A token verifies through this path at most once. Call it once per
        logical request: a second call with the same token is treated as a
        replay.

        Args:
            token: Token to verify
            session_id: Expected session, if known

        Returns:
            True if the token is valid and had not been consumed
        """
        if not token or token in self.replay_cache:
            return False

        is_valid = self.verify(token, session_id)
        if is_valid:
            self.replay_cache.add(token)
        return is_valid

    def verify_form(self, form: Mapping[str, object], session_id: str | None = None) -> bool:
        """Verify the token submitted in a form's ``_csrf`` field."""
        token = form.get(self.config.form_field)
        if not isinstance(token, str) or not token:
            return False
        return self.verify(token, session_id)


def generate_double_submit_token() -> str:
    """Generate an opaque value for the double-submit cookie pattern."""
    return str(uuid4())


def validate_double_submit_token(cookie_value: str | None, header_value: str | None) -> bool:
    """Check that the cookie and header carry the same non-empty value."""
    if not cookie_value or not header_value:
        return False
    return secure_compare(cookie_value, header_value)
