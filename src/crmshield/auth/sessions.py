"""Session records and their store.

Sessions are owned by the auth service. The authenticator only reads them;
the only mutation outside login is deletion on logout.
"""

from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Session:
    """An active login.

    Attributes:
        session_id: Opaque identifier
        user_id: Owner of the session
        token: Bearer credential the session was issued with
        expires_at: Epoch seconds after which the session is dead
    """

    session_id: str
    user_id: str
    token: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at < now


class SessionStore(Protocol):
    """Protocol for session storage backends."""

    async def find_by_token(self, token: str) -> Session | None:
        """Return the session stored under ``token``, if any."""
        ...

    async def create(self, user_id: str, token: str, expires_at: float) -> Session:
        """Store a new session."""
        ...

    async def delete(self, token: str) -> None:
        """Remove the session stored under ``token``."""
        ...

    async def delete_for_user(self, user_id: str) -> int:
        """Remove every session of a user and return how many were removed."""
        ...


class InMemorySessionStore(SessionStore):
    """Process-local session store keyed by bearer token."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def find_by_token(self, token: str) -> Session | None:
        return self._sessions.get(token)

    async def create(self, user_id: str, token: str, expires_at: float) -> Session:
        session = Session(
            session_id=str(uuid4()),
            user_id=user_id,
            token=token,
            expires_at=expires_at,
        )
        self._sessions[token] = session
        return session

    async def delete(self, token: str) -> None:
        self._sessions.pop(token, None)

    async def delete_for_user(self, user_id: str) -> int:
        tokens = [token for token, s in self._sessions.items() if s.user_id == user_id]
        for token in tokens:
            del self._sessions[token]
        return len(tokens)
