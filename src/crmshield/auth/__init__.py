"""Session authentication and account management."""

from .dependencies import (
    CurrentIdentity,
    Identity,
    SessionAuthenticator,
    get_current_identity,
    require_role,
)
from .service import AuthResult, AuthService
from .sessions import InMemorySessionStore, Session, SessionStore
from .tokens import BearerClaims, BearerTokenCodec
from .users import (
    InMemoryUserStore,
    Role,
    User,
    UserStore,
    hash_password,
    role_satisfies,
    verify_password,
)

__all__ = [
    # Dependencies
    "CurrentIdentity",
    "Identity",
    "SessionAuthenticator",
    "get_current_identity",
    "require_role",
    # Service
    "AuthResult",
    "AuthService",
    # Sessions
    "InMemorySessionStore",
    "Session",
    "SessionStore",
    # Tokens
    "BearerClaims",
    "BearerTokenCodec",
    # Users
    "InMemoryUserStore",
    "Role",
    "User",
    "UserStore",
    "hash_password",
    "role_satisfies",
    "verify_password",
]
