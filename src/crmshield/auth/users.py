"""User records, password hashing and the user store."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from uuid import uuid4

import bcrypt

BCRYPT_ROUNDS = 10


class Role(str, Enum):
    """User roles. ``admin`` satisfies every requirement ``user`` does."""

    ADMIN = "admin"
    USER = "user"


def role_satisfies(role: str, required: Role | str) -> bool:
    """Whether ``role`` meets the ``required`` minimum."""
    required = Role(required)
    if required is Role.USER:
        return role in (Role.USER.value, Role.ADMIN.value)
    return role == Role.ADMIN.value


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


@dataclass(frozen=True, slots=True)
class User:
    """A user account."""

    id: str
    email: str
    name: str
    password_hash: str
    role: str = Role.USER.value
    is_active: bool = True
    last_login_at: float | None = None


class UserStore(Protocol):
    """Protocol for user storage backends."""

    async def get(self, user_id: str) -> User | None:
        ...

    async def find_by_email(self, email: str) -> User | None:
        ...

    async def create(
        self,
        email: str,
        name: str,
        password_hash: str,
        role: str = Role.USER.value,
    ) -> User:
        ...

    async def save(self, user: User) -> User:
        ...


class InMemoryUserStore(UserStore):
    """Process-local user store. Emails are stored lowercased and trimmed."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    async def get(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def find_by_email(self, email: str) -> User | None:
        normalized = self._normalize_email(email)
        for user in self._users.values():
            if user.email == normalized:
                return user
        return None

    async def create(
        self,
        email: str,
        name: str,
        password_hash: str,
        role: str = Role.USER.value,
    ) -> User:
        user = User(
            id=str(uuid4()),
            email=self._normalize_email(email),
            name=name.strip(),
            password_hash=password_hash,
            role=role,
        )
        self._users[user.id] = user
        return user

    async def save(self, user: User) -> User:
        self._users[user.id] = user
        return user

