"""Authentication request and response schemas."""

from pydantic import BaseModel, Field

from crmshield.auth.users import User


class LoginRequest(BaseModel):
    """Credentials for ``POST /api/auth/login``."""

    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=128)


class RegisterRequest(BaseModel):
    """Body of ``POST /api/auth/register``."""

    email: str = Field(..., max_length=254)
    password: str = Field(..., max_length=128)
    name: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    """Public view of a user."""

    id: str
    email: str
    name: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, name=user.name, role=user.role)


class LoginResponse(BaseModel):
    """A user and the bearer credential for their new session."""

    user: UserResponse
    token: str


class LogoutResponse(BaseModel):
    success: bool = True
