"""Authentication endpoints."""

from fastapi import APIRouter

from crmshield.api.dependencies import Auth, RequestCtx
from crmshield.api.schemas.auth import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RegisterRequest,
    UserResponse,
)
from crmshield.auth.dependencies import CurrentIdentity
from crmshield.core.exceptions import AuthInvalidError

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, ctx: RequestCtx, service: Auth) -> LoginResponse:
    """Exchange email and password for a bearer credential."""
    result = await service.login(body.email, body.password, ctx)
    return LoginResponse(user=UserResponse.from_user(result.user), token=result.token)


@router.post("/register", response_model=LoginResponse)
async def register(body: RegisterRequest, ctx: RequestCtx, service: Auth) -> LoginResponse:
    """Create an account and log it in."""
    result = await service.register(body.email, body.password, body.name, ctx)
    return LoginResponse(user=UserResponse.from_user(result.user), token=result.token)


@router.post("/logout", response_model=LogoutResponse)
async def logout(identity: CurrentIdentity, ctx: RequestCtx, service: Auth) -> LogoutResponse:
    """Close every session of the caller."""
    await service.logout(identity.id, ctx)
    return LogoutResponse()


@router.get("/me", response_model=UserResponse)
async def me(identity: CurrentIdentity, service: Auth) -> UserResponse:
    """Return the caller's account."""
    user = await service.users.get(identity.id)
    if user is None:
        raise AuthInvalidError("User not found")
    return UserResponse.from_user(user)
