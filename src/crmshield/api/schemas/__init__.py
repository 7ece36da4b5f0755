"""API schemas for request/response validation."""

from .auth import LoginRequest, LoginResponse, LogoutResponse, RegisterRequest, UserResponse
from .csrf import CsrfTokenResponse
from .errors import SecurityErrorBody
from .health import HealthResponse, HealthStatus
from .security import AuditLogResponse, SecurityTestRequest, SecurityTestResponse

__all__ = [
    # Error schemas
    "SecurityErrorBody",
    # Auth schemas
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    "RegisterRequest",
    "UserResponse",
    # CSRF schemas
    "CsrfTokenResponse",
    # Health schemas
    "HealthResponse",
    "HealthStatus",
    # Security schemas
    "AuditLogResponse",
    "SecurityTestRequest",
    "SecurityTestResponse",
]
