"""Core services and utilities for crmshield."""

from .context import DEFAULT_CLIENT_IP, RequestContext, get_client_ip
from .exceptions import (
    AccountInactiveError,
    AuthInvalidError,
    AuthRequiredError,
    ConfigurationError,
    ContentTypeInvalidError,
    CrmShieldError,
    CsrfInvalidError,
    CsrfMissingError,
    InvalidCredentialsError,
    MethodNotAllowedError,
    OriginInvalidError,
    RateLimitedError,
    RegistrationError,
    RoleForbiddenError,
    SecurityError,
    TooManyLoginAttemptsError,
)

__all__ = [
    # Context
    "DEFAULT_CLIENT_IP",
    "RequestContext",
    "get_client_ip",
    # Exceptions
    "AccountInactiveError",
    "AuthInvalidError",
    "AuthRequiredError",
    "ConfigurationError",
    "ContentTypeInvalidError",
    "CrmShieldError",
    "CsrfInvalidError",
    "CsrfMissingError",
    "InvalidCredentialsError",
    "MethodNotAllowedError",
    "OriginInvalidError",
    "RateLimitedError",
    "RegistrationError",
    "RoleForbiddenError",
    "SecurityError",
    "TooManyLoginAttemptsError",
]
