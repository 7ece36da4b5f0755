"""Exceptions raised by the request-security layer.

Every condition detected before a request reaches business logic is raised
as a ``SecurityError`` subclass carrying the HTTP status and, for rate
limiting, the number of seconds the client should wait. Messages are generic
on purpose: they are returned to the client verbatim.
"""


class CrmShieldError(Exception):
    """Base exception for all crmshield errors."""

    pass


class ConfigurationError(CrmShieldError):
    """Error in configuration or settings."""

    pass


class SecurityError(CrmShieldError):
    """Raised when a request is rejected by the security layer.

    Attributes:
        message: Client-facing error message
        status_code: HTTP status code for the response
        retry_after: Seconds until the client may retry (429 only)
    """

    status_code: int = 403
    default_message: str = "Forbidden"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        retry_after: int | None = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        self.retry_after = retry_after

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code}, retry_after={self.retry_after})"
        )


class MethodNotAllowedError(SecurityError):
    """Raised when the request method is not allowed for the route."""

    status_code = 405

    def __init__(self, method: str):
        super().__init__(f"Method {method} not allowed")
        self.method = method


class RateLimitedError(SecurityError):
    """Raised when the client exceeded the route's request quota."""

    status_code = 429
    default_message = "Too many requests"

    def __init__(self, retry_after: int, message: str | None = None):
        super().__init__(message, retry_after=retry_after)


class CsrfMissingError(SecurityError):
    """Raised when a mutating request carries no CSRF token."""

    default_message = "CSRF token missing"


class CsrfInvalidError(SecurityError):
    """Raised when the CSRF token fails verification."""

    default_message = "Invalid CSRF token"


class OriginInvalidError(SecurityError):
    """Raised when the Origin header is not in the allow-list."""

    default_message = "Invalid origin"


class ContentTypeInvalidError(SecurityError):
    """Raised when a request body is not declared as JSON."""

    status_code = 400
    default_message = "Invalid content type"


class AuthRequiredError(SecurityError):
    """Raised when no bearer credential is supplied."""

    status_code = 401
    default_message = "Authentication required"


class AuthInvalidError(SecurityError):
    """Raised when the bearer credential or its session is not valid."""

    status_code = 401
    default_message = "Invalid token"


class RoleForbiddenError(SecurityError):
    """Raised when the authenticated identity lacks the required role."""

    default_message = "Admin access required"


class TooManyLoginAttemptsError(SecurityError):
    """Raised when the login throttle blocks an identifier."""

    status_code = 429
    default_message = "Too many login attempts. Please try again in 15 minutes."

    def __init__(self, retry_after: int | None = None):
        super().__init__(retry_after=retry_after)


class InvalidCredentialsError(SecurityError):
    """Raised when the email/password pair does not match a user."""

    status_code = 401
    default_message = "Invalid email or password"


class AccountInactiveError(SecurityError):
    """Raised when a deactivated user tries to log in."""

    default_message = "Account is deactivated"


class RegistrationError(SecurityError):
    """Raised when a registration request cannot be accepted."""

    status_code = 400
    default_message = "Registration failed"
