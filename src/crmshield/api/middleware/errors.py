"""Serialization of security errors to HTTP responses."""

from fastapi import Request
from fastapi.responses import JSONResponse

from crmshield.api.schemas.errors import SecurityErrorBody
from crmshield.core.exceptions import SecurityError


def security_error_response(exc: SecurityError) -> JSONResponse:
    """Convert a security error into ``{"error": message}`` with its status.

    ``Retry-After`` is set in whole seconds when the error carries one.
    """
    headers: dict[str, str] = {}
    if exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(
        status_code=exc.status_code,
        content=SecurityErrorBody(error=exc.message).model_dump(),
        headers=headers or None,
    )


async def security_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for security errors raised by route dependencies."""
    if not isinstance(exc, SecurityError):
        raise exc
    return security_error_response(exc)
