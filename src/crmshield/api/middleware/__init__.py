"""API middleware components."""

from .errors import security_error_handler, security_error_response
from .gate import SecurityGateMiddleware
from .logging import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "SecurityGateMiddleware",
    "security_error_handler",
    "security_error_response",
]
