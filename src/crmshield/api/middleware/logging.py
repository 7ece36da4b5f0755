"""Request logging middleware."""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from crmshield.core.context import get_client_ip
from crmshield.core.logging import get_logger

logger = get_logger("crmshield.api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every completed request with status and duration.

    Level follows the status: error for 5xx, warning for 4xx, info otherwise.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status_code = response.status_code
        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            client_ip=get_client_ip(request.headers),
            user_agent=request.headers.get("user-agent"),
        )
        return response
