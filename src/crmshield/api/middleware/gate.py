"""Middleware running the security gate in front of protected routes."""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from crmshield.api.middleware.errors import security_error_response
from crmshield.core.context import RequestContext
from crmshield.core.exceptions import SecurityError
from crmshield.core.logging import LogContext, get_logger
from crmshield.security.audit import AuditRecorder
from crmshield.security.gate import SecurityGate

logger = get_logger(__name__)


class SecurityGateMiddleware(BaseHTTPMiddleware):
    """Rejects requests that fail the security gate.

    Paths outside the gate's protected prefixes pass straight through.
    Admitted requests get ``request.state.request_context`` and, when
    configured, an ``X-RateLimit-Remaining`` response header. Rejections are
    answered here and never reach the route.

    Example:
        app.add_middleware(SecurityGateMiddleware, gate=gate, audit=recorder)
    """

    def __init__(
        self,
        app: ASGIApp,
        gate: SecurityGate,
        audit: AuditRecorder | None = None,
    ) -> None:
        super().__init__(app)
        self.gate = gate
        self.audit = audit

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if not self.gate.config.gate.is_protected(request.url.path):
            return await call_next(request)

        ctx = RequestContext.from_request(request)
        with LogContext(client_ip=ctx.client_ip, path=ctx.path, method=ctx.method):
            try:
                result = await self.gate.check(ctx)
            except SecurityError as exc:
                logger.warning(
                    "security_gate_rejected",
                    status_code=exc.status_code,
                    reason=exc.message,
                )
                if self.audit is not None:
                    await self.audit.record_security_violation(ctx, reason=exc.message)
                return security_error_response(exc)

        request.state.request_context = ctx
        response = await call_next(request)

        if self.gate.rate_limiter.config.include_in_headers:
            response.headers["X-RateLimit-Remaining"] = str(result.remaining)

        return response
