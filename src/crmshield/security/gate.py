"""Pre-handler security gate.

Evaluates every protected request in a fixed order and raises on the first
failure:

1. Method allowed for the route (405)
2. Rate limit for (client IP, path) (429 with Retry-After)
3. CSRF token for mutating methods when required (403)
4. Origin header, when present, in the allow-list (403)
5. JSON content type for methods that carry a body (400)
6. Suspicious-activity heuristics (logged only)

Rate limiting runs before CSRF verification so that token verification cost
cannot be used to amplify a flood.
"""

from crmshield.core.context import RequestContext
from crmshield.core.exceptions import (
    ContentTypeInvalidError,
    CsrfInvalidError,
    CsrfMissingError,
    MethodNotAllowedError,
    OriginInvalidError,
    RateLimitedError,
)
from crmshield.core.logging import get_logger
from crmshield.security.config import (
    BODY_METHODS,
    MUTATING_METHODS,
    RouteSecurityOptions,
    SecurityConfig,
)
from crmshield.security.csrf import TokenCodec
from crmshield.security.rate_limiter import RateLimiter, RateLimitResult
from crmshield.security.sanitization import detect_suspicious_activity

logger = get_logger(__name__)

# Per-route options are the gate's public knob
SecurityOptions = RouteSecurityOptions

JSON_CONTENT_TYPE = "application/json"


class SecurityGate:
    """Runs the ordered security checks for one request.

    The gate holds no per-request state; the rate limiter and the CSRF
    replay cache it wraps are the only mutable parts.

    Example:
        gate = SecurityGate(RateLimiter(), TokenCodec(secret), SecurityConfig())
        ctx = RequestContext.from_request(request)
        result = await gate.check(ctx)  # raises SecurityError on rejection
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        token_codec: TokenCodec,
        config: SecurityConfig | None = None,
        session_cookie_name: str = "session-token",
    ) -> None:
        """Initialize the gate.

        Args:
            rate_limiter: Fixed-window limiter shared across requests
            token_codec: CSRF token verifier
            config: Security configuration (origins, route options, CSRF header)
            session_cookie_name: Cookie whose value CSRF tokens are bound to
        """
        self.rate_limiter = rate_limiter
        self.token_codec = token_codec
        self.config = config or SecurityConfig()
        self.session_cookie_name = session_cookie_name

    def options_for(self, path: str) -> SecurityOptions:
        return self.config.gate.options_for(path)

    async def check(
        self,
        ctx: RequestContext,
        options: SecurityOptions | None = None,
    ) -> RateLimitResult:
        """Evaluate all checks for a request.

        Args:
            ctx: The request
            options: Route options; resolved from the path when omitted

        Returns:
            The rate limit result for the admitted request

        Raises:
            SecurityError: The first failed check, as its typed subclass
        """
        options = options or self.options_for(ctx.path)

        self._check_method(ctx, options)
        result = await self._check_rate_limit(ctx)
        if ctx.method in MUTATING_METHODS and options.require_csrf:
            self._check_csrf(ctx, options)
        self._check_origin(ctx)
        if ctx.method in BODY_METHODS:
            self._check_content_type(ctx)
        self._log_suspicious_activity(ctx)

        return result

    def _check_method(self, ctx: RequestContext, options: SecurityOptions) -> None:
        if ctx.method not in options.allowed_methods:
            raise MethodNotAllowedError(ctx.method)

    async def _check_rate_limit(self, ctx: RequestContext) -> RateLimitResult:
        result = await self.rate_limiter.check(ctx.client_ip, ctx.path)
        if not result.allowed:
            raise RateLimitedError(retry_after=result.retry_after or 1)
        return result

    def _check_csrf(self, ctx: RequestContext, options: SecurityOptions) -> None:
        token = ctx.header(self.config.csrf.header_name)
        if not token:
            raise CsrfMissingError()

        session_id = ctx.cookies.get(self.session_cookie_name)
        if options.single_use_csrf:
            is_valid = self.token_codec.verify_and_consume(token, session_id)
        else:
            is_valid = self.token_codec.verify(token, session_id)
        if not is_valid:
            raise CsrfInvalidError()

    def _check_origin(self, ctx: RequestContext) -> None:
        origin = ctx.origin
        if origin and origin not in self.config.origins.allowed_origins:
            raise OriginInvalidError()

    def _check_content_type(self, ctx: RequestContext) -> None:
        content_type = ctx.header("content-type") or ""
        if JSON_CONTENT_TYPE not in content_type.lower():
            raise ContentTypeInvalidError()

    def _log_suspicious_activity(self, ctx: RequestContext) -> None:
        patterns = detect_suspicious_activity(ctx)
        if patterns:
            logger.warning(
                "suspicious_activity_detected",
                patterns=patterns,
                client_ip=ctx.client_ip,
                user_agent=ctx.user_agent,
                path=ctx.path,
            )
