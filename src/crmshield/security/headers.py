"""Security response headers.

Every response carries:
- Content-Security-Policy (optionally nonce-based script-src)
- X-Frame-Options and X-Content-Type-Options
- X-XSS-Protection for older browsers
- Strict-Transport-Security with preload
- Referrer-Policy and Permissions-Policy
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from crmshield.security.config import CSPDirective, SecurityHeadersConfig

if TYPE_CHECKING:
    from fastapi import Request, Response


def build_csp_header(directives: dict[str, list[str]], nonce: str | None = None) -> str:
    """Build Content-Security-Policy header value from directives.

    Args:
        directives: Mapping of directive names to their values
        nonce: When given, script-src becomes ``'self' 'nonce-<nonce>'``

    Returns:
        Formatted CSP header string

    Example:
        >>> build_csp_header({"default-src": ["'self'"], "script-src": ["'self'"]}, nonce="abc")
        "default-src 'self'; script-src 'self' 'nonce-abc'"
    """
    script_src = CSPDirective.SCRIPT_SRC.value
    parts = []
    for directive, values in directives.items():
        if nonce and directive == script_src:
            values = ["'self'", f"'nonce-{nonce}'"]
        if values:
            parts.append(f"{directive} {' '.join(values)}")
        else:
            parts.append(directive)
    return "; ".join(parts)


def build_permissions_policy_header(permissions: dict[str, list[str]]) -> str:
    """Build Permissions-Policy header value.

    Example:
        >>> build_permissions_policy_header({"geolocation": [], "camera": ["self"]})
        'geolocation=(), camera=(self)'
    """
    parts = []
    for feature, origins in permissions.items():
        parts.append(f"{feature}=({' '.join(origins)})")
    return ", ".join(parts)


def build_hsts_header(
    max_age: int,
    include_subdomains: bool = True,
    preload: bool = False,
) -> str:
    parts = [f"max-age={max_age}"]
    if include_subdomains:
        parts.append("includeSubDomains")
    if preload:
        parts.append("preload")
    return "; ".join(parts)


def create_security_headers(
    config: SecurityHeadersConfig | None = None,
    nonce: str | None = None,
) -> dict[str, str]:
    """Build the full set of security headers.

    Args:
        config: Header configuration
        nonce: Optional per-response script nonce

    Returns:
        Header name -> value
    """
    config = config or SecurityHeadersConfig()
    headers: dict[str, str] = {}

    if config.content_security_policy:
        headers["Content-Security-Policy"] = build_csp_header(
            config.content_security_policy, nonce=nonce
        )
    if config.x_frame_options:
        headers["X-Frame-Options"] = config.x_frame_options
    if config.x_content_type_options:
        headers["X-Content-Type-Options"] = config.x_content_type_options
    if config.referrer_policy:
        headers["Referrer-Policy"] = config.referrer_policy
    if config.x_xss_protection:
        headers["X-XSS-Protection"] = config.x_xss_protection
    if config.strict_transport_security and config.hsts_max_age > 0:
        headers["Strict-Transport-Security"] = build_hsts_header(
            max_age=config.hsts_max_age,
            include_subdomains=config.hsts_include_subdomains,
            preload=config.hsts_preload,
        )
    if config.permissions_policy:
        headers["Permissions-Policy"] = build_permissions_policy_header(
            config.permissions_policy
        )

    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware that adds security headers to all responses.

    Headers already set by a route are left untouched, which allows per-route
    overrides.

    Example:
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware, config=SecurityHeadersConfig())
    """

    def __init__(
        self,
        app: ASGIApp,
        config: SecurityHeadersConfig | None = None,
    ) -> None:
        super().__init__(app)
        self.config = config or SecurityHeadersConfig()
        self._static_headers = create_security_headers(self.config)

    async def dispatch(
        self,
        request: "Request",
        call_next: Callable[["Request"], Awaitable["Response"]],
    ) -> "Response":
        response = await call_next(request)

        for header_name, header_value in self._static_headers.items():
            if header_name not in response.headers:
                response.headers[header_name] = header_value

        return response
