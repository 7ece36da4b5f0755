"""Security configuration types and defaults.

Provides centralized configuration for the request-security layer: response
headers, per-route rate-limit policies, the login throttle, CSRF tokens, the
origin allow-list and per-route gate options.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, TypeVar

from crmshield.config.settings import Environment

MUTATING_METHODS = frozenset({"POST", "PUT", "DELETE", "PATCH"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
DEFAULT_ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

FIFTEEN_MINUTES = 15 * 60
ONE_HOUR = 60 * 60

T = TypeVar("T")


class CSPDirective(str, Enum):
    """Content Security Policy directive names."""

    DEFAULT_SRC = "default-src"
    SCRIPT_SRC = "script-src"
    STYLE_SRC = "style-src"
    IMG_SRC = "img-src"
    FONT_SRC = "font-src"
    CONNECT_SRC = "connect-src"
    OBJECT_SRC = "object-src"
    FRAME_ANCESTORS = "frame-ancestors"
    BASE_URI = "base-uri"
    FORM_ACTION = "form-action"
    UPGRADE_INSECURE_REQUESTS = "upgrade-insecure-requests"


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Configuration for security headers.

    Attributes:
        x_content_type_options: Prevent MIME type sniffing
        x_frame_options: Clickjacking protection
        x_xss_protection: XSS filter for older browsers
        strict_transport_security: Emit HSTS
        hsts_max_age: HSTS max-age in seconds (default: 1 year)
        hsts_include_subdomains: Include subdomains in HSTS
        hsts_preload: Add the preload directive
        content_security_policy: CSP directives, in emission order. The
            script-src entry is replaced when a nonce is supplied.
        referrer_policy: Referrer policy
        permissions_policy: Browser features to disable
    """

    x_content_type_options: str = "nosniff"
    x_frame_options: Literal["DENY", "SAMEORIGIN"] = "DENY"
    x_xss_protection: str = "1; mode=block"

    strict_transport_security: bool = True
    hsts_max_age: int = 31536000
    hsts_include_subdomains: bool = True
    hsts_preload: bool = True

    content_security_policy: dict[str, list[str]] = field(
        default_factory=lambda: {
            "default-src": ["'self'"],
            "script-src": ["'self'", "'unsafe-inline'"],
            "style-src": ["'self'", "'unsafe-inline'"],
            "img-src": ["'self'", "data:", "blob:"],
            "font-src": ["'self'"],
            "object-src": ["'none'"],
            "base-uri": ["'self'"],
            "form-action": ["'self'"],
            "frame-ancestors": ["'none'"],
            "connect-src": ["'self'", "wss:", "ws:"],
            "upgrade-insecure-requests": [],
        }
    )

    referrer_policy: str = "strict-origin-when-cross-origin"

    permissions_policy: dict[str, list[str]] = field(
        default_factory=lambda: {
            "geolocation": [],
            "microphone": [],
            "camera": [],
            "payment": [],
            "usb": [],
            "magnetometer": [],
            "gyroscope": [],
            "speaker": [],
            "bluetooth": [],
            "midi": [],
            "document-domain": [],
        }
    )


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    """Fixed-window quota for a route prefix.

    Attributes:
        window_seconds: Length of the counting window
        max_requests: Requests allowed per window
    """

    window_seconds: int
    max_requests: int


DEFAULT_RATE_LIMIT_POLICY = RateLimitPolicy(window_seconds=FIFTEEN_MINUTES, max_requests=100)


def _default_route_policies() -> dict[str, RateLimitPolicy]:
    return {
        # One above LoginThrottleConfig.max_attempts; the login tracker refuses first
        "/api/auth/login": RateLimitPolicy(FIFTEEN_MINUTES, 6),
        "/api/auth/register": RateLimitPolicy(ONE_HOUR, 3),
        "/api/auth/password-reset": RateLimitPolicy(ONE_HOUR, 3),
        "/api/upload": RateLimitPolicy(FIFTEEN_MINUTES, 10),
        "/api/export": RateLimitPolicy(FIFTEEN_MINUTES, 5),
        "/api": RateLimitPolicy(FIFTEEN_MINUTES, 300),
        "/forms": RateLimitPolicy(FIFTEEN_MINUTES, 20),
    }


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Configuration for rate limiting.

    Attributes:
        enabled: Whether rate limiting is active
        default_policy: Policy for routes matching no registered prefix
        route_policies: Route prefix -> policy; the longest matching prefix wins
        include_in_headers: Add X-RateLimit-Remaining to allowed responses
    """

    enabled: bool = True
    default_policy: RateLimitPolicy = DEFAULT_RATE_LIMIT_POLICY
    route_policies: dict[str, RateLimitPolicy] = field(default_factory=_default_route_policies)
    include_in_headers: bool = True


@dataclass(frozen=True, slots=True)
class LoginThrottleConfig:
    """Configuration for the login attempt counter.

    Attributes:
        max_attempts: Attempts allowed per window
        window_seconds: Idle period after which the counter resets
    """

    max_attempts: int = 5
    window_seconds: int = FIFTEEN_MINUTES


@dataclass(frozen=True, slots=True)
class CsrfConfig:
    """Configuration for CSRF tokens.

    Attributes:
        token_ttl_seconds: Token lifetime
        replay_cache_size: Consumed-token count at which the replay set is cleared
        header_name: Request header carrying the token
        form_field: Form field carrying the token
        anonymous_session_id: Session id bound into tokens issued without a session
    """

    token_ttl_seconds: int = ONE_HOUR
    replay_cache_size: int = 10_000
    header_name: str = "x-csrf-token"
    form_field: str = "_csrf"
    anonymous_session_id: str = "anonymous"


def _localhost_origins() -> tuple[str, ...]:
    return (
        "https://localhost:3000",
        "http://localhost:3001",
        "https://localhost:3001",
    )


@dataclass(frozen=True, slots=True)
class OriginConfig:
    """Origin allow-list.

    Attributes:
        app_url: Configured application URL, always allowed
        extra_origins: Additional explicitly allowed origins
    """

    app_url: str = "http://localhost:3000"
    extra_origins: tuple[str, ...] = field(default_factory=_localhost_origins)

    @property
    def allowed_origins(self) -> frozenset[str]:
        """All allowed origins."""
        return frozenset((self.app_url, *self.extra_origins))


@dataclass(frozen=True, slots=True)
class RouteSecurityOptions:
    """Gate options for a route prefix.

    Attributes:
        allowed_methods: HTTP methods accepted by the route
        require_csrf: Enforce CSRF tokens on mutating methods
        single_use_csrf: Consume tokens so each can be used only once
    """

    allowed_methods: tuple[str, ...] = DEFAULT_ALLOWED_METHODS
    require_csrf: bool = True
    single_use_csrf: bool = False


_CRUD_METHODS = ("GET", "POST", "PUT", "DELETE")


def _default_route_options() -> dict[str, RouteSecurityOptions]:
    return {
        "/api/auth/login": RouteSecurityOptions(allowed_methods=("POST",), require_csrf=False),
        "/api/auth/register": RouteSecurityOptions(allowed_methods=("POST",)),
        "/api/auth/logout": RouteSecurityOptions(allowed_methods=("POST",)),
        "/api/auth/me": RouteSecurityOptions(allowed_methods=("GET",)),
        "/api/csrf-token": RouteSecurityOptions(allowed_methods=("GET",), require_csrf=False),
        "/api/users": RouteSecurityOptions(allowed_methods=_CRUD_METHODS),
        "/api/contacts": RouteSecurityOptions(allowed_methods=_CRUD_METHODS),
        "/api/projects": RouteSecurityOptions(allowed_methods=_CRUD_METHODS),
        "/api/upload": RouteSecurityOptions(allowed_methods=("POST",)),
        "/api/export": RouteSecurityOptions(allowed_methods=("GET",)),
    }


@dataclass(frozen=True, slots=True)
class GateConfig:
    """Configuration for the security gate middleware.

    Attributes:
        protected_prefixes: Path prefixes evaluated by the gate
        default_options: Options for protected routes with no specific entry
        route_options: Route prefix -> options; the longest matching prefix wins
    """

    protected_prefixes: tuple[str, ...] = ("/api",)
    default_options: RouteSecurityOptions = field(default_factory=RouteSecurityOptions)
    route_options: dict[str, RouteSecurityOptions] = field(default_factory=_default_route_options)

    def is_protected(self, path: str) -> bool:
        """Whether the gate applies to a path."""
        return any(path.startswith(prefix) for prefix in self.protected_prefixes)

    def options_for(self, path: str) -> RouteSecurityOptions:
        """Resolve gate options for a path by longest prefix match."""
        return match_longest_prefix(path, self.route_options, self.default_options)


def match_longest_prefix(path: str, table: dict[str, T], default: T) -> T:
    """Return the entry whose key is the longest prefix of ``path``.

    Args:
        path: Request path
        table: Prefix -> value mapping
        default: Value when no prefix matches

    Returns:
        The most specific matching value, or ``default``
    """
    best_prefix: str | None = None
    for prefix in table:
        if path.startswith(prefix) and (best_prefix is None or len(prefix) > len(best_prefix)):
            best_prefix = prefix
    if best_prefix is None:
        return default
    return table[best_prefix]


@dataclass(frozen=True, slots=True)
class SecurityConfig:
    """Master security configuration.

    Aggregates all security-related configurations into a single object.
    """

    headers: SecurityHeadersConfig = field(default_factory=SecurityHeadersConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    login_throttle: LoginThrottleConfig = field(default_factory=LoginThrottleConfig)
    csrf: CsrfConfig = field(default_factory=CsrfConfig)
    origins: OriginConfig = field(default_factory=OriginConfig)
    gate: GateConfig = field(default_factory=GateConfig)


def create_default_security_config(
    environment: Environment = "development",
    app_url: str = "http://localhost:3000",
    csrf_token_ttl_seconds: int = ONE_HOUR,
) -> SecurityConfig:
    """Create security configuration appropriate for the environment.

    Args:
        environment: The deployment environment
        app_url: Application base URL for the origin allow-list
        csrf_token_ttl_seconds: CSRF token lifetime

    Returns:
        SecurityConfig appropriate for the environment
    """
    origins = OriginConfig(app_url=app_url)
    csrf = CsrfConfig(token_ttl_seconds=csrf_token_ttl_seconds)

    if environment == "production":
        headers = SecurityHeadersConfig()
        csp = dict(headers.content_security_policy)
        csp["script-src"] = ["'self'"]
        return SecurityConfig(
            headers=SecurityHeadersConfig(content_security_policy=csp),
            rate_limit=RateLimitConfig(
                default_policy=RateLimitPolicy(FIFTEEN_MINUTES, 50),
            ),
            csrf=csrf,
            origins=origins,
        )
    elif environment == "staging":
        return SecurityConfig(
            headers=SecurityHeadersConfig(hsts_max_age=86400),
            csrf=csrf,
            origins=origins,
        )
    elif environment == "test":
        return SecurityConfig(
            headers=SecurityHeadersConfig(),
            csrf=csrf,
            origins=origins,
        )
    else:  # development
        headers = SecurityHeadersConfig()
        csp = dict(headers.content_security_policy)
        csp["script-src"] = ["'self'", "'unsafe-inline'", "'unsafe-eval'"]
        return SecurityConfig(
            headers=SecurityHeadersConfig(content_security_policy=csp),
            csrf=csrf,
            origins=origins,
        )
