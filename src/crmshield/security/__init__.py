"""Request-security layer.

This module provides:
- CSRF token issuance and verification
- Fixed-window rate limiting and the login attempt throttle
- Input validation and sanitization
- Security response headers
- The ordered pre-handler security gate
- Audit entry construction
"""

from .audit import (
    AuditAction,
    AuditCategory,
    AuditEntry,
    AuditRecorder,
    AuditSeverity,
    AuditStore,
    InMemoryAuditStore,
)
from .config import (
    CsrfConfig,
    GateConfig,
    LoginThrottleConfig,
    OriginConfig,
    RateLimitConfig,
    RateLimitPolicy,
    RouteSecurityOptions,
    SecurityConfig,
    SecurityHeadersConfig,
    create_default_security_config,
)
from .csrf import (
    ReplayCache,
    TokenCodec,
    generate_double_submit_token,
    validate_double_submit_token,
)
from .gate import SecurityGate, SecurityOptions
from .headers import SecurityHeadersMiddleware, build_csp_header, create_security_headers
from .ip_access import IPAccessList
from .login_throttle import LoginAttemptTracker
from .rate_limiter import (
    FixedWindowEntry,
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitResult,
    RateLimitStore,
)
from .sanitization import (
    ValidationResult,
    detect_suspicious_activity,
    sanitize_html,
    sanitize_input,
    secure_compare,
    validate_email,
    validate_password,
)

__all__ = [
    # Audit
    "AuditAction",
    "AuditCategory",
    "AuditEntry",
    "AuditRecorder",
    "AuditSeverity",
    "AuditStore",
    "InMemoryAuditStore",
    # Config
    "CsrfConfig",
    "GateConfig",
    "LoginThrottleConfig",
    "OriginConfig",
    "RateLimitConfig",
    "RateLimitPolicy",
    "RouteSecurityOptions",
    "SecurityConfig",
    "SecurityHeadersConfig",
    "create_default_security_config",
    # CSRF
    "ReplayCache",
    "TokenCodec",
    "generate_double_submit_token",
    "validate_double_submit_token",
    # Gate
    "SecurityGate",
    "SecurityOptions",
    # Headers
    "SecurityHeadersMiddleware",
    "build_csp_header",
    "create_security_headers",
    # Access control
    "IPAccessList",
    "LoginAttemptTracker",
    # Rate limiting
    "FixedWindowEntry",
    "InMemoryRateLimitStore",
    "RateLimiter",
    "RateLimitResult",
    "RateLimitStore",
    # Input guard
    "ValidationResult",
    "detect_suspicious_activity",
    "sanitize_html",
    "sanitize_input",
    "secure_compare",
    "validate_email",
    "validate_password",
]
