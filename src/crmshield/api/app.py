"""FastAPI application factory."""

import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI

from crmshield.api.middleware import (
    RequestLoggingMiddleware,
    SecurityGateMiddleware,
    security_error_handler,
)
from crmshield.api.routers import (
    auth_router,
    csrf_router,
    health_router,
    security_test_router,
    users_router,
)
from crmshield.auth.dependencies import SessionAuthenticator
from crmshield.auth.service import AuthService
from crmshield.auth.sessions import InMemorySessionStore
from crmshield.auth.tokens import BearerTokenCodec
from crmshield.auth.users import InMemoryUserStore
from crmshield.config.settings import Settings, get_settings
from crmshield.core.exceptions import ConfigurationError, SecurityError
from crmshield.core.logging import get_logger, setup_logging
from crmshield.security import (
    AuditRecorder,
    InMemoryAuditStore,
    InMemoryRateLimitStore,
    LoginAttemptTracker,
    RateLimiter,
    SecurityConfig,
    SecurityGate,
    SecurityHeadersMiddleware,
    TokenCodec,
    create_default_security_config,
)

logger = get_logger(__name__)

_DEFAULT_SECRET_MARKER = "change"


def create_app(
    settings: Settings | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Assembles the stateful security services, the middleware stack, the
    exception handler and the routers. Every service is created here and
    stored on ``app.state``, so two apps never share a rate limiter, replay
    cache or session store.

    Args:
        settings: Optional settings override (useful for testing)
        clock: Time source in epoch seconds for every time-dependent service

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: Production settings still use placeholder secrets

    Example:
        # Production
        uvicorn crmshield.api.app:create_app --factory

        # Testing
        app = create_app(settings=Settings(ENVIRONMENT="test"))
    """
    if settings is None:
        settings = get_settings()

    _validate_settings(settings)

    app = FastAPI(
        title="CRM Shield API",
        description="Request-security layer for the CRM backend",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    app.state.settings = settings
    security_config = create_default_security_config(
        settings.ENVIRONMENT,
        app_url=settings.APP_URL,
        csrf_token_ttl_seconds=settings.CSRF_TOKEN_TTL_SECONDS,
    )
    app.state.security_config = security_config

    _configure_services(app, settings, security_config, clock)
    _configure_middleware(app, security_config)
    app.add_exception_handler(SecurityError, security_error_handler)
    _configure_routers(app)

    return app


def _validate_settings(settings: Settings) -> None:
    if not settings.is_production:
        return
    for name in ("CSRF_SECRET", "JWT_SECRET"):
        secret = getattr(settings, name).get_secret_value()
        if not secret or _DEFAULT_SECRET_MARKER in secret:
            raise ConfigurationError(f"{name} must be set in production")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    setup_logging(log_level=settings.log_level, json_format=settings.is_production)
    logger.info("app_starting", environment=settings.ENVIRONMENT)

    yield

    logger.info("app_stopping")


def _configure_services(
    app: FastAPI,
    settings: Settings,
    security_config: SecurityConfig,
    clock: Callable[[], float],
) -> None:
    """Create the stateful services and store them on ``app.state``."""
    rate_limiter = RateLimiter(
        store=InMemoryRateLimitStore(),
        config=security_config.rate_limit,
        clock=clock,
    )
    token_codec = TokenCodec(
        secret=settings.CSRF_SECRET.get_secret_value(),
        config=security_config.csrf,
        clock=clock,
    )
    audit_store = InMemoryAuditStore()
    audit = AuditRecorder(store=audit_store, clock=clock)

    bearer_tokens = BearerTokenCodec(
        secret=settings.JWT_SECRET.get_secret_value(),
        ttl_seconds=settings.SESSION_TTL_SECONDS,
        clock=clock,
    )
    sessions = InMemorySessionStore()
    users = InMemoryUserStore()

    app.state.rate_limiter = rate_limiter
    app.state.token_codec = token_codec
    app.state.audit_store = audit_store
    app.state.audit = audit
    app.state.gate = SecurityGate(
        rate_limiter=rate_limiter,
        token_codec=token_codec,
        config=security_config,
        session_cookie_name=settings.SESSION_COOKIE_NAME,
    )
    app.state.authenticator = SessionAuthenticator(bearer_tokens, sessions, clock=clock)
    app.state.auth_service = AuthService(
        users=users,
        sessions=sessions,
        tokens=bearer_tokens,
        login_tracker=LoginAttemptTracker(security_config.login_throttle, clock=clock),
        audit=audit,
        session_ttl_seconds=settings.SESSION_TTL_SECONDS,
        clock=clock,
    )


def _configure_middleware(app: FastAPI, security_config: SecurityConfig) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. SecurityHeadersMiddleware - Adds security headers to every response
    2. RequestLoggingMiddleware - Logs all requests, rejected ones included
    3. SecurityGateMiddleware - Method, rate limit, CSRF, origin, content type

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    app.add_middleware(SecurityGateMiddleware, gate=app.state.gate, audit=app.state.audit)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, config=security_config.headers)


def _configure_routers(app: FastAPI) -> None:
    app.include_router(health_router)
    app.include_router(csrf_router)
    app.include_router(auth_router)
    app.include_router(security_test_router)
    app.include_router(users_router)
