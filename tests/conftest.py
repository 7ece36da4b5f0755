"""Pytest fixtures for crmshield tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from crmshield.config.settings import Settings
from crmshield.core.context import RequestContext

TEST_CSRF_SECRET = "test-csrf-secret-0123456789abcdef0123456789"
TEST_JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"
STRONG_PASSWORD = "StrongP@ssw0rd"


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Time
# =============================================================================


class FakeClock:
    """Manually advanced time source in epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# Request helpers
# =============================================================================


def make_context(
    method: str = "GET",
    path: str = "/api/contacts",
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
    host: str = "http://localhost:3000",
) -> RequestContext:
    """Build a RequestContext for a path on the test host."""
    return RequestContext.build(
        method=method,
        url=f"{host}{path}",
        headers=headers,
        cookies=cookies,
    )


# =============================================================================
# API test fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create settings for API testing."""
    return Settings(
        ENVIRONMENT="test",
        DEBUG=True,
        log_level="DEBUG",
        APP_URL="http://localhost:3000",
        CSRF_SECRET=SecretStr(TEST_CSRF_SECRET),
        JWT_SECRET=SecretStr(TEST_JWT_SECRET),
    )


@pytest.fixture
def test_app(test_settings: Settings, clock: FakeClock) -> FastAPI:
    """Create a FastAPI app with its own in-memory services."""
    from crmshield.api.app import create_app

    return create_app(settings=test_settings, clock=clock)


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx.AsyncClient calling the test application in-process."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://localhost:3000") as client:
        yield client
