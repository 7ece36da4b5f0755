"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter

from crmshield.api.schemas.health import HealthResponse, HealthStatus

router = APIRouter(tags=["health"])

APP_VERSION = "0.1.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns basic liveness status. Not subject to the security gate.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
    )
