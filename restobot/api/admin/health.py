"""Health check endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from restobot.api.deps import AppSettings, DbSession, RedisClient

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    timestamp: str


class ServiceHealth(BaseModel):
    """Individual service health status."""

    status: str
    latency_ms: float | None = None
    error: str | None = None


class DetailedHealthResponse(BaseModel):
    """Detailed health check response with service statuses."""

    status: str
    timestamp: str
    environment: str
    llm_configured: bool
    services: dict[str, ServiceHealth]


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    db: DbSession,
    redis_client: RedisClient,
    settings: AppSettings,
) -> DetailedHealthResponse:
    """Detailed health check with database and Redis status.

    A failing dependency is reported, not raised: the endpoint itself stays up
    and answers ``degraded``.
    """
    services: dict[str, ServiceHealth] = {}

    try:
        start = time.perf_counter()
        await db.execute(text("SELECT 1"))
        services["database"] = ServiceHealth(status="healthy", latency_ms=_elapsed_ms(start))
    except Exception as e:
        services["database"] = ServiceHealth(status="unhealthy", error=str(e))

    try:
        start = time.perf_counter()
        await redis_client.ping()
        services["redis"] = ServiceHealth(status="healthy", latency_ms=_elapsed_ms(start))
    except Exception as e:
        services["redis"] = ServiceHealth(status="unhealthy", error=str(e))

    all_healthy = all(s.status == "healthy" for s in services.values())

    return DetailedHealthResponse(
        status="healthy" if all_healthy else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.app_env,
        llm_configured=settings.llm_enabled,
        services=services,
    )
