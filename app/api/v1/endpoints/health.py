"""Health check endpoints."""

from typing import Literal

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()

BackendState = Literal["healthy", "unhealthy"]


class HealthResponse(BaseModel):
    """Liveness response."""

    status: Literal["healthy", "degraded"]
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the service and the backends scheduling depends on."""

    database: BackendState
    redis: BackendState
    scheduling_lock_backend: str


def _state(ok: bool) -> BackendState:
    return "healthy" if ok else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness only; no backend is contacted."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Check PostgreSQL and Redis.

    The service is degraded when the database is down, or when Redis is down
    while it backs the scheduling lock. With the in-memory lock, Redis only
    serves the cache and its outage is reported without degrading.
    """
    database_ok = await check_database_connection()
    redis_ok = await check_redis_connection()
    lock_needs_redis = settings.scheduling_lock_backend == "redis"

    healthy = database_ok and (redis_ok or not lock_needs_redis)

    return DetailedHealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=_state(database_ok),
        redis=_state(redis_ok),
        scheduling_lock_backend=settings.scheduling_lock_backend,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}
