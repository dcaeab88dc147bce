"""Tests for health endpoints and request logging headers."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.api.v1.endpoints import health
from app.config import settings


@pytest.mark.asyncio
async def test_ping(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_detailed_health_all_up(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(health, "check_database_connection", AsyncMock(return_value=True))
    monkeypatch.setattr(health, "check_redis_connection", AsyncMock(return_value=True))

    response = await client.get("/api/v1/health/detailed")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["redis"] == "healthy"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("lock_backend", "expected"),
    [("redis", "degraded"), ("memory", "healthy")],
)
async def test_detailed_health_redis_down(
    client: AsyncClient,
    monkeypatch,
    lock_backend: str,
    expected: str,
) -> None:
    """Redis only degrades the service when it backs the scheduling lock."""
    monkeypatch.setattr(settings, "scheduling_lock_backend", lock_backend)
    monkeypatch.setattr(health, "check_database_connection", AsyncMock(return_value=True))
    monkeypatch.setattr(health, "check_redis_connection", AsyncMock(return_value=False))

    response = await client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == expected
    assert data["redis"] == "unhealthy"
    assert data["scheduling_lock_backend"] == lock_backend


@pytest.mark.asyncio
async def test_detailed_health_database_down(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(health, "check_database_connection", AsyncMock(return_value=False))
    monkeypatch.setattr(health, "check_redis_connection", AsyncMock(return_value=True))

    response = await client.get("/api/v1/health/detailed")

    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})

    assert response.headers["X-Request-ID"] == "abc123"
    assert float(response.headers["X-Process-Time"]) >= 0


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health")

    assert len(response.headers["X-Request-ID"]) == 32
