import os
from collections.abc import AsyncGenerator, Callable
from datetime import time, timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient

# Load environment variables from .env file
load_dotenv()

# Scheduling tests never need a shared Redis lock
os.environ.setdefault("SCHEDULING_LOCK_BACKEND", "memory")

from app.core.redis_client import CacheManager
from app.core.security import create_access_token
from app.dependencies import (
    get_appointment_store,
    get_cache_manager,
    get_current_user,
    get_scheduling_service,
    get_working_hours,
)
from app.main import app
from app.scheduling.locks import InMemoryPractitionerLocks
from app.scheduling.slots import WorkingHours
from app.schemas.users import Permission, StaffRole
from app.services.scheduling_service import SchedulingService
from tests.fakes import FakeAppointmentStore, FakeClinicDirectory


@pytest.fixture
def store() -> FakeAppointmentStore:
    """Empty in-memory appointment store."""
    return FakeAppointmentStore()


@pytest.fixture
def directory() -> FakeClinicDirectory:
    """Directory with two practitioners and one patient."""
    return FakeClinicDirectory()


@pytest.fixture
def working_hours() -> WorkingHours:
    """Clinic open 08:00 to 18:00 UTC."""
    return WorkingHours(opens_at=time(8, 0), closes_at=time(18, 0), timezone="UTC")


@pytest.fixture
def service(
    store: FakeAppointmentStore,
    directory: FakeClinicDirectory,
    working_hours: WorkingHours,
) -> SchedulingService:
    """Scheduling service over in-memory collaborators."""
    return SchedulingService(
        store=store,
        directory=directory,
        locks=InMemoryPractitionerLocks(),
        working_hours=working_hours,
        default_slot_minutes=30,
    )


@pytest.fixture
def make_user() -> Callable[..., dict]:
    """Factory for authenticated staff user dicts."""

    def _make_user(
        role: StaffRole = StaffRole.RECEPTIONIST,
        permissions: list[Permission] | None = None,
    ) -> dict:
        if permissions is None:
            permissions = list(Permission)
        return {
            "id": uuid4(),
            "email": f"{role.value}@clinic.com",
            "first_name": "Test",
            "last_name": role.value.title(),
            "role": role.value,
            "permissions": [permission.value for permission in permissions],
            "is_active": True,
        }

    return _make_user


@pytest.fixture
def current_user(make_user: Callable[..., dict]) -> dict:
    """Receptionist holding every appointment permission."""
    return make_user()


@pytest.fixture
def mock_redis() -> MagicMock:
    """Redis client double for the cache manager."""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    redis_client.exists.return_value = 0
    return redis_client


@pytest_asyncio.fixture
async def client(
    service: SchedulingService,
    store: FakeAppointmentStore,
    working_hours: WorkingHours,
    current_user: dict,
    mock_redis: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client wired to the in-memory scheduling stack."""

    async def override_get_current_user() -> dict:
        return current_user

    app.dependency_overrides[get_scheduling_service] = lambda: service
    app.dependency_overrides[get_appointment_store] = lambda: store
    app.dependency_overrides[get_working_hours] = lambda: working_hours
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_cache_manager] = lambda: CacheManager(mock_redis)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(current_user: dict) -> dict:
    """Create authentication headers for testing protected endpoints."""
    token = create_access_token(
        data={"sub": str(current_user["id"])},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}
