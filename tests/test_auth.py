"""Tests for staff authentication."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.dialects import postgresql

from app.core.exceptions import ForbiddenException, UnauthorizedException
from app.core.redis_client import CacheManager
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from app.database import get_db
from app.main import app
from app.schemas.users import Permission, StaffRole, UserCreate
from app.services.auth_service import AuthService
from app.services.user_service import UserService

PASSWORD = "correct-horse"


@pytest.fixture
def staff_row() -> dict:
    return {
        "id": uuid4(),
        "email": "reception@clinic.com",
        "hashed_password": get_password_hash(PASSWORD),
        "first_name": "Rita",
        "last_name": "Desk",
        "role": "receptionist",
        "permissions": ["appointments.create", "appointments.read"],
        "is_active": True,
    }


def _mock_db(row: dict | None) -> MagicMock:
    result = MagicMock()
    result.mappings.return_value.first.return_value = dict(row) if row else None
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    return db


def test_password_hashing():
    hashed = get_password_hash(PASSWORD)
    assert hashed != PASSWORD
    assert verify_password(PASSWORD, hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_round_trip():
    token = create_access_token({"sub": "user-1"})
    payload = decode_access_token(token)
    assert payload is not None
    assert payload["sub"] == "user-1"
    assert payload["type"] == "access"


def test_token_types_are_not_interchangeable():
    refresh = create_refresh_token({"sub": "user-1"})
    access = create_access_token({"sub": "user-1"})
    assert decode_access_token(refresh) is None
    assert decode_refresh_token(access) is None


def test_expired_token_is_rejected():
    token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
    assert decode_access_token(token) is None


def test_garbage_token_is_rejected():
    assert decode_access_token("not-a-jwt") is None


@pytest.mark.asyncio
async def test_login(staff_row: dict, mock_redis: MagicMock):
    db = _mock_db(staff_row)

    user, tokens = await AuthService(CacheManager(mock_redis)).login(
        db, "Reception@Clinic.com", PASSWORD
    )

    assert user["id"] == staff_row["id"]
    assert "hashed_password" not in user
    assert decode_access_token(tokens.access_token)["sub"] == str(staff_row["id"])
    # Lookup plus last login stamp
    assert db.execute.await_count == 2
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_login_wrong_password(staff_row: dict, mock_redis: MagicMock):
    with pytest.raises(UnauthorizedException):
        await AuthService(CacheManager(mock_redis)).login(
            _mock_db(staff_row), staff_row["email"], "wrong"
        )


@pytest.mark.asyncio
async def test_login_unknown_email(mock_redis: MagicMock):
    with pytest.raises(UnauthorizedException):
        await AuthService(CacheManager(mock_redis)).login(
            _mock_db(None), "nobody@clinic.com", PASSWORD
        )


@pytest.mark.asyncio
async def test_login_deactivated(staff_row: dict, mock_redis: MagicMock):
    staff_row["is_active"] = False

    with pytest.raises(ForbiddenException):
        await AuthService(CacheManager(mock_redis)).login(
            _mock_db(staff_row), staff_row["email"], PASSWORD
        )


def test_refresh_revoked_token(mock_redis: MagicMock):
    service = AuthService(CacheManager(mock_redis))
    refresh = create_refresh_token({"sub": str(uuid4())})

    assert service.refresh_access_token(refresh).access_token

    mock_redis.exists.return_value = 1
    with pytest.raises(UnauthorizedException):
        service.refresh_access_token(refresh)


@pytest.mark.asyncio
async def test_login_endpoint(client: AsyncClient, staff_row: dict) -> None:
    db = _mock_db(staff_row)

    async def override_get_db() -> AsyncGenerator[MagicMock, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": staff_row["email"], "password": PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == staff_row["email"]
    assert data["user"]["permissions"] == staff_row["permissions"]


@pytest.mark.asyncio
async def test_login_endpoint_wrong_password(client: AsyncClient, staff_row: dict) -> None:
    db = _mock_db(staff_row)

    async def override_get_db() -> AsyncGenerator[MagicMock, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": staff_row["email"], "password": "wrong"},
    )

    assert response.status_code == 401
    assert response.json()["error"] == "UnauthorizedException"


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client: AsyncClient, mock_redis: MagicMock) -> None:
    refresh = create_refresh_token({"sub": str(uuid4())})

    response = await client.post("/api/v1/auth/logout", json={"refresh_token": refresh})

    assert response.status_code == 204
    key, _, value = mock_redis.setex.call_args.args
    assert key == f"blacklist:{refresh}"
    assert value == "1"


@pytest.mark.asyncio
async def test_me(client: AsyncClient, auth_headers: dict, current_user: dict) -> None:
    response = await client.get("/api/v1/auth/me", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(current_user["id"])
    assert data["role"] == "receptionist"


@pytest.mark.asyncio
async def test_create_user_hashes_password(staff_row: dict):
    db = _mock_db(staff_row)
    data = UserCreate(
        email="New.Dentist@Clinic.com",
        password=PASSWORD,
        first_name="Nia",
        last_name="Enamel",
        role=StaffRole.DENTIST,
        permissions=[Permission.APPOINTMENTS_READ],
    )

    user = await UserService().create_user(db, data)

    assert user["id"] == staff_row["id"]
    params = db.execute.await_args.args[0].compile(dialect=postgresql.dialect()).params
    assert params["email"] == "new.dentist@clinic.com"
    assert params["role"] == "dentist"
    assert params["permissions"] == ["appointments.read"]
    assert verify_password(PASSWORD, params["hashed_password"])
    db.commit.assert_awaited_once()
