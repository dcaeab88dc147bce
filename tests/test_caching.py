"""Tests for Redis caching implementation."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import StoreException
from app.core.redis_client import CacheManager
from app.services.directory_service import ClinicDirectory
from app.services.user_service import UserService


def _mock_db(first_row=None) -> MagicMock:
    """Async session double whose queries return ``first_row``."""
    result = MagicMock()
    result.first.return_value = first_row
    result.mappings.return_value.first.return_value = first_row
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.commit = AsyncMock()
    return db


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    result = cache_manager.get_json("test_key")
    assert result is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"name": "Test", "value": 123}'
    result = cache_manager.get_json("test_key")
    assert result == {"name": "Test", "value": 123}
    mock_redis.get.assert_called_once_with("test_key")


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    test_data = {"name": "Test", "value": 123}

    # Test without TTL
    result = cache_manager.set_json("test_key", test_data)
    assert result is True
    mock_redis.set.assert_called_once()

    # Test with TTL
    mock_redis.reset_mock()
    result = cache_manager.set_json("test_key", test_data, ttl=300)
    assert result is True
    mock_redis.setex.assert_called_once()


def test_cache_manager_set_and_exists():
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.set("blacklist:token", "1", ttl=60) is True
    mock_redis.setex.assert_called_once_with("blacklist:token", 60, "1")

    mock_redis.exists.return_value = 1
    assert cache_manager.exists("blacklist:token") is True


def test_cache_manager_delete():
    """Test CacheManager delete method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    result = cache_manager.delete("test_key")
    assert result is True
    mock_redis.delete.assert_called_once_with("test_key")


def test_cache_manager_swallows_redis_errors():
    """Cache failures degrade to misses instead of failing the request."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = ConnectionError("redis down")
    mock_redis.setex.side_effect = ConnectionError("redis down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("key") is None
    assert cache_manager.set_json("key", {"a": 1}, ttl=10) is False


@pytest.mark.asyncio
async def test_practitioner_lookup_is_cached():
    """A positive practitioner lookup is cached for five minutes."""
    practitioner_id = uuid4()
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    db = _mock_db(first_row=(practitioner_id,))

    directory = ClinicDirectory(db, CacheManager(mock_redis))
    assert await directory.practitioner_exists(practitioner_id) is True

    db.execute.assert_awaited_once()
    mock_redis.setex.assert_called_once_with(
        f"practitioner:active:{practitioner_id}", 300, "true"
    )


@pytest.mark.asyncio
async def test_practitioner_cache_hit_skips_database():
    mock_redis = MagicMock()
    mock_redis.get.return_value = "true"
    db = _mock_db()

    directory = ClinicDirectory(db, CacheManager(mock_redis))
    assert await directory.practitioner_exists(uuid4()) is True

    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_practitioner_is_not_cached():
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    db = _mock_db(first_row=None)

    directory = ClinicDirectory(db, CacheManager(mock_redis))
    assert await directory.practitioner_exists(uuid4()) is False

    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_patient_lookup():
    directory = ClinicDirectory(_mock_db(first_row=(uuid4(),)))
    assert await directory.patient_exists(uuid4()) is True

    directory = ClinicDirectory(_mock_db(first_row=None))
    assert await directory.patient_exists(uuid4()) is False


@pytest.mark.asyncio
async def test_directory_database_failure():
    db = MagicMock()
    db.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("down")))

    with pytest.raises(StoreException):
        await ClinicDirectory(db).patient_exists(uuid4())


@pytest.mark.asyncio
async def test_user_caching():
    """User profiles are served from cache and never carry the password hash."""
    user_id = uuid4()
    row = {
        "id": user_id,
        "email": "dentist@clinic.com",
        "hashed_password": "secret-hash",
        "first_name": "Ada",
        "last_name": "Molar",
        "role": "dentist",
        "permissions": ["appointments.read"],
        "is_active": True,
    }
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    db = _mock_db(first_row=row)
    service = UserService(CacheManager(mock_redis))

    # Cache miss goes to the database and fills the cache
    user = await service.get_user_by_id(db, user_id)
    assert user["id"] == user_id
    assert "hashed_password" not in user
    cache_key, ttl, payload = mock_redis.setex.call_args.args
    assert cache_key == f"user:{user_id}"
    assert ttl == UserService.USER_CACHE_TTL
    assert "secret-hash" not in payload

    # Cache hit skips the database
    db.execute.reset_mock()
    mock_redis.get.return_value = payload
    cached = await service.get_user_by_id(db, user_id)
    db.execute.assert_not_awaited()
    assert cached["id"] == user_id
    assert cached["role"] == "dentist"


@pytest.mark.asyncio
async def test_record_login_invalidates_cached_user():
    """Writing the user row drops its cached copy."""
    user_id = uuid4()
    mock_redis = MagicMock()
    db = _mock_db()
    service = UserService(CacheManager(mock_redis))

    await service.record_login(db, user_id)

    db.execute.assert_awaited_once()
    db.commit.assert_awaited_once()
    mock_redis.delete.assert_called_once_with(f"user:{user_id}")
