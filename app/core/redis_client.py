"""Redis clients shared by the cache and the scheduling locks."""

import json
from typing import Any

import redis
import redis.asyncio as aioredis
import structlog

from app.config import settings

logger = structlog.get_logger()

# Process-wide clients, created lazily
_redis_client: redis.Redis | None = None
_async_redis_client: aioredis.Redis | None = None


def _connection_kwargs() -> dict[str, Any]:
    return {
        "host": settings.redis_host,
        "port": settings.redis_port,
        "username": settings.redis_username,
        "password": settings.redis_password,
        "decode_responses": settings.redis_decode_responses,
        "socket_connect_timeout": 5,
        "socket_keepalive": True,
        "health_check_interval": 30,
    }


def get_redis_client() -> redis.Redis:
    """Get the synchronous client used by ``CacheManager``."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis(**_connection_kwargs())
    return _redis_client


def get_async_redis_client() -> aioredis.Redis:
    """Get the asyncio client used by the practitioner locks."""
    global _async_redis_client
    if _async_redis_client is None:
        _async_redis_client = aioredis.Redis(**_connection_kwargs())
    return _async_redis_client


async def check_redis_connection() -> bool:
    """Ping Redis and report whether it answered."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError:
        return False


async def close_redis_connection() -> None:
    """Close both clients; the next getter call reconnects."""
    global _redis_client, _async_redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None

    if _async_redis_client is not None:
        await _async_redis_client.aclose()
        _async_redis_client = None


class CacheManager:
    """
    Best-effort JSON cache on top of Redis.

    Every operation degrades to a miss (or ``False``) when Redis fails.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize cache manager with Redis client."""
        self.redis = redis_client

    def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Store a raw string, expiring after ``ttl`` seconds when given."""
        try:
            if ttl:
                self.redis.setex(key, ttl, value)
            else:
                self.redis.set(key, value)
        except Exception as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.redis.delete(key)
        except Exception as e:
            logger.warning("cache_delete_failed", key=key, error=str(e))
            return False
        return True

    def exists(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except Exception as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return False

    def get_json(self, key: str) -> Any | None:
        """Get and decode a JSON value, or None on miss."""
        try:
            value = self.redis.get(key)
        except Exception as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Encode ``value`` as JSON (UUIDs and datetimes as strings) and store it."""
        return self.set(key, json.dumps(value, default=str), ttl=ttl)
