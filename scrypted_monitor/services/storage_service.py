"""Task configuration store backed by a Redis hash, with an in-memory fallback."""

from typing import Optional

import redis.asyncio as redis
import structlog

from scrypted_monitor.config import get_settings

logger = structlog.get_logger(__name__)

TASKS_KEY = "tasks"
NOTIFIER_KEY = "notifier"
MANUAL_EXECUTION_KEY = "taskManualExecution"

# Global Redis client
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create the Redis client.

    Returns:
        Redis client or None if not configured or connection fails
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    settings = get_settings()
    if not settings.redis_url:
        return None

    try:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_client.ping()
        logger.info("redis_connected", url=settings.redis_url.split("@")[-1])
        return _redis_client
    except Exception as e:
        logger.warning("redis_connection_failed", error=str(e))
        _redis_client = None
        return None


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_connection_closed")


class RedisConfigStore:
    """All configuration keys live in one Redis hash."""

    backend = "redis"

    def __init__(self, client: redis.Redis, hash_key: str):
        self._client = client
        self._hash_key = hash_key

    async def get(self, key: str) -> Optional[str]:
        return await self._client.hget(self._hash_key, key)

    async def set(self, key: str, value: str) -> None:
        await self._client.hset(self._hash_key, key, value)

    async def delete(self, key: str) -> None:
        await self._client.hdel(self._hash_key, key)

    async def get_all(self) -> dict[str, str]:
        return await self._client.hgetall(self._hash_key)


class MemoryConfigStore:
    """Process-local store, used when Redis is not configured."""

    backend = "memory"

    def __init__(self, values: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = dict(values or {})

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    async def get_all(self) -> dict[str, str]:
        return dict(self._values)


async def create_config_store() -> RedisConfigStore | MemoryConfigStore:
    """Build the configured store, degrading to memory when Redis is down."""
    settings = get_settings()
    client = await get_redis()
    if client is None:
        logger.warning(
            "config_store_in_memory",
            note="Task configuration will not survive a restart",
        )
        return MemoryConfigStore()
    return RedisConfigStore(client, settings.config_store_key)


def task_key(task_name: str, field: str) -> str:
    """Storage key of one task field."""
    return f"task:{task_name}:{field}"

