import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..errors import SessionStoreError
from ..settings import get_settings

logger = logging.getLogger(__name__)


class RedisCrudService:
    """Async key/value operations against a Redis instance.

    Unlike a cache, session state must not silently disappear, so every
    Redis failure is raised as SessionStoreError instead of being read
    as a missing key.
    """

    def __init__(self, url: str) -> None:
        """Create a Redis client for the given URL (e.g. redis://localhost:6379/0)."""
        self._url = url
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis. Idempotent."""
        if self._client is not None:
            return
        self._client = Redis.from_url(
            self._url,
            decode_responses=True,
        )
        try:
            await self._client.ping()
            logger.info("Redis connection established: %s", self._url.split("@")[-1])
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis ping failed: %s", e)
            await self._client.aclose()
            self._client = None
            raise

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("Redis connection closed")

    @property
    def client(self) -> Redis | None:
        """Return the underlying Redis client, or None if not connected."""
        return self._client

    def _require_client(self) -> Redis:
        if self._client is None:
            raise SessionStoreError("Redis is not connected")
        return self._client

    async def get(self, key: str) -> str | None:
        """Return the value for key, or None if the key does not exist."""
        client = self._require_client()
        try:
            value: Any = await client.get(key)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis get %s failed: %s", key, e)
            raise SessionStoreError(f"Redis get failed: {e}") from e
        return value if value is None else str(value)

    async def set(self, key: str, value: str) -> None:
        """Store value under key without expiry."""
        client = self._require_client()
        try:
            await client.set(key, value)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis set %s failed: %s", key, e)
            raise SessionStoreError(f"Redis set failed: {e}") from e

    async def set_if_absent(self, key: str, value: str) -> bool:
        """Store value only if key does not exist. Returns True if it was stored."""
        client = self._require_client()
        try:
            return bool(await client.set(key, value, nx=True))
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis set-if-absent %s failed: %s", key, e)
            raise SessionStoreError(f"Redis set failed: {e}") from e

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if the key existed."""
        client = self._require_client()
        try:
            return bool(await client.delete(key))
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis delete %s failed: %s", key, e)
            raise SessionStoreError(f"Redis delete failed: {e}") from e


def get_redis_crud_service() -> RedisCrudService | None:
    """Return a Redis CRUD service if redis_url is configured, else None."""
    settings = get_settings()
    if not settings.redis_url or not settings.redis_url.strip():
        return None
    return RedisCrudService(settings.redis_url.strip())
