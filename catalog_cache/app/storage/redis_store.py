"""
Redis-backed durable store.
"""

from typing import Optional

import redis
import redis.asyncio as aioredis

from shared.errors import PersistenceError
from shared.logging import get_logger


class RedisStore:
    """Keeps cache blobs in Redis under ``<prefix><id>``, without expiry.

    Writes go through a ``redis.asyncio`` client. The blocking client is only
    used by ``get``, which runs once per key while a cache is constructed.
    """

    def __init__(
        self,
        redis_url: str,
        prefix: str = "catalog_cache:",
        client: Optional[redis.Redis] = None,
        async_client: Optional[aioredis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.prefix = prefix
        self.logger = get_logger("catalog_cache.storage.redis")
        self._redis: Optional[redis.Redis] = client
        self._async_redis: Optional[aioredis.Redis] = async_client

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.Redis.from_url(
                self.redis_url,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        return self._redis

    def _get_async_redis(self) -> aioredis.Redis:
        if self._async_redis is None:
            self._async_redis = aioredis.from_url(
                self.redis_url,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        return self._async_redis

    def _key(self, item_id: str) -> str:
        return f"{self.prefix}{item_id}"

    def get(self, item_id: str) -> Optional[bytes]:
        try:
            data = self._get_redis().get(self._key(item_id))
        except redis.RedisError as exc:
            raise PersistenceError(
                "Redis read failed",
                details={"item_id": item_id, "error": str(exc)},
            ) from exc

        if data is None:
            return None
        return data.encode("utf-8") if isinstance(data, str) else data

    async def set(self, item_id: str, data: bytes) -> None:
        try:
            await self._get_async_redis().set(self._key(item_id), data)
        except redis.RedisError as exc:
            raise PersistenceError(
                "Redis write failed",
                details={"item_id": item_id, "error": str(exc)},
            ) from exc

    async def close(self) -> None:
        """Release both connection pools."""
        if self._async_redis is not None:
            await self._async_redis.close()
            self._async_redis = None
        if self._redis is not None:
            self._redis.close()
            self._redis = None
        self.logger.info("Redis store closed")
