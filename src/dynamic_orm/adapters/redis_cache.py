"""Redis implementation of the cache backend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from ..exceptions import CacheBackendError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger("dynamic_orm.cache")


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class RedisCacheBackend:
    """
    ``ICacheBackend`` over ``redis.asyncio``.

    Redis failures are re-raised as :class:`CacheBackendError`; models
    absorb them and fall back to the database.
    """

    def __init__(self, redis_client: Redis) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        try:
            val = await self._redis.get(key)
        except RedisError as e:
            raise CacheBackendError(f"Redis get failed for key {key}: {e}") from e
        if val is None:
            return None
        return _decode(val)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        try:
            if ttl:
                await self._redis.setex(key, ttl, value)
            else:
                await self._redis.set(key, value)
        except RedisError as e:
            raise CacheBackendError(f"Redis set failed for key {key}: {e}") from e

    async def delete(self, keys: str | list[str]) -> None:
        names = [keys] if isinstance(keys, str) else list(keys)
        if not names:
            return
        try:
            await self._redis.delete(*names)
        except RedisError as e:
            raise CacheBackendError(f"Redis delete failed: {e}") from e

    async def list_keys(self, pattern: str) -> list[str]:
        """Collect matching keys with SCAN rather than blocking KEYS."""
        found: list[str] = []
        try:
            cursor: int = 0
            while True:
                cursor, keys = await self._redis.scan(cursor, match=pattern)
                found.extend(_decode(k) for k in keys)
                if cursor == 0:
                    break
        except RedisError as e:
            raise CacheBackendError(f"Redis scan failed for {pattern}: {e}") from e
        logger.debug("Redis scan %s matched %d keys", pattern, len(found))
        return list(dict.fromkeys(found))
