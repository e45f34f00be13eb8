"""
Matchday Sync — Redis Cache
────────────────────────────
Networked volatile tier. TTL and eviction are Redis's job.
"""

import asyncio
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from matchday_sync.cache.base import VolatileCache
from matchday_sync.errors import CacheBackendError

log = logging.getLogger("md.cache.redis")

CONNECT_TIMEOUT_S = 5


class RedisCache(VolatileCache):

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    async def connect(cls, url: str, timeout: float = CONNECT_TIMEOUT_S) -> "RedisCache":
        """Open a client and ping it. Raises CacheBackendError if Redis is unreachable."""
        client = aioredis.from_url(url, decode_responses=False, socket_timeout=timeout)
        try:
            await asyncio.wait_for(client.ping(), timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            await client.aclose()
            raise CacheBackendError(f"failed to connect to redis: {e}", {"url": _redact(url)}) from e
        log.info("Redis connected")
        return cls(client)

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise CacheBackendError(f"redis GET {key} failed: {e}", {"key": key}) from e

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        try:
            if ttl and ttl > 0:
                await self._client.set(key, value, px=int(ttl * 1000))
            else:
                await self._client.set(key, value)
        except RedisError as e:
            raise CacheBackendError(f"redis SET {key} failed: {e}", {"key": key}) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise CacheBackendError(f"redis DEL {key} failed: {e}", {"key": key}) from e

    async def exists(self, key: str) -> bool:
        try:
            return await self._client.exists(key) > 0
        except RedisError as e:
            log.debug(f"redis EXISTS {key} failed: {e}")
            return False

    async def clear(self) -> None:
        try:
            await self._client.flushdb()
        except RedisError as e:
            raise CacheBackendError(f"redis FLUSHDB failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


def _redact(url: str) -> str:
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"
