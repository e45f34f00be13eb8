"""
Matchday Sync — Volatile Cache Contract
────────────────────────────────────────
The fast tier: bytes keyed by string, each entry with its own TTL.

Two backends exist: MemoryCache (in-process LRU) and RedisCache.
`create_cache` picks one from a CacheConfig; anything unrecognised
falls back to an LRU of the default size.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from matchday_sync.errors import CacheBackendError

log = logging.getLogger("md.cache")

DEFAULT_MAX_SIZE  = 1000
DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class VolatileCache(ABC):
    """
    get/set/delete/exists/clear over bytes.
    A missing or expired key is None from get, never an error.
    `ttl` is in seconds; None or <= 0 means the entry never expires.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        pass


class CacheBackend(str, Enum):
    MEMORY = "memory"
    REDIS  = "redis"

    @classmethod
    def parse(cls, value: Union[str, "CacheBackend", None]) -> "CacheBackend":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            if value:
                log.warning(f"Unknown cache type {value!r} — using memory")
            return cls.MEMORY


@dataclass
class CacheConfig:
    backend:   CacheBackend = CacheBackend.MEMORY
    max_size:  int = DEFAULT_MAX_SIZE
    redis_url: str = DEFAULT_REDIS_URL


async def create_cache(config: Optional[CacheConfig] = None) -> VolatileCache:
    """
    Build the configured backend.
    A Redis connection failure raises CacheBackendError.
    """
    from matchday_sync.cache.memory_cache import MemoryCache
    from matchday_sync.cache.redis_cache import RedisCache

    config  = config or CacheConfig()
    backend = CacheBackend.parse(config.backend)

    if backend is CacheBackend.REDIS:
        cache = await RedisCache.connect(config.redis_url)
        log.info("Volatile cache: redis")
        return cache

    log.info(f"Volatile cache: memory (max_size={_size(config.max_size)})")
    return MemoryCache(max_size=config.max_size)


async def create_cache_or_fallback(config: Optional[CacheConfig] = None) -> VolatileCache:
    """Like create_cache, but an unreachable Redis degrades to the in-process LRU."""
    from matchday_sync.cache.memory_cache import MemoryCache

    config = config or CacheConfig()
    try:
        return await create_cache(config)
    except CacheBackendError as e:
        log.warning(f"Redis unavailable ({e.message}) — using in-memory cache")
        return MemoryCache(max_size=config.max_size)


def _size(max_size: int) -> int:
    return max_size if max_size > 0 else DEFAULT_MAX_SIZE
