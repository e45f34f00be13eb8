from .base import CacheBackend, CacheConfig, VolatileCache, create_cache, create_cache_or_fallback
from .coordinator import CacheCoordinator, cache_key
from .memory_cache import MemoryCache

__all__ = [
    "CacheBackend", "CacheConfig", "VolatileCache", "create_cache",
    "create_cache_or_fallback", "CacheCoordinator", "cache_key", "MemoryCache",
]
