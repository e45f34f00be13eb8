"""
Matchday Sync — In-Process LRU Cache
─────────────────────────────────────
Bounded, TTL-aware LRU over an OrderedDict (last = most recently used).

Expired entries are dropped lazily on `get` and eagerly by a sweep job
that runs every minute once `start_sweeper()` has been called.
"""

import logging
import threading
import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Optional

from matchday_sync.cache.base import DEFAULT_MAX_SIZE, VolatileCache

log = logging.getLogger("md.cache.memory")

SWEEP_INTERVAL_S = 60


@dataclass(frozen=True)
class CacheEntry:
    key:        str
    value:      bytes
    expires_at: Optional[float] = None     # monotonic seconds; None = never

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now > self.expires_at


class _RWLock:
    """Many readers or one writer."""

    def __init__(self):
        self._cond    = threading.Condition(threading.Lock())
        self._readers = 0

    @contextmanager
    def read(self):
        with self._cond:
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self):
        with self._cond:
            while self._readers:
                self._cond.wait()
            yield


class MemoryCache(VolatileCache):

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size if max_size > 0 else DEFAULT_MAX_SIZE
        self._clock   = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock    = _RWLock()
        self._scheduler = None
        self._hits        = 0
        self._misses      = 0
        self._evictions   = 0
        self._expirations = 0

    # ── VolatileCache ──────────────────────────────────────────

    async def get(self, key: str) -> Optional[bytes]:
        # a hit reorders the list, so this is a write
        with self._lock.write():
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        entry = CacheEntry(key=key, value=value, expires_at=expires_at)
        with self._lock.write():
            if key in self._entries:
                self._entries[key] = entry
                self._entries.move_to_end(key)
                return
            if len(self._entries) >= self.max_size:
                oldest, _ = self._entries.popitem(last=False)
                self._evictions += 1
                log.debug(f"LRU evicted {oldest}")
            self._entries[key] = entry

    async def delete(self, key: str) -> None:
        with self._lock.write():
            self._entries.pop(key, None)

    async def exists(self, key: str) -> bool:
        with self._lock.read():
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(self._clock())

    async def clear(self) -> None:
        with self._lock.write():
            self._entries.clear()

    async def close(self) -> None:
        self.stop_sweeper()

    # ── Expiry sweep ───────────────────────────────────────────

    def sweep_expired(self) -> int:
        """Drop every expired entry. Returns how many were removed."""
        with self._lock.write():
            now     = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for k in expired:
                del self._entries[k]
            self._expirations += len(expired)
        if expired:
            log.debug(f"Swept {len(expired)} expired entries")
        return len(expired)

    def start_sweeper(self, interval_s: float = SWEEP_INTERVAL_S):
        """Schedule `sweep_expired` on the running event loop. Idempotent."""
        if self._scheduler is not None:
            return
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.interval import IntervalTrigger

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.sweep_expired,
            IntervalTrigger(seconds=interval_s),
            id                 = "memory_cache_sweep",
            name               = "LRU expiry sweep",
            max_instances      = 1,
            coalesce           = True,
            replace_existing   = True,
        )
        self._scheduler.start()
        log.info(f"LRU sweep every {interval_s:g}s")

    def stop_sweeper(self):
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

    # ── Introspection ──────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list:
        """Keys from least to most recently used."""
        with self._lock.read():
            return list(self._entries.keys())

    def stats(self) -> dict:
        return {
            "backend":     "memory",
            "size":        len(self._entries),
            "max_size":    self.max_size,
            "hits":        self._hits,
            "misses":      self._misses,
            "evictions":   self._evictions,
            "expirations": self._expirations,
        }
