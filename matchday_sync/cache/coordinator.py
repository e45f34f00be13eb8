"""
Matchday Sync — Cache Coordinator
──────────────────────────────────
Two tiers behind one interface:
  volatile  — VolatileCache (LRU or Redis), optional, an optimisation only
  durable   — FreshnessStore, the authority on whether to re-fetch

Staleness is decided from the durable record alone. An empty or missing
volatile tier changes latency, never correctness.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from matchday_sync.cache.base import VolatileCache
from matchday_sync.cache.delta_detector import compute_data_hash
from matchday_sync.cache.freshness_store import FreshnessStore
from matchday_sync.cache.ttl_config import DEFAULT_POLICY, TTLPolicy
from matchday_sync.errors import CacheBackendError, SyncEngineError
from matchday_sync.models.sync_models import FreshnessRecord, utcnow

log = logging.getLogger("md.cache.coordinator")

KEY_PREFIX = "football"


def cache_key(entity_type: str, entity_key: str) -> str:
    return f"{KEY_PREFIX}:{entity_type}:{entity_key}"


class CacheCoordinator:

    def __init__(
        self,
        store: FreshnessStore,
        cache: Optional[VolatileCache] = None,
        ttl_policy: TTLPolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store      = store
        self.cache      = cache
        self.ttl_policy = ttl_policy
        self._clock     = clock

    # ── Durable tier ───────────────────────────────────────────

    async def get_metadata(self, entity_type: str, entity_key: str) -> Optional[FreshnessRecord]:
        return await self.store.get(entity_type, entity_key)

    async def set_metadata(
        self, entity_type: str, entity_key: str, data_hash: Optional[str] = None,
    ) -> FreshnessRecord:
        now = self._clock()
        record = FreshnessRecord(
            entity_type=entity_type,
            entity_key=entity_key,
            cached_at=now,
            expires_at=now + self.ttl_policy.ttl_for(entity_type),
            data_hash=data_hash,
        )
        await self.store.upsert(record)
        return record

    async def needs_refresh(self, entity_type: str, entity_key: str) -> bool:
        """
        True when there is no record or `now > expires_at`.
        A store that cannot answer is treated as stale.
        """
        try:
            record = await self.store.get(entity_type, entity_key)
        except SyncEngineError as e:
            log.warning(f"Metadata lookup failed for {entity_type}:{entity_key} ({e.message}) — refreshing")
            return True
        if record is None:
            return True
        return record.is_stale(self._clock())

    # ── Volatile tier ──────────────────────────────────────────

    async def get(self, key: str) -> Optional[bytes]:
        if self.cache is None:
            return None
        try:
            value = await self.cache.get(key)
        except CacheBackendError as e:
            log.warning(f"Cache get {key} failed: {e.message}")
            return None
        log.debug(f"Cache {'hit' if value is not None else 'miss'}: {key}")
        return value

    async def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value, ttl)
        except CacheBackendError as e:
            log.warning(f"Cache set {key} failed: {e.message}")

    async def delete(self, key: str) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.delete(key)
        except CacheBackendError as e:
            log.warning(f"Cache delete {key} failed: {e.message}")

    # ── Both tiers ─────────────────────────────────────────────

    async def invalidate_entity(self, entity_type: str, entity_key: str) -> None:
        """Forget an entity so the next tick re-fetches it."""
        await self.store.delete(entity_type, entity_key)
        await self.delete(cache_key(entity_type, entity_key))
        log.info(f"Invalidated {entity_type}:{entity_key}")

    def ttl_for(self, entity_type: str) -> timedelta:
        return self.ttl_policy.ttl_for(entity_type)

    @staticmethod
    def cache_key(entity_type: str, entity_key: str) -> str:
        return cache_key(entity_type, entity_key)

    @staticmethod
    def compute_data_hash(value: Any) -> str:
        return compute_data_hash(value)
