"""
Matchday Sync — Freshness Store
────────────────────────────────
Durable per-entity sync metadata: when it was cached, when it expires,
and the hash of what was stored.

One row per (entity_type, entity_key). Writes are upserts, last write wins.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import asyncpg

from matchday_sync.errors import PersistenceError
from matchday_sync.models.sync_models import FreshnessRecord

log = logging.getLogger("md.cache.freshness")


class FreshnessStore(ABC):

    @abstractmethod
    async def get(self, entity_type: str, entity_key: str) -> Optional[FreshnessRecord]:
        ...

    @abstractmethod
    async def upsert(self, record: FreshnessRecord) -> None:
        ...

    @abstractmethod
    async def delete(self, entity_type: str, entity_key: str) -> None:
        ...


class MemoryFreshnessStore(FreshnessStore):
    """Process-local store, for tests and database-less runs."""

    def __init__(self):
        self._rows: Dict[Tuple[str, str], FreshnessRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, entity_type: str, entity_key: str) -> Optional[FreshnessRecord]:
        async with self._lock:
            return self._rows.get((entity_type, entity_key))

    async def upsert(self, record: FreshnessRecord) -> None:
        async with self._lock:
            self._rows[(record.entity_type, record.entity_key)] = record

    async def delete(self, entity_type: str, entity_key: str) -> None:
        async with self._lock:
            self._rows.pop((entity_type, entity_key), None)

    def __len__(self) -> int:
        return len(self._rows)


# ── PostgreSQL ────────────────────────────────────────────────

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS cache_metadata (
    id          SERIAL PRIMARY KEY,
    entity_type VARCHAR(50)  NOT NULL,
    entity_key  VARCHAR(100) NOT NULL,
    cached_at   TIMESTAMPTZ  NOT NULL,
    expires_at  TIMESTAMPTZ  NOT NULL,
    data_hash   VARCHAR(64),
    UNIQUE (entity_type, entity_key)
);
CREATE INDEX IF NOT EXISTS idx_cache_metadata_entity  ON cache_metadata (entity_type, entity_key);
CREATE INDEX IF NOT EXISTS idx_cache_metadata_expires ON cache_metadata (expires_at);
"""

SELECT_SQL = """
SELECT entity_type, entity_key, cached_at, expires_at, data_hash
FROM cache_metadata
WHERE entity_type = $1 AND entity_key = $2
"""

UPSERT_SQL = """
INSERT INTO cache_metadata (entity_type, entity_key, cached_at, expires_at, data_hash)
VALUES ($1, $2, $3, $4, $5)
ON CONFLICT (entity_type, entity_key) DO UPDATE SET
    cached_at  = EXCLUDED.cached_at,
    expires_at = EXCLUDED.expires_at,
    data_hash  = EXCLUDED.data_hash
"""

DELETE_SQL = "DELETE FROM cache_metadata WHERE entity_type = $1 AND entity_key = $2"


class PostgresFreshnessStore(FreshnessStore):

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def init_schema(self):
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(CREATE_TABLE_SQL)
        except asyncpg.PostgresError as e:
            raise PersistenceError(f"failed to create cache_metadata: {e}") from e

    async def get(self, entity_type: str, entity_key: str) -> Optional[FreshnessRecord]:
        try:
            row = await self._pool.fetchrow(SELECT_SQL, entity_type, entity_key)
        except asyncpg.PostgresError as e:
            raise PersistenceError(
                f"failed to get metadata for {entity_type}:{entity_key}: {e}",
                {"entity_type": entity_type, "entity_key": entity_key},
            ) from e
        if row is None:
            return None
        return FreshnessRecord(
            entity_type=row["entity_type"],
            entity_key=row["entity_key"],
            cached_at=row["cached_at"],
            expires_at=row["expires_at"],
            data_hash=row["data_hash"],
        )

    async def upsert(self, record: FreshnessRecord) -> None:
        try:
            await self._pool.execute(
                UPSERT_SQL,
                record.entity_type, record.entity_key,
                record.cached_at, record.expires_at, record.data_hash,
            )
        except asyncpg.PostgresError as e:
            raise PersistenceError(
                f"failed to set metadata for {record.entity_type}:{record.entity_key}: {e}",
                {"entity_type": record.entity_type, "entity_key": record.entity_key},
            ) from e

    async def delete(self, entity_type: str, entity_key: str) -> None:
        try:
            await self._pool.execute(DELETE_SQL, entity_type, entity_key)
        except asyncpg.PostgresError as e:
            raise PersistenceError(
                f"failed to delete metadata for {entity_type}:{entity_key}: {e}",
                {"entity_type": entity_type, "entity_key": entity_key},
            ) from e
