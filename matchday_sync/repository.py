"""
Matchday Sync — Entity Repository
──────────────────────────────────
Durable home for synced payloads (competitions, teams, matches, standings).
Stored as JSONB documents keyed by (entity_type, entity_id).
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import asyncpg

from matchday_sync.errors import PersistenceError

log = logging.getLogger("md.repository")


class Repository(ABC):

    @abstractmethod
    async def save(self, entity_type: str, entity_id: str, payload: Any) -> None:
        ...

    @abstractmethod
    async def get_by_id(self, entity_type: str, entity_id: str) -> Optional[Any]:
        ...


class MemoryRepository(Repository):

    def __init__(self):
        self._rows: Dict[Tuple[str, str], Any] = {}
        self._lock = asyncio.Lock()

    async def save(self, entity_type: str, entity_id: str, payload: Any) -> None:
        async with self._lock:
            self._rows[(entity_type, str(entity_id))] = payload

    async def get_by_id(self, entity_type: str, entity_id: str) -> Optional[Any]:
        async with self._lock:
            return self._rows.get((entity_type, str(entity_id)))

    def __len__(self) -> int:
        return len(self._rows)


CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS football_entities (
    entity_type VARCHAR(50)  NOT NULL,
    entity_id   VARCHAR(100) NOT NULL,
    payload     JSONB        NOT NULL,
    updated_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
    PRIMARY KEY (entity_type, entity_id)
);
"""

UPSERT_SQL = """
INSERT INTO football_entities (entity_type, entity_id, payload, updated_at)
VALUES ($1, $2, $3::jsonb, NOW())
ON CONFLICT (entity_type, entity_id) DO UPDATE SET
    payload    = EXCLUDED.payload,
    updated_at = NOW()
"""

SELECT_SQL = "SELECT payload FROM football_entities WHERE entity_type = $1 AND entity_id = $2"


class PostgresRepository(Repository):

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def init_schema(self):
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(CREATE_TABLE_SQL)
        except asyncpg.PostgresError as e:
            raise PersistenceError(f"failed to create football_entities: {e}") from e

    async def save(self, entity_type: str, entity_id: str, payload: Any) -> None:
        try:
            await self._pool.execute(UPSERT_SQL, entity_type, str(entity_id), json.dumps(payload))
        except asyncpg.PostgresError as e:
            raise PersistenceError(
                f"failed to save {entity_type} {entity_id}: {e}",
                {"entity_type": entity_type, "entity_id": str(entity_id)},
            ) from e

    async def get_by_id(self, entity_type: str, entity_id: str) -> Optional[Any]:
        try:
            raw = await self._pool.fetchval(SELECT_SQL, entity_type, str(entity_id))
        except asyncpg.PostgresError as e:
            raise PersistenceError(
                f"failed to load {entity_type} {entity_id}: {e}",
                {"entity_type": entity_type, "entity_id": str(entity_id)},
            ) from e
        # asyncpg hands JSONB back as text unless a codec is registered
        return json.loads(raw) if isinstance(raw, str) else raw
