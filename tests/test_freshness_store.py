"""
Tests for freshness metadata stores.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from matchday_sync.cache.freshness_store import (
    DELETE_SQL, UPSERT_SQL, MemoryFreshnessStore, PostgresFreshnessStore,
)
from matchday_sync.errors import PersistenceError
from matchday_sync.models.sync_models import FreshnessRecord

T0 = datetime(2024, 8, 16, 12, 0, tzinfo=timezone.utc)


def _record(key="PL", hash_="aaa", at=T0):
    return FreshnessRecord("competition", key, at, at + timedelta(hours=24), hash_)


class TestMemoryFreshnessStore:

    @pytest.mark.asyncio
    async def test_missing_record_is_none(self):
        assert await MemoryFreshnessStore().get("competition", "PL") is None

    @pytest.mark.asyncio
    async def test_upsert_keeps_one_record_per_key(self):
        store = MemoryFreshnessStore()
        await store.upsert(_record(hash_="aaa"))
        await store.upsert(_record(hash_="bbb", at=T0 + timedelta(hours=1)))

        assert len(store) == 1
        record = await store.get("competition", "PL")
        assert record.data_hash == "bbb"
        assert record.cached_at == T0 + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_keys_are_composite(self):
        store = MemoryFreshnessStore()
        await store.upsert(_record())
        await store.upsert(FreshnessRecord("standings", "PL", T0, T0))
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_delete(self):
        store = MemoryFreshnessStore()
        await store.upsert(_record())
        await store.delete("competition", "PL")
        await store.delete("competition", "PL")
        assert await store.get("competition", "PL") is None


class TestPostgresFreshnessStore:

    @pytest.fixture
    def pool(self):
        pool = MagicMock()
        pool.fetchrow = AsyncMock(return_value=None)
        pool.execute  = AsyncMock()
        return pool

    @pytest.mark.asyncio
    async def test_get_maps_row(self, pool):
        pool.fetchrow.return_value = {
            "entity_type": "competition", "entity_key": "PL",
            "cached_at": T0, "expires_at": T0 + timedelta(hours=24), "data_hash": "abc",
        }
        record = await PostgresFreshnessStore(pool).get("competition", "PL")
        assert record == _record(hash_="abc")

    @pytest.mark.asyncio
    async def test_get_no_row(self, pool):
        assert await PostgresFreshnessStore(pool).get("competition", "PL") is None

    @pytest.mark.asyncio
    async def test_upsert_uses_on_conflict(self, pool):
        await PostgresFreshnessStore(pool).upsert(_record())
        sql, *args = pool.execute.await_args.args
        assert sql is UPSERT_SQL
        assert "ON CONFLICT (entity_type, entity_key)" in sql
        assert args == ["competition", "PL", T0, T0 + timedelta(hours=24), "aaa"]

    @pytest.mark.asyncio
    async def test_delete(self, pool):
        await PostgresFreshnessStore(pool).delete("team", "57")
        pool.execute.assert_awaited_once_with(DELETE_SQL, "team", "57")

    @pytest.mark.asyncio
    async def test_errors_are_wrapped(self, pool):
        pool.fetchrow.side_effect = asyncpg.PostgresError("relation does not exist")
        with pytest.raises(PersistenceError) as exc:
            await PostgresFreshnessStore(pool).get("competition", "PL")
        assert exc.value.details == {"entity_type": "competition", "entity_key": "PL"}
