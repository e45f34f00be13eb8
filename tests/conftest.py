"""
Shared test fixtures: controllable clocks and a fake upstream.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from matchday_sync.cache.coordinator import CacheCoordinator
from matchday_sync.cache.freshness_store import MemoryFreshnessStore
from matchday_sync.cache.memory_cache import MemoryCache
from matchday_sync.repository import MemoryRepository


class FakeMonotonic:
    """Monotonic clock plus a sleep that advances it instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now    = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeWallClock:
    """UTC datetime clock for freshness tests."""

    def __init__(self, start: datetime = datetime(2024, 8, 16, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float):
        self.calls.append(seconds)


async def until(predicate, attempts: int = 200):
    """Yield to the loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def make_upstream() -> MagicMock:
    client = MagicMock()
    client.get_competitions = AsyncMock(return_value=[{"code": "PL"}, {"code": "BL1"}])
    client.get_competition  = AsyncMock(side_effect=lambda code: {"code": code, "name": f"League {code}"})
    client.get_matches      = AsyncMock(side_effect=lambda code: [
        {
            "id": 1000 + len(code),
            "homeTeam": {"id": 57, "name": "Arsenal"},
            "awayTeam": {"id": 65, "name": "Manchester City"},
            "status": "SCHEDULED",
        },
    ])
    client.get_standings    = AsyncMock(side_effect=lambda code: {"competition": {"code": code}, "standings": []})
    client.get_team         = AsyncMock(side_effect=lambda team_id: {"id": int(team_id), "name": f"Team {team_id}"})
    client.get_head_to_head = AsyncMock(return_value={"aggregates": {"numberOfMatches": 4}})
    return client


@pytest.fixture
def wall_clock():
    return FakeWallClock()


@pytest.fixture
def mono_clock():
    return FakeMonotonic()


@pytest.fixture
def store():
    return MemoryFreshnessStore()


@pytest.fixture
def memory_cache(mono_clock):
    return MemoryCache(max_size=100, clock=mono_clock)


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest.fixture
def coordinator(store, memory_cache, wall_clock):
    return CacheCoordinator(store, memory_cache, clock=wall_clock)


@pytest.fixture
def upstream():
    return make_upstream()
