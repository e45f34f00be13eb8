"""
Matchday Sync — Entity Syncer
──────────────────────────────
Core sync unit. Given one entity, fetches it from upstream, persists it,
refreshes the volatile copy and records freshness metadata.

This is the only place upstream calls are made.
Metadata is written last: a failed save leaves the entity stale, so the
next tick tries again.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Union

from matchday_sync.cache.coordinator import CacheCoordinator, cache_key
from matchday_sync.cache.delta_detector import canonical_json, compute_data_hash, has_changed
from matchday_sync.cache.ttl_config import COMPETITION, HEAD_TO_HEAD, MATCH, STANDINGS, TEAM
from matchday_sync.errors import PersistenceError
from matchday_sync.models.sync_models import SyncResult
from matchday_sync.repository import Repository
from matchday_sync.upstream.client import UpstreamClient

log = logging.getLogger("md.syncer")

# repository type for the full fixture list of one competition
MATCH_LIST = "match-list"


class EntitySyncer:

    def __init__(self, client: UpstreamClient, repository: Repository, coordinator: CacheCoordinator):
        self.client      = client
        self.repository  = repository
        self.coordinator = coordinator

    async def sync_competition(self, code: str) -> SyncResult:
        async def persist(data):
            await self.repository.save(COMPETITION, code, data)

        return await self._sync(COMPETITION, code, lambda: self.client.get_competition(code), persist)

    async def sync_matches(self, code: str) -> SyncResult:
        """Fixture list for a competition. Saves each match and both of its teams."""
        async def persist(matches):
            failures = 0
            for m in matches:
                for side in ("homeTeam", "awayTeam"):
                    team = m.get(side) or {}
                    if team.get("id") is not None:
                        failures += not await self._try_save(TEAM, team["id"], team)
                if m.get("id") is not None:
                    failures += not await self._try_save(MATCH, m["id"], m)
            failures += not await self._try_save(MATCH_LIST, code, matches)
            if failures:
                raise PersistenceError(
                    f"{failures} saves failed for {code} matches",
                    {"competition": code, "failures": failures},
                )

        return await self._sync(MATCH, code, lambda: self.client.get_matches(code), persist)

    async def sync_standings(self, code: str) -> SyncResult:
        async def persist(data):
            await self.repository.save(STANDINGS, code, data)

        return await self._sync(STANDINGS, code, lambda: self.client.get_standings(code), persist)

    async def sync_team(self, team_id: Union[int, str]) -> SyncResult:
        key = str(team_id)

        async def persist(data):
            await self.repository.save(TEAM, key, data)

        return await self._sync(TEAM, key, lambda: self.client.get_team(team_id), persist)

    async def sync_head_to_head(self, match_id: Union[int, str]) -> SyncResult:
        key = str(match_id)

        async def persist(data):
            await self.repository.save(HEAD_TO_HEAD, key, data)

        return await self._sync(HEAD_TO_HEAD, key, lambda: self.client.get_head_to_head(match_id), persist)

    # ── Internals ──────────────────────────────────────────────

    async def _try_save(self, entity_type: str, entity_id: Any, payload: Any) -> bool:
        try:
            await self.repository.save(entity_type, str(entity_id), payload)
            return True
        except PersistenceError as e:
            log.warning(f"Save {entity_type} {entity_id} failed: {e.message}")
            return False

    async def _sync(
        self,
        entity_type: str,
        entity_key: str,
        fetch: Callable[[], Awaitable[Any]],
        persist: Callable[[Any], Awaitable[None]],
    ) -> SyncResult:
        t_start = time.monotonic()

        data = await fetch()
        await persist(data)

        body     = canonical_json(data)
        new_hash = compute_data_hash(data)
        previous = await self._previous(entity_type, entity_key)
        changed  = has_changed(previous, new_hash)

        ttl = self.coordinator.ttl_for(entity_type).total_seconds()
        await self.coordinator.set(cache_key(entity_type, entity_key), body, ttl)
        await self.coordinator.set_metadata(entity_type, entity_key, new_hash)

        duration = round(time.monotonic() - t_start, 2)
        if changed:
            log.info(f"{entity_type}:{entity_key} synced in {duration}s — content changed")
        else:
            log.info(f"{entity_type}:{entity_key} synced in {duration}s — no change")
        return SyncResult(entity_type, entity_key, "synced", changed=changed, duration_s=duration)

    async def _previous(self, entity_type: str, entity_key: str):
        try:
            return await self.coordinator.get_metadata(entity_type, entity_key)
        except PersistenceError:
            return None

