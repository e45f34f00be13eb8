"""
Matchday Sync — Entity Reader
──────────────────────────────
Read path for synced data.

THIS NEVER MAKES UPSTREAM CALLS.
Volatile tier first; on a miss, the durable repository, which then
re-populates the volatile tier. The scheduler keeps both current.
"""

import json
import logging
from typing import Any, Optional, Union

from matchday_sync.cache.coordinator import CacheCoordinator, cache_key
from matchday_sync.cache.delta_detector import canonical_json
from matchday_sync.cache.ttl_config import COMPETITION, HEAD_TO_HEAD, MATCH, STANDINGS, TEAM
from matchday_sync.errors import PersistenceError
from matchday_sync.orchestrator.syncer import MATCH_LIST
from matchday_sync.repository import Repository

log = logging.getLogger("md.reader")


class EntityReader:

    def __init__(self, coordinator: CacheCoordinator, repository: Repository):
        self.coordinator = coordinator
        self.repository  = repository

    async def get_competition(self, code: str) -> Optional[dict]:
        return await self._read(COMPETITION, code)

    async def get_team(self, team_id: Union[int, str]) -> Optional[dict]:
        return await self._read(TEAM, str(team_id))

    async def get_matches(self, code: str) -> Optional[list]:
        return await self._read(MATCH, code, repo_type=MATCH_LIST)

    async def get_standings(self, code: str) -> Optional[dict]:
        return await self._read(STANDINGS, code)

    async def get_head_to_head(self, match_id: Union[int, str]) -> Optional[dict]:
        return await self._read(HEAD_TO_HEAD, str(match_id))

    async def _read(self, entity_type: str, key: str, repo_type: Optional[str] = None) -> Optional[Any]:
        ck = cache_key(entity_type, key)

        raw = await self.coordinator.get(ck)
        if raw is not None:
            try:
                return json.loads(raw)
            except (ValueError, UnicodeDecodeError):
                log.warning(f"{ck}: undecodable cache entry — dropping")
                await self.coordinator.delete(ck)

        try:
            data = await self.repository.get_by_id(repo_type or entity_type, key)
        except PersistenceError as e:
            log.warning(f"{ck}: repository read failed: {e.message}")
            return None
        if data is None:
            log.debug(f"{ck}: not synced yet")
            return None

        ttl = self.coordinator.ttl_for(entity_type).total_seconds()
        await self.coordinator.set(ck, canonical_json(data), ttl)
        log.debug(f"{ck}: served from repository, cache re-populated")
        return data
