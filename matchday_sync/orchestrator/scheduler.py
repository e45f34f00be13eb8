"""
Matchday Sync — Sync Scheduler
═══════════════════════════════════════════════════════════════════════

One control loop, one tick at a time:

  start ──► tick ──► wait(interval | stop) ──► tick ──► ... ──► stopped

Each tick
─────────
  1. Resolve competitions: configured codes, else discover from upstream.
  2. For every competition, in order:
         competition ─► match (fixture list) ─► standings
     each one only if its freshness record says it is stale.
  3. Tracked teams, then tracked matches (head-to-head), the same way.
  4. After every entity that touched upstream, pause `entity_delay_s`
     on top of the rate limiter's own spacing.

One entity failing is logged and the tick moves on.
Stopping aborts the in-flight tick; nothing is drained.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from matchday_sync.cache.coordinator import CacheCoordinator
from matchday_sync.cache.ttl_config import COMPETITION, HEAD_TO_HEAD, MATCH, STANDINGS, TEAM
from matchday_sync.errors import SyncEngineError
from matchday_sync.models.sync_models import SyncResult, TickReport, utcnow
from matchday_sync.orchestrator.syncer import EntitySyncer
from matchday_sync.upstream.client import UpstreamClient

log = logging.getLogger("md.scheduler")

DEFAULT_INTERVAL_S     = 24 * 3600
DEFAULT_ENTITY_DELAY_S = 2.0


class SyncScheduler:

    def __init__(
        self,
        client: UpstreamClient,
        syncer: EntitySyncer,
        coordinator: CacheCoordinator,
        competition_codes: Optional[Sequence[str]] = None,
        team_ids: Optional[Sequence[str]] = None,
        match_ids: Optional[Sequence[str]] = None,
        interval_s: float = DEFAULT_INTERVAL_S,
        entity_delay_s: float = DEFAULT_ENTITY_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client            = client
        self.syncer            = syncer
        self.coordinator       = coordinator
        self.competition_codes = [c for c in (competition_codes or []) if c]
        self.team_ids          = [str(t) for t in (team_ids or []) if str(t)]
        self.match_ids         = [str(m) for m in (match_ids or []) if str(m)]
        self.interval_s        = interval_s
        self.entity_delay_s    = entity_delay_s
        self._sleep            = sleep
        self._stop             = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._running          = False
        self._tick_count       = 0
        self._last_report: Optional[TickReport] = None

    # ─────────────────────────────────────────────────────────
    # TICK
    # ─────────────────────────────────────────────────────────

    async def run_tick(self) -> TickReport:
        report = TickReport(started_at=utcnow())
        t_start = time.monotonic()

        codes = await self._resolve_competitions(report)
        report.competitions = codes
        log.info(f"Tick starting — {len(codes)} competitions")

        for code in codes:
            for entity_type, sync in (
                (COMPETITION, self.syncer.sync_competition),
                (MATCH,       self.syncer.sync_matches),
                (STANDINGS,   self.syncer.sync_standings),
            ):
                report.results.append(await self._sync_one(entity_type, code, sync))

        for team_id in self.team_ids:
            report.results.append(await self._sync_one(TEAM, team_id, self.syncer.sync_team))

        for match_id in self.match_ids:
            report.results.append(
                await self._sync_one(HEAD_TO_HEAD, match_id, self.syncer.sync_head_to_head)
            )

        report.finished_at = utcnow()
        self._tick_count  += 1
        self._last_report  = report
        elapsed = round(time.monotonic() - t_start, 1)
        log.info(
            f"Tick done — {report.synced} synced  {report.skipped} fresh  "
            f"{report.failed} errors  {elapsed}s"
        )
        return report

    async def _resolve_competitions(self, report: TickReport) -> List[str]:
        if self.competition_codes:
            return list(self.competition_codes)
        try:
            competitions = await self.client.get_competitions()
        except SyncEngineError as e:
            log.error(f"Competition discovery failed: {e.message}")
            report.error = e.message
            return []
        codes = [c["code"] for c in competitions if isinstance(c, dict) and c.get("code")]
        log.info(f"Discovered {len(codes)} competitions from upstream")
        return codes

    async def _sync_one(
        self,
        entity_type: str,
        key: str,
        sync: Callable[[str], Awaitable[SyncResult]],
    ) -> SyncResult:
        if not await self.coordinator.needs_refresh(entity_type, key):
            log.debug(f"{entity_type}:{key} fresh — skipped")
            return SyncResult(entity_type, key, "skipped")

        try:
            result = await sync(key)
        except SyncEngineError as e:
            log.error(f"{entity_type}:{key}: {e.message}")
            result = SyncResult(entity_type, key, "failed", error=e.message)
        except Exception as e:
            log.exception(f"{entity_type}:{key}: unexpected error")
            result = SyncResult(entity_type, key, "failed", error=str(e)[:200])

        if self.entity_delay_s > 0:
            await self._sleep(self.entity_delay_s)
        return result

    # ─────────────────────────────────────────────────────────
    # LOOP CONTROL
    # ─────────────────────────────────────────────────────────

    async def run(self):
        """Tick now, then every `interval_s`, until stop() or cancellation."""
        self._running = True
        log.info(f"Sync scheduler live — interval {self.interval_s:g}s")
        try:
            while not self._stop.is_set():
                if not await self._tick_or_stop():
                    break
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval_s)
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
            log.info("Sync scheduler stopped")

    async def _tick_or_stop(self) -> bool:
        """Run one tick raced against the stop event. False if stopped mid-tick."""
        tick    = asyncio.ensure_future(self.run_tick())
        stopped = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait({tick, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (tick, stopped):
                if not t.done():
                    t.cancel()
            await asyncio.gather(tick, stopped, return_exceptions=True)

        if tick in done and not tick.cancelled() and tick.exception() is not None:
            log.error(f"Tick crashed: {tick.exception()}")
        if stopped in done and tick not in done:
            log.info("Stop requested — in-flight tick aborted")
            return False
        return True

    def start(self) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            log.warning("Scheduler already running — ignoring start call")
            return self._task
        # cleared before the task is scheduled so an immediate stop() still lands
        self._stop.clear()
        self._task = asyncio.ensure_future(self.run())
        return self._task

    def stop(self):
        self._stop.set()

    async def wait_stopped(self):
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def trigger_now(self) -> TickReport:
        """Out-of-schedule tick (admin / testing)."""
        return await self.run_tick()

    def status(self) -> dict:
        return {
            "running":        self._running,
            "interval_s":     self.interval_s,
            "entity_delay_s": self.entity_delay_s,
            "competitions":   list(self.competition_codes) or "discover",
            "tick_count":     self._tick_count,
            "last_tick":      self._last_report.to_dict() if self._last_report else None,
        }
