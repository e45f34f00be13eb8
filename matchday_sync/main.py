"""
Matchday Sync — Runner
───────────────────────
Wires the engine together from the environment and runs it.

  matchday-sync --mode once                     one tick, then exit
  matchday-sync --mode schedule                 run forever (SIGINT/SIGTERM to stop)
  matchday-sync --mode status                   print freshness of tracked entities
  matchday-sync --mode invalidate --entity-type standings --entity-key PL
"""

import argparse
import asyncio
import logging
import signal
from dataclasses import dataclass
from typing import Optional

from matchday_sync.cache.base import VolatileCache, create_cache_or_fallback
from matchday_sync.cache.coordinator import CacheCoordinator
from matchday_sync.cache.freshness_store import MemoryFreshnessStore, PostgresFreshnessStore
from matchday_sync.cache.memory_cache import MemoryCache
from matchday_sync.cache.ttl_config import COMPETITION, HEAD_TO_HEAD, MATCH, STANDINGS, TEAM
from matchday_sync.config import Settings
from matchday_sync.db import open_pool
from matchday_sync.models.sync_models import _fmt_age, utcnow
from matchday_sync.orchestrator.rate_limiter import RateLimiter
from matchday_sync.orchestrator.scheduler import SyncScheduler
from matchday_sync.orchestrator.syncer import EntitySyncer
from matchday_sync.reader import EntityReader
from matchday_sync.repository import MemoryRepository, PostgresRepository
from matchday_sync.upstream.client import UpstreamClient

log = logging.getLogger("md.main")


@dataclass
class Engine:
    client:      UpstreamClient
    cache:       VolatileCache
    coordinator: CacheCoordinator
    scheduler:   SyncScheduler
    reader:      EntityReader
    pool:        Optional[object] = None

    async def close(self):
        await self.client.close()
        await self.cache.close()
        if self.pool is not None:
            await self.pool.close()


async def build_engine(settings: Settings) -> Engine:
    pool = None
    if settings.database_url:
        pool       = await open_pool(settings.database_url)
        store      = PostgresFreshnessStore(pool)
        repository = PostgresRepository(pool)
        await store.init_schema()
        await repository.init_schema()
    else:
        log.warning("DATABASE_URL not set — freshness metadata and entities kept in memory")
        store      = MemoryFreshnessStore()
        repository = MemoryRepository()

    cache = await create_cache_or_fallback(settings.cache)
    if isinstance(cache, MemoryCache):
        cache.start_sweeper()

    limiter = RateLimiter(settings.rate_limit, settings.rate_window_s)
    client  = UpstreamClient(
        settings.api_key, limiter,
        base_url=settings.base_url, timeout=settings.request_timeout_s,
    )
    coordinator = CacheCoordinator(store, cache, settings.ttl_policy)
    syncer      = EntitySyncer(client, repository, coordinator)
    scheduler   = SyncScheduler(
        client, syncer, coordinator,
        competition_codes = settings.competition_codes,
        team_ids          = settings.team_ids,
        match_ids         = settings.match_ids,
        interval_s        = settings.sync_interval_s,
        entity_delay_s    = settings.entity_delay_s,
    )
    reader = EntityReader(coordinator, repository)
    return Engine(client, cache, coordinator, scheduler, reader, pool)


# ══════════════════════════════════════════════════════════════
# MODES
# ══════════════════════════════════════════════════════════════

async def run_once(settings: Settings) -> dict:
    engine = await build_engine(settings)
    try:
        report = await engine.scheduler.run_tick()
        return report.to_dict()
    finally:
        await engine.close()


async def run_scheduled(settings: Settings):
    engine = await build_engine(settings)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.scheduler.stop)
        except NotImplementedError:
            pass   # Windows: Ctrl+C still raises KeyboardInterrupt
    try:
        await engine.scheduler.start()
    finally:
        await engine.close()


async def print_status(settings: Settings):
    engine = await build_engine(settings)
    try:
        now = utcnow()
        print("\n══════════════════════════════════════════")
        print("  Matchday Sync — Freshness Status")
        print("══════════════════════════════════════════")
        keys = []
        for code in settings.competition_codes:
            keys += [(COMPETITION, code), (MATCH, code), (STANDINGS, code)]
        keys += [(TEAM, t) for t in settings.team_ids]
        keys += [(HEAD_TO_HEAD, m) for m in settings.match_ids]
        if not keys:
            print("  No COMPETITION_CODES / TRACKED_TEAM_IDS / TRACKED_MATCH_IDS configured")
        for entity_type, key in keys:
            record = await engine.coordinator.get_metadata(entity_type, key)
            if record is None:
                print(f"  {entity_type:<12} {key:<8} never synced")
                continue
            state = "STALE" if record.is_stale(now) else "fresh"
            age   = _fmt_age(record.age_seconds(now))
            print(f"  {entity_type:<12} {key:<8} {state:<6} synced {age} ago")
        print("══════════════════════════════════════════\n")
    finally:
        await engine.close()


async def invalidate(settings: Settings, entity_type: str, entity_key: str):
    engine = await build_engine(settings)
    try:
        await engine.coordinator.invalidate_entity(entity_type, entity_key)
    finally:
        await engine.close()


def cli(argv=None):
    parser = argparse.ArgumentParser(description="Matchday Sync — football-data.org freshness engine")
    parser.add_argument(
        "--mode",
        choices=["once", "schedule", "status", "invalidate"],
        default="schedule",
        help=(
            "once=single tick  "
            "schedule=run forever  "
            "status=print freshness  "
            "invalidate=forget one entity"
        ),
    )
    parser.add_argument("--entity-type", help="entity type for --mode invalidate (e.g. standings)")
    parser.add_argument("--entity-key", help="entity key for --mode invalidate (e.g. PL)")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    # a fresh process with in-memory stores has nothing to report or forget
    if args.mode in ("status", "invalidate") and not settings.database_url:
        parser.error(f"--mode {args.mode} needs DATABASE_URL (freshness metadata is not shared otherwise)")

    if args.mode == "status":
        asyncio.run(print_status(settings))
    elif args.mode == "invalidate":
        if not args.entity_type or not args.entity_key:
            parser.error("--mode invalidate needs --entity-type and --entity-key")
        asyncio.run(invalidate(settings, args.entity_type, args.entity_key))
    elif args.mode == "once":
        result = asyncio.run(run_once(settings))
        print(f"\nResult: {result['synced']} synced  {result['skipped']} fresh  {result['failed']} errors")
    else:
        asyncio.run(run_scheduled(settings))


if __name__ == "__main__":
    cli()
