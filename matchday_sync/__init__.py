"""
Matchday Sync
─────────────
Freshness and synchronisation engine for football-data.org.

    from matchday_sync.main import build_engine
    engine = await build_engine(Settings.from_env())
    await engine.scheduler.run_tick()
"""

__version__ = "0.1.0"
