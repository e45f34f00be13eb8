"""
Matchday Sync — Configuration
──────────────────────────────
Everything is read from the environment (a .env file is loaded first).

  FOOTBALL_DATA_API_KEY   — upstream auth token
  FOOTBALL_DATA_BASE_URL  — https://api.football-data.org/v4
  RATE_LIMIT_REQUESTS     — 10   (per window)
  RATE_LIMIT_WINDOW_S     — 60
  REQUEST_TIMEOUT_S       — 30
  CACHE_TYPE              — memory | redis
  CACHE_MAX_SIZE          — 1000
  REDIS_URL               — redis://localhost:6379/0
  DATABASE_URL            — PostgreSQL DSN; unset → in-memory stores
  SYNC_INTERVAL_S         — 86400
  SYNC_ENTITY_DELAY_S     — 2
  COMPETITION_CODES       — e.g. "PL,BL1,SA"; unset → discover
  TRACKED_TEAM_IDS        — e.g. "57,65"
  TRACKED_MATCH_IDS       — e.g. "436108"  (head-to-head syncs)
  CACHE_TTL_DAYS          — 30  (unknown entity types)
  TTL_<TYPE>_S            — per-type override, e.g. TTL_MATCH_S=120
  LOG_LEVEL               — INFO
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from matchday_sync.cache.base import DEFAULT_MAX_SIZE, DEFAULT_REDIS_URL, CacheBackend, CacheConfig
from matchday_sync.cache.ttl_config import TTLPolicy, load_ttl_policy
from matchday_sync.upstream.client import DEFAULT_BASE_URL, REQUEST_TIMEOUT

log = logging.getLogger("md.config")


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning(f"Ignoring malformed {name}={raw!r}, using {default}")
        return default


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning(f"Ignoring malformed {name}={raw!r}, using {default}")
        return default


def _list(env: Mapping[str, str], name: str) -> List[str]:
    return [p.strip() for p in env.get(name, "").split(",") if p.strip()]


@dataclass
class Settings:
    api_key:           str   = ""
    base_url:          str   = DEFAULT_BASE_URL
    rate_limit:        int   = 10
    rate_window_s:     float = 60.0
    request_timeout_s: float = REQUEST_TIMEOUT
    cache:             CacheConfig = field(default_factory=CacheConfig)
    database_url:      Optional[str] = None
    sync_interval_s:   float = 24 * 3600
    entity_delay_s:    float = 2.0
    competition_codes: List[str] = field(default_factory=list)
    team_ids:          List[str] = field(default_factory=list)
    match_ids:         List[str] = field(default_factory=list)
    ttl_policy:        TTLPolicy = field(default_factory=load_ttl_policy)
    log_level:         str   = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        if env is None:
            load_dotenv()
            env = os.environ

        rate_limit = _int(env, "RATE_LIMIT_REQUESTS", 10)
        if rate_limit <= 0:
            log.warning("RATE_LIMIT_REQUESTS must be positive, using 10")
            rate_limit = 10
        window = _float(env, "RATE_LIMIT_WINDOW_S", 60.0)
        if window <= 0:
            log.warning("RATE_LIMIT_WINDOW_S must be positive, using 60")
            window = 60.0

        return cls(
            api_key           = env.get("FOOTBALL_DATA_API_KEY", ""),
            base_url          = env.get("FOOTBALL_DATA_BASE_URL", "").strip() or DEFAULT_BASE_URL,
            rate_limit        = rate_limit,
            rate_window_s     = window,
            request_timeout_s = _float(env, "REQUEST_TIMEOUT_S", REQUEST_TIMEOUT),
            cache             = CacheConfig(
                backend   = CacheBackend.parse(env.get("CACHE_TYPE")),
                max_size  = _int(env, "CACHE_MAX_SIZE", DEFAULT_MAX_SIZE),
                redis_url = env.get("REDIS_URL", "").strip() or DEFAULT_REDIS_URL,
            ),
            database_url      = env.get("DATABASE_URL", "").strip() or None,
            sync_interval_s   = _float(env, "SYNC_INTERVAL_S", 24 * 3600),
            entity_delay_s    = _float(env, "SYNC_ENTITY_DELAY_S", 2.0),
            competition_codes = [c.upper() for c in _list(env, "COMPETITION_CODES")],
            team_ids          = _list(env, "TRACKED_TEAM_IDS"),
            match_ids         = _list(env, "TRACKED_MATCH_IDS"),
            ttl_policy        = load_ttl_policy(env),
            log_level         = env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
