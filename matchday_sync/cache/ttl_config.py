"""
Matchday Sync — TTL Configuration
──────────────────────────────────
Single source of truth for all cache durations.
Organised by entity type — how fast the real world changes.
"""

import logging
import os
from datetime import timedelta
from typing import Dict, Mapping, Optional

log = logging.getLogger("md.ttl")

# ── Entity types ──────────────────────────────────────────────
COMPETITION  = "competition"
TEAM         = "team"
MATCH        = "match"          # keyed by competition code: the fixture list
STANDINGS    = "standings"
HEAD_TO_HEAD = "head-to-head"

# ── Per entity-type TTL (seconds) ─────────────────────────────

TTL = {
    # Fast-changing: live scores and table positions
    MATCH:        5 * 60,         # 5 minutes
    STANDINGS:    15 * 60,        # 15 minutes

    # Medium-changing
    HEAD_TO_HEAD: 3600,           # 1 hour
    TEAM:         12 * 3600,      # 12 hours (squads, crests)

    # Slow-changing
    COMPETITION:  24 * 3600,      # 1 day
}

DEFAULT_TTL_DAYS = 30


class TTLPolicy:
    """
    Immutable entity_type → duration mapping.
    Types not in the mapping get `default`.
    """

    def __init__(self, ttls: Mapping[str, float], default: timedelta):
        if default < timedelta(0):
            raise ValueError(f"default TTL must be >= 0, got {default}")
        table: Dict[str, timedelta] = {}
        for entity_type, seconds in ttls.items():
            if seconds < 0:
                raise ValueError(f"TTL for {entity_type!r} must be >= 0, got {seconds}")
            table[entity_type] = timedelta(seconds=seconds)
        self._ttls    = table
        self._default = default

    @property
    def default(self) -> timedelta:
        return self._default

    def ttl_for(self, entity_type: str) -> timedelta:
        return self._ttls.get(entity_type, self._default)

    def seconds_for(self, entity_type: str) -> float:
        return self.ttl_for(entity_type).total_seconds()

    def as_dict(self) -> Dict[str, float]:
        return {k: v.total_seconds() for k, v in self._ttls.items()}


def _env_key(entity_type: str) -> str:
    return "TTL_" + entity_type.upper().replace("-", "_") + "_S"


def _read_float(name: str, fallback: float, env: Mapping[str, str]) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return fallback
    try:
        return float(raw)
    except ValueError:
        log.warning(f"Ignoring malformed {name}={raw!r}, using {fallback}")
        return fallback


def load_ttl_policy(env: Optional[Mapping[str, str]] = None) -> TTLPolicy:
    """
    Build the policy from TTL defaults plus environment overrides.

    CACHE_TTL_DAYS sets the fallback for unknown entity types;
    TTL_<TYPE>_S (e.g. TTL_MATCH_S, TTL_HEAD_TO_HEAD_S) overrides one type.
    """
    env = os.environ if env is None else env
    days = _read_float("CACHE_TTL_DAYS", DEFAULT_TTL_DAYS, env)
    if days <= 0:
        days = DEFAULT_TTL_DAYS

    ttls = {t: _read_float(_env_key(t), secs, env) for t, secs in TTL.items()}
    return TTLPolicy(ttls, default=timedelta(days=days))


DEFAULT_POLICY = TTLPolicy(TTL, default=timedelta(days=DEFAULT_TTL_DAYS))
