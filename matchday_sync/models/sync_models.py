"""
Matchday Sync — Sync Models
────────────────────────────
Freshness metadata for one tracked entity, plus the per-entity and
per-tick reports the scheduler produces.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FreshnessRecord:
    """
    When an entity was last synced and when it goes stale.
    One record per (entity_type, entity_key).
    """
    entity_type: str
    entity_key:  str
    cached_at:   datetime
    expires_at:  datetime
    data_hash:   Optional[str] = None

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        # equality still counts as fresh
        now = now or utcnow()
        return now > self.expires_at

    def age_seconds(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        return max(0, int((now - self.cached_at).total_seconds()))

    def to_dict(self) -> dict:
        return {
            "entity_type": self.entity_type,
            "entity_key":  self.entity_key,
            "cached_at":   self.cached_at.isoformat(),
            "expires_at":  self.expires_at.isoformat(),
            "data_hash":   self.data_hash,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "FreshnessRecord":
        return cls(
            entity_type=d["entity_type"],
            entity_key=d["entity_key"],
            cached_at=_parse_ts(d["cached_at"]),
            expires_at=_parse_ts(d["expires_at"]),
            data_hash=d.get("data_hash"),
        )


def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass
class SyncResult:
    entity_type: str
    entity_key:  str
    status:      str            # "synced" | "skipped" | "failed"
    changed:     bool = False
    error:       Optional[str] = None
    duration_s:  float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TickReport:
    started_at:  datetime
    finished_at: Optional[datetime] = None
    competitions: List[str]      = field(default_factory=list)
    results:     List[SyncResult] = field(default_factory=list)
    error:       Optional[str]   = None

    @property
    def synced(self) -> int:
        return sum(1 for r in self.results if r.status == "synced")

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status == "skipped")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == "failed")

    def to_dict(self) -> dict:
        return {
            "started_at":   self.started_at.isoformat(),
            "finished_at":  self.finished_at.isoformat() if self.finished_at else None,
            "competitions": list(self.competitions),
            "synced":       self.synced,
            "skipped":      self.skipped,
            "failed":       self.failed,
            "error":        self.error,
            "results":      [r.to_dict() for r in self.results],
        }


def _fmt_age(seconds: int) -> str:
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
