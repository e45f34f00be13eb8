"""
Matchday Sync — Delta Detector
───────────────────────────────
Content hashing for synced payloads.
Two payloads that differ only in key order hash the same, so a re-fetch
that brought nothing new is recognisable from the freshness record.
"""

import hashlib
import json
import logging
from typing import Any, Optional

from matchday_sync.models.sync_models import FreshnessRecord

log = logging.getLogger("md.delta")


def canonical_json(value: Any) -> bytes:
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str,
    ).encode("utf-8")


def compute_data_hash(value: Any) -> str:
    """
    SHA-256 hex digest of the canonical JSON form of `value`.

    bytes/str are treated as JSON text and decoded first; bytes that are
    not JSON are hashed as-is.
    """
    if isinstance(value, (bytes, bytearray, str)):
        try:
            value = json.loads(value)
        except (ValueError, UnicodeDecodeError):
            raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
            return hashlib.sha256(raw).hexdigest()
    return hashlib.sha256(canonical_json(value)).hexdigest()


def has_changed(previous: Optional[FreshnessRecord], new_hash: str) -> bool:
    """True if there was no prior sync, no prior hash, or the hash moved."""
    if previous is None or not previous.data_hash:
        return True
    changed = previous.data_hash != new_hash
    if not changed:
        log.debug(f"{previous.entity_type}:{previous.entity_key} unchanged since last sync")
    return changed
