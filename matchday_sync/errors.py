"""
Matchday Sync — Errors
────────────────────────
Typed failures raised by the sync engine.

Every error carries a stable `code`, a human message and a `details`
dict, so callers can log or report them without string matching.
"""

from typing import Any, Dict, Optional


class SyncEngineError(Exception):
    """Base exception for the sync engine."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code    = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class TransportError(SyncEngineError):
    """Network failure or timeout talking to the upstream API."""

    def __init__(self, message: str = "Upstream transport failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", message, details)


class UpstreamStatusError(SyncEngineError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.body        = body
        super().__init__(
            "UPSTREAM_STATUS",
            f"API error: status {status_code}, body: {body[:200]}",
            {"status_code": status_code, **(details or {})},
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_transient(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class DecodeError(SyncEngineError):
    """Upstream body was not the JSON we expected."""

    def __init__(self, message: str = "Malformed upstream payload", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)


class CacheBackendError(SyncEngineError):
    """The networked volatile cache is unreachable or failed an operation."""

    def __init__(self, message: str = "Cache backend failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_BACKEND_ERROR", message, details)


class PersistenceError(SyncEngineError):
    """A durable store (freshness metadata or entity repository) failed."""

    def __init__(self, message: str = "Persistence failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)
