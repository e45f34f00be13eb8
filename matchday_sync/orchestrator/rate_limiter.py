"""
Matchday Sync — Rate Limiter
─────────────────────────────
Gap-pacing limiter for the upstream API.
Prevents any sync tick from blowing through the request quota.

football-data.org free tier: 10 req/min → one call every 6 seconds.
Calls are spaced by window / max_requests, so no rolling window of
that length ever sees more than max_requests calls.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

log = logging.getLogger("md.rate_limiter")


class RateLimiter:
    """Serialises callers so consecutive permits are >= window/max_requests apart."""

    def __init__(
        self,
        max_requests: int = 10,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        if window_s <= 0:
            raise ValueError(f"window_s must be positive, got {window_s}")
        self.max_requests = max_requests
        self.window_s     = window_s
        self.gap_s        = window_s / max_requests
        self._clock       = clock
        self._sleep       = sleep
        self._last: Optional[float] = None
        self._lock        = asyncio.Lock()
        self._calls       = 0
        self._waited_s    = 0.0

    async def acquire(self) -> float:
        """
        Suspend until the next upstream call is safe.
        Returns the seconds spent waiting (0 if immediate).

        The lock is held across the sleep, so concurrent callers queue
        behind each other. Cancellation during the sleep propagates and
        leaves `_last` untouched: a cancelled wait consumes no slot.
        """
        async with self._lock:
            waited = 0.0
            if self._last is not None:
                elapsed = self._clock() - self._last
                if elapsed < self.gap_s:
                    waited = self.gap_s - elapsed
                    log.debug(f"Rate limit: sleeping {waited:.1f}s")
                    await self._sleep(waited)
            self._last      = self._clock()
            self._calls    += 1
            self._waited_s += waited
            return waited

    def reset(self):
        self._last     = None
        self._calls    = 0
        self._waited_s = 0.0

    def stats(self) -> dict:
        return {
            "max_requests": self.max_requests,
            "window_s":     self.window_s,
            "gap_s":        round(self.gap_s, 3),
            "calls":        self._calls,
            "waited_s":     round(self._waited_s, 3),
        }
