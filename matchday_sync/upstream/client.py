"""
Matchday Sync — Upstream Client
────────────────────────────────
Authenticated football-data.org client.

Every request goes through the RateLimiter first. No retries here:
the scheduler decides what to do with a failed entity.
"""

import json
import logging
from typing import Any, Optional, Union

import httpx

from matchday_sync.errors import DecodeError, TransportError, UpstreamStatusError
from matchday_sync.orchestrator.rate_limiter import RateLimiter

log = logging.getLogger("md.upstream")

DEFAULT_BASE_URL = "https://api.football-data.org/v4"
REQUEST_TIMEOUT  = 30.0


class UpstreamClient:

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url     = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self._owns_client = http_client is None
        self._client      = http_client or httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "X-Auth-Token": api_key,
                "Accept":       "application/json",
            },
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, path: str) -> bytes:
        """
        GET `path` under the base URL and return the raw body.

        Raises TransportError on network failure or timeout and
        UpstreamStatusError on any non-2xx answer.
        """
        await self.rate_limiter.acquire()

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise TransportError(f"Timeout fetching {path}", {"path": path}) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {path} failed: {e}", {"path": path}) from e

        if not 200 <= r.status_code < 300:
            if r.status_code == 429:
                log.warning(f"Upstream rate limit hit on {path}")
            raise UpstreamStatusError(r.status_code, r.text, {"path": path})

        log.debug(f"GET {path} → {r.status_code} ({len(r.content)} bytes)")
        return r.content

    async def fetch_json(self, path: str) -> Any:
        raw = await self.fetch(path)
        return decode_json(raw, path)

    # ── Typed endpoints ────────────────────────────────────────

    async def get_competitions(self) -> list:
        data = await self.fetch_json("/competitions")
        return _field(data, "competitions", "/competitions")

    async def get_competition(self, code: str) -> dict:
        return await self.fetch_json(f"/competitions/{code}")

    async def get_team(self, team_id: Union[int, str]) -> dict:
        return await self.fetch_json(f"/teams/{team_id}")

    async def get_matches(self, code: str) -> list:
        path = f"/competitions/{code}/matches"
        return _field(await self.fetch_json(path), "matches", path)

    async def get_standings(self, code: str) -> dict:
        return await self.fetch_json(f"/competitions/{code}/standings")

    async def get_head_to_head(self, match_id: Union[int, str]) -> dict:
        return await self.fetch_json(f"/matches/{match_id}/head2head")


def decode_json(raw: bytes, path: str = "") -> Any:
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise DecodeError(f"Failed to decode response from {path or 'upstream'}: {e}",
                          {"path": path}) from e


def _field(data: Any, name: str, path: str) -> list:
    if not isinstance(data, dict) or not isinstance(data.get(name, []), list):
        raise DecodeError(f"Unexpected payload shape from {path}", {"path": path, "field": name})
    return data.get(name, [])
