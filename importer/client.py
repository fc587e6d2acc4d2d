"""
HTTP transport for gomafia.pro with rate limiting and retry.

This module provides:
- A shared httpx.AsyncClient with a per-request timeout
- A minimum interval between requests (the site throttles aggressive clients)
- Status-code mapping onto the transport error taxonomy
- Retries through an injected RetryPolicy (network-class errors only)
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from core.config import settings
from core.exceptions import NetworkError, RateLimitError, ResourceNotFoundError
from importer.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/127.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "ru-RU,ru;q=0.9,en;q=0.5",
}


class GomafiaClient:
    """
    Fetch raw HTML pages from gomafia.pro.

    Failures are split the way the retry policy expects:
    - NetworkError / RateLimitError: timeouts, refused connections, 429, 5xx
    - ResourceNotFoundError: 404, never retried
    Parsing is not this class's job; it returns page text only.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        request_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.GOMAFIA_BASE_URL).rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.request_delay = settings.REQUEST_DELAY_SECONDS if request_delay is None else request_delay
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECONDS

        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=self.timeout,
            follow_redirects=True,
        )
        self._owns_client = http_client is None
        self._throttle_lock = asyncio.Lock()
        self._last_request_at: Optional[float] = None

    async def __aenter__(self) -> "GomafiaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Core request path
    # ------------------------------------------------------------------

    async def fetch(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        """GET a page and return its HTML, retrying network-class failures."""
        return await self.retry_policy.run(
            lambda: self._request(path, params),
            describe=f"GET {path}",
        )

    async def _throttle(self):
        async with self._throttle_lock:
            if self._last_request_at is not None and self.request_delay > 0:
                elapsed = time.monotonic() - self._last_request_at
                if elapsed < self.request_delay:
                    await asyncio.sleep(self.request_delay - elapsed)
            self._last_request_at = time.monotonic()

    async def _request(self, path: str, params: Optional[Dict[str, Any]]) -> str:
        await self._throttle()
        url = f"{self.base_url}{path}"
        context = {"url": url, "params": params or {}}

        logger.debug(f"GET {url} {params or ''}")

        try:
            response = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"Request timeout for {url}",
                context={**context, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.TransportError as e:
            raise NetworkError(
                f"Network error for {url}",
                context=context,
                original_exception=e
            )

        if response.status_code == 404:
            raise ResourceNotFoundError(
                f"Resource not found: {url}",
                context={**context, "status_code": 404}
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limited by {self.base_url}",
                context={**context, "status_code": 429},
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None
            )

        if response.status_code >= 500:
            raise NetworkError(
                f"Server error {response.status_code} for {url}",
                context={
                    **context,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]
                }
            )

        if response.status_code >= 400:
            raise ResourceNotFoundError(
                f"Unexpected status {response.status_code} for {url}",
                context={**context, "status_code": response.status_code}
            )

        return response.text

    # ------------------------------------------------------------------
    # Page helpers
    # ------------------------------------------------------------------

    async def ping(self) -> None:
        """Raise a transport error if the site cannot be reached."""
        await self.fetch("/")

    async def fetch_clubs_page(self, page: int, year: Optional[int] = None) -> str:
        return await self.fetch("/rating", {
            "tab": "clubs",
            "yearClubs": year or datetime.utcnow().year,
            "regionClubs": "all",
            "pageClubs": page,
        })

    async def fetch_players_page(self, page: int, year: Optional[int] = None) -> str:
        return await self.fetch("/rating", {
            "yearUsers": year or datetime.utcnow().year,
            "regionUsers": "all",
            "pageUsers": page,
        })

    async def fetch_tournaments_page(self, page: int) -> str:
        return await self.fetch("/tournaments", {"time": "all", "page": page})

    async def fetch_judges_page(self, page: int) -> str:
        return await self.fetch("/judges", {"tab": "all", "pageJudges": page})

    async def fetch_tournament_games(self, tournament_gomafia_id: str) -> str:
        return await self.fetch(f"/tournament/{tournament_gomafia_id}", {"tab": "games"})

    async def fetch_player_detail(self, gomafia_id: str) -> str:
        return await self.fetch(f"/stats/{gomafia_id}")

    async def fetch_club_detail(self, gomafia_id: str) -> str:
        return await self.fetch(f"/club/{gomafia_id}")

    async def fetch_tournament_detail(self, gomafia_id: str) -> str:
        return await self.fetch(f"/tournament/{gomafia_id}")
