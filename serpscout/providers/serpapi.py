"""SerpAPI client: Google organic results and location suggestions.

Any failure of the ranked-list call (transport error, non-2xx status, non-JSON
body, an ``error`` field, or a payload of the wrong shape) raises
:class:`UpstreamProviderError`, which the HTTP layer maps to a single 502 for
the whole request.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from serpscout.config import settings
from serpscout.errors import ConfigurationError, UpstreamProviderError

logger = logging.getLogger(__name__)


def organic_entries(payload: dict[str, Any], limit: int = 20) -> list[dict[str, Any]]:
    """Return up to *limit* ``{"link", "source"}`` entries, ranked in order.

    Entries without a string ``link`` are dropped before ranking.
    """
    organic = payload.get("organic_results") or []
    if not isinstance(organic, list):
        raise UpstreamProviderError("SerpAPI returned malformed organic_results")
    entries: list[dict[str, Any]] = []
    for item in organic:
        if not isinstance(item, dict) or not isinstance(item.get("link"), str):
            continue
        source = item.get("source")
        entries.append({
            "link": item["link"],
            "source": source if isinstance(source, str) else None,
        })
        if len(entries) >= limit:
            break
    return entries


class SerpApiClient:
    """Thin async wrapper over the SerpAPI REST endpoints."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("SERPAPI_KEY not set")
        self.api_key = api_key
        self.base_url = (base_url or settings.serpapi_base_url).rstrip("/")
        self.timeout = settings.serpapi_timeout if timeout is None else timeout

    @classmethod
    def from_settings(cls) -> "SerpApiClient":
        """Build a client from ``settings``; raises ``ConfigurationError`` without a key."""
        return cls(settings.serpapi_key)

    def _redact(self, url: str) -> str:
        return url.replace(self.api_key, "***")

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}{path}",
                params={**params, "api_key": self.api_key},
            )
        logger.info("[SERP] GET %s → %d", self._redact(str(response.url)), response.status_code)
        return response

    async def search(self, query: str, location: str, num: Optional[int] = None) -> dict[str, Any]:
        """Fetch Google organic results for *query* near *location*."""
        params = {
            "engine": "google",
            "q": query,
            "location": location,
            "num": num or settings.serp_max_results,
            "hl": "en",
            "gl": "us",
        }
        try:
            response = await self._get("/search.json", params)
        except httpx.HTTPError as exc:
            logger.error("[SERP] request failed: %s", exc)
            raise UpstreamProviderError(f"SerpAPI fetch failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamProviderError(f"SerpAPI fetch failed: HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamProviderError("SerpAPI returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamProviderError("SerpAPI returned a malformed payload")
        if payload.get("error"):
            logger.error("[SERP] provider error: %s", payload["error"])
            raise UpstreamProviderError(f"SerpAPI error: {payload['error']}")

        count = len(payload.get("organic_results") or [])
        logger.info("[SERP] %d organic result(s) for %r in %r", count, query, location)
        return payload

    async def locations(self, query: str, limit: int = 10) -> httpx.Response:
        """Location autocomplete; the raw response is passed through verbatim."""
        try:
            return await self._get("/locations.json", {"q": query, "limit": limit})
        except httpx.HTTPError as exc:
            raise UpstreamProviderError(f"location lookup failed: {exc}") from exc
