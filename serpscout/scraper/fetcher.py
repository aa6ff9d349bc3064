"""Timed page fetch with bot-block detection and a single identity retry.

The fetch is a two-state machine::

    PRIMARY ──ok──────────────► Success
       │ blocked (backoff)
       ▼
    ALTERNATE ──ok────────────► Success
       │ blocked
       ▼
    Blocked

A timeout or transport error in either state ends the machine with
``Failed``.  There is exactly one identity retry and no other.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from serpscout.config import settings
from serpscout.errors import FetchTimeoutError, ScoutError, TransportError
from serpscout.scraper.extractor import extract
from serpscout.scraper.models import Blocked, Failed, FetchOutcome, Success

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Identity profiles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IdentityProfile:
    name: str
    headers: dict[str, str]


_CHROME_WINDOWS_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Upgrade-Insecure-Requests": "1",
    "sec-ch-ua": '"Chromium";v="122", "Not(A:Brand";v="24", "Google Chrome";v="122"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"Windows"',
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Dest": "document",
}

PRIMARY_PROFILE = IdentityProfile(name="chrome-windows", headers=_CHROME_WINDOWS_HEADERS)

ALTERNATE_PROFILE = IdentityProfile(
    name="safari-macos",
    headers={
        **_CHROME_WINDOWS_HEADERS,
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_3) "
            "AppleWebKit/605.1.15 (KHTML, like Gecko) "
            "Version/16.4 Safari/605.1.15"
        ),
        "sec-ch-ua": '"Not/A)Brand";v="99", "Safari";v="16"',
        "sec-ch-ua-platform": '"macOS"',
        "Sec-Fetch-Site": "cross-site",
        "Referer": "https://www.google.com/",
    },
)


@dataclass(frozen=True)
class FetchTimeouts:
    """Per-attempt budgets in seconds."""

    fetch: float
    body: float


def fast_tier() -> FetchTimeouts:
    return FetchTimeouts(settings.fast_fetch_timeout, settings.fast_body_timeout)


def slow_tier() -> FetchTimeouts:
    return FetchTimeouts(settings.slow_fetch_timeout, settings.slow_body_timeout)


def retry_row_tier() -> FetchTimeouts:
    return FetchTimeouts(settings.retry_fetch_timeout, settings.retry_body_timeout)


# ---------------------------------------------------------------------------
# Block detection
# ---------------------------------------------------------------------------
_BLOCK_STATUSES = frozenset({403, 406})
_NOT_ACCEPTABLE_TITLE_RE = re.compile(r"<title[^>]*>\s*Not Acceptable!\s*</title>", re.IGNORECASE)
_VENDOR_RE = re.compile(
    r"Access Denied|Request unsuccessful|Akamai|Incapsula|Cloudflare|Please enable cookies",
    re.IGNORECASE,
)


def detect_block(status_code: int, body: str) -> Optional[str]:
    """Return a short reason if the response looks like a bot-defense page."""
    if status_code in _BLOCK_STATUSES:
        return f"HTTP {status_code}"
    if _NOT_ACCEPTABLE_TITLE_RE.search(body):
        return "Not Acceptable"
    if "Mod_Security" in body or "Not Acceptable!" in body:
        return "Mod_Security"
    vendor = _VENDOR_RE.search(body)
    if vendor:
        return vendor.group(0)
    return None


# ---------------------------------------------------------------------------
# Single attempt
# ---------------------------------------------------------------------------

async def _attempt(
    client: httpx.AsyncClient,
    url: str,
    profile: IdentityProfile,
    timeouts: FetchTimeouts,
) -> tuple[httpx.Response, str]:
    """One GET under *profile*.  Raises ``FetchTimeoutError`` / ``TransportError``."""
    try:
        request = client.build_request("GET", url, headers=profile.headers)
    except httpx.InvalidURL as exc:
        raise TransportError(f"invalid URL: {exc}") from exc
    try:
        response = await asyncio.wait_for(client.send(request, stream=True), timeouts.fetch)
    except asyncio.TimeoutError as exc:
        raise FetchTimeoutError(f"Timeout after {timeouts.fetch:g}s", phase="fetch") from exc
    except httpx.TimeoutException as exc:
        raise FetchTimeoutError(f"Timeout: {exc}", phase="fetch") from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"{type(exc).__name__}: {exc}") from exc

    try:
        await asyncio.wait_for(response.aread(), timeouts.body)
        return response, response.text
    except asyncio.TimeoutError as exc:
        raise FetchTimeoutError(f"Body read timeout after {timeouts.body:g}s", phase="body") from exc
    except httpx.TimeoutException as exc:
        raise FetchTimeoutError(f"Body read timeout: {exc}", phase="body") from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"{type(exc).__name__}: {exc}") from exc
    finally:
        await response.aclose()


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class FetchState(enum.Enum):
    PRIMARY = "primary"
    ALTERNATE = "alternate"


_PROFILES: dict[FetchState, IdentityProfile] = {
    FetchState.PRIMARY: PRIMARY_PROFILE,
    FetchState.ALTERNATE: ALTERNATE_PROFILE,
}


# blocked in state → next state (None means give up)
_ON_BLOCK: dict[FetchState, Optional[FetchState]] = {
    FetchState.PRIMARY: FetchState.ALTERNATE,
    FetchState.ALTERNATE: None,
}


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def fetch_page(
    url: str,
    timeouts: Optional[FetchTimeouts] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    backoff: Optional[float] = None,
) -> FetchOutcome:
    """Fetch *url* and return a :class:`FetchOutcome`.  Never raises for I/O.

    Args:
        url: Page to fetch.
        timeouts: Per-attempt budgets; defaults to the fast tier.
        client: Shared ``httpx.AsyncClient``.  A private one is opened (and
            closed) when omitted.
        backoff: Pause before the alternate-identity retry; defaults to
            ``settings.block_retry_backoff``.

    ``response_time_ms`` runs from the start of the first attempt to the end
    of the last body read, so a retried fetch reports its full cost.
    """
    timeouts = timeouts or fast_tier()
    backoff = settings.block_retry_backoff if backoff is None else backoff

    if client is None:
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            return await fetch_page(url, timeouts, client=own_client, backoff=backoff)

    start = time.monotonic()
    state = FetchState.PRIMARY
    while True:
        profile = _PROFILES[state]
        try:
            response, body = await _attempt(client, url, profile, timeouts)
        except ScoutError as exc:
            prefix = "retry fetch failed" if state is FetchState.ALTERNATE else "fetch failed"
            logger.info("[FETCH] ✗ %s (%s): %s", url, profile.name, exc.message)
            return Failed(
                url=url,
                error_message=f"{prefix}: {exc.message}",
                error_kind=exc.kind,
                response_time_ms=_elapsed_ms(start),
                phase=exc.phase if isinstance(exc, FetchTimeoutError) else None,
            )

        elapsed = _elapsed_ms(start)
        final_url = str(response.url) or url
        reason = detect_block(response.status_code, body)
        if reason is None:
            signals = extract(body)
            logger.info(
                "[FETCH] ✓ %s → %d in %dms (%d words)",
                url, response.status_code, elapsed, signals.word_count,
            )
            return Success(
                final_url=final_url,
                response_time_ms=elapsed,
                title_raw=signals.title_raw,
                meta_description_raw=signals.meta_description_raw,
                h1_raw=signals.h1_raw,
                word_count=signals.word_count,
            )

        next_state = _ON_BLOCK[state]
        if next_state is None:
            logger.warning("[BLOCKED] %s still blocked after retry (%s)", url, reason)
            return Blocked(final_url=final_url, response_time_ms=elapsed, reason=reason)

        logger.info("[BLOCKED] %s (%s); retrying as %s", url, reason, _PROFILES[next_state].name)
        await asyncio.sleep(backoff)
        state = next_state
