"""End-to-end orchestration of one competitor scan.

    provider links → rank/brand → blacklist split → placeholders
                                              └→ scrape pool → cleaned rows → summary

Three entry points share that flow:

``run_batch``      collects everything and returns one response dict.
``stream_events``  yields ``(event, data)`` pairs as rows complete.
``retry_one``      re-fetches a single URL with generous timeouts.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

import httpx

from serpscout.config import settings
from serpscout.engine.context import RunContext
from serpscout.engine.emitter import (
    TextLimits,
    blacklist_placeholder,
    build_summary,
    clean_outcome,
    sort_by_rank,
)
from serpscout.engine.scheduler import ScrapePool
from serpscout.errors import UpstreamProviderError
from serpscout.providers.serpapi import SerpApiClient, organic_entries
from serpscout.scraper.blacklist import Blacklist, get_blacklist
from serpscout.scraper.fetcher import fast_tier, fetch_page, retry_row_tier, slow_tier
from serpscout.scraper.models import FetchRequest, Success, outcome_to_dict
from serpscout.scraper.text import domain_from_url, hostname_of

logger = logging.getLogger(__name__)

KEEPALIVE = "keepalive"


# ---------------------------------------------------------------------------
# Preparation
# ---------------------------------------------------------------------------

@dataclass
class PreparedRun:
    requests: list[FetchRequest] = field(default_factory=list)
    to_fetch: list[FetchRequest] = field(default_factory=list)
    excluded: list[FetchRequest] = field(default_factory=list)


def derive_brand(link: str, source: Optional[str], brand_source: Optional[str] = None) -> str:
    """Display label for a result: provider ``source`` or the URL's domain."""
    brand_source = brand_source or settings.brand_source
    if brand_source == "source" and source:
        return source
    return domain_from_url(link)


def prepare_run(
    entries: list[dict[str, Any]],
    blacklist: Optional[Blacklist] = None,
    *,
    brand_source: Optional[str] = None,
) -> PreparedRun:
    """Rank *entries* 1..n and split them into excluded and to-fetch."""
    blacklist = blacklist if blacklist is not None else get_blacklist()
    prepared = PreparedRun()
    for rank, entry in enumerate(entries, start=1):
        link = entry["link"]
        request = FetchRequest(
            url=link,
            rank=rank,
            brand=derive_brand(link, entry.get("source"), brand_source),
        )
        prepared.requests.append(request)
        if blacklist.is_blacklisted(hostname_of(link)):
            prepared.excluded.append(request)
        else:
            prepared.to_fetch.append(request)
    logger.info(
        "[SCAN] %d ranked link(s): %d to fetch, %d blacklisted",
        len(prepared.requests), len(prepared.to_fetch), len(prepared.excluded),
    )
    return prepared


def _make_pool(context: RunContext, client: httpx.AsyncClient) -> ScrapePool:
    fetcher = functools.partial(fetch_page, client=client)
    return ScrapePool(
        fetcher,
        pool_size=settings.pool_size,
        tiers=(fast_tier(), slow_tier()),
        context=context,
    )


async def _load_run(
    query: str, location: str, provider: Optional[SerpApiClient]
) -> tuple[dict[str, Any], PreparedRun]:
    provider = provider or SerpApiClient.from_settings()
    payload = await provider.search(query, location)
    entries = organic_entries(payload, settings.serp_max_results)
    return payload, prepare_run(entries)


# ---------------------------------------------------------------------------
# Batch mode
# ---------------------------------------------------------------------------

async def run_batch(
    query: str,
    location: str,
    *,
    provider: Optional[SerpApiClient] = None,
) -> dict[str, Any]:
    """Run a full scan and return the batch response.

    Raises:
        ConfigurationError: No provider credential is configured.
        UpstreamProviderError: The ranked-list provider failed.
    """
    context = RunContext.from_settings()
    payload, prepared = await _load_run(query, location, provider)
    limits = TextLimits.from_settings()

    rows = [blacklist_placeholder(r) for r in prepared.excluded]
    scraped_raw: list[dict[str, Any]] = []
    async with httpx.AsyncClient(follow_redirects=True) as client:
        async for request, outcome in _make_pool(context, client).run(prepared.to_fetch):
            scraped_raw.append(outcome_to_dict(request, outcome))
            rows.append(clean_outcome(request, outcome, limits))

    cleaned = [row.to_dict() for row in sort_by_rank(rows)]
    summary = build_summary(
        context,
        total=len(prepared.requests),
        scraped=len(prepared.to_fetch),
        blacklisted=len(prepared.excluded),
    )
    logger.info("[SCAN] done: %s", summary.to_dict())
    return {
        "query": query,
        "location": location,
        "results": cleaned,
        "logs": {
            "serp_raw": payload,
            "scraped_raw": scraped_raw,
            "cleaned": cleaned,
            "timeline": context.events,
        },
        "stats": summary.to_dict(),
    }


# ---------------------------------------------------------------------------
# Streaming mode
# ---------------------------------------------------------------------------

async def stream_events(
    query: str,
    location: str,
    *,
    provider: Optional[SerpApiClient] = None,
    keepalive_interval: Optional[float] = None,
) -> AsyncIterator[tuple[str, Optional[dict[str, Any]]]]:
    """Yield ``(event, data)`` pairs for a streamed scan.

    Events: ``result`` (placeholders first, then rows in completion order),
    ``keepalive`` (data ``None``) while the pool is idle for
    *keepalive_interval* seconds, then one ``done`` summary.  An upstream
    failure yields a single ``error`` event instead.  ``ConfigurationError``
    propagates so the caller can reject the request before streaming.
    """
    interval = settings.keepalive_interval if keepalive_interval is None else keepalive_interval
    context = RunContext.from_settings()
    try:
        _, prepared = await _load_run(query, location, provider)
    except UpstreamProviderError as exc:
        yield "error", {"error": exc.message}
        return

    for request in prepared.excluded:
        yield "result", blacklist_placeholder(request).to_dict()

    limits = TextLimits.from_settings()
    results: asyncio.Queue[Optional[tuple[FetchRequest, Any]]] = asyncio.Queue()

    async def produce() -> None:
        try:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                async for pair in _make_pool(context, client).run(prepared.to_fetch):
                    results.put_nowait(pair)
        finally:
            results.put_nowait(None)

    producer = asyncio.create_task(produce())
    try:
        while True:
            try:
                item = await asyncio.wait_for(results.get(), timeout=interval)
            except asyncio.TimeoutError:
                yield KEEPALIVE, None
                continue
            if item is None:
                break
            request, outcome = item
            yield "result", clean_outcome(request, outcome, limits).to_dict()
        await producer
    except Exception as exc:
        logger.exception("[SCAN] streaming run failed")
        yield "error", {"error": str(exc)}
        return
    finally:
        if not producer.done():
            producer.cancel()
            await asyncio.gather(producer, return_exceptions=True)

    summary = build_summary(
        context,
        total=len(prepared.requests),
        scraped=len(prepared.to_fetch),
        blacklisted=len(prepared.excluded),
    )
    yield "done", summary.to_dict()


# ---------------------------------------------------------------------------
# Retry one row
# ---------------------------------------------------------------------------

async def retry_one(url: str) -> dict[str, Any]:
    """Re-fetch a single *url* with the generous retry-row timeouts.

    Always returns a payload; failures are reported inside ``result``.
    """
    outcome = await fetch_page(url, retry_row_tier())
    if isinstance(outcome, Success):
        return {"result": clean_outcome(None, outcome).to_dict()}
    row = clean_outcome(None, outcome)
    return {"result": {"finalUrl": row.final_url, "error": row.error, "errorKind": row.error_kind}}
