"""Competitor scan endpoints, batch and streamed.

Routes
------
POST /api/run-search              Body: {"q": "...", "location": "..."}
GET  /api/run-search-sse?q=&location=

SSE event format
----------------
Each event is named and carries one JSON object::

    event: result
    data: {"rank": 1, "brand": "...", "title": "...", ...}

    event: done
    data: {"total": 10, "scraped": 8, "blacklisted": 2, "successful": 7, ...}

    event: error
    data: {"error": "SerpAPI fetch failed: HTTP 500"}

A ``: keep-alive`` comment is written whenever the pool has been idle for
``settings.keepalive_interval`` seconds.
"""

from __future__ import annotations

from typing import Any, AsyncIterator

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from serpscout.engine.emitter import KEEPALIVE_COMMENT, format_sse
from serpscout.engine.pipeline import KEEPALIVE, run_batch, stream_events
from serpscout.errors import ConfigurationError, UpstreamProviderError
from serpscout.providers.serpapi import SerpApiClient

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class SearchRequest(BaseModel):
    q: str = ""
    location: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_input(q: str, location: str) -> tuple[str, str]:
    q, location = q.strip(), location.strip()
    if not q or not location:
        raise HTTPException(status_code=400, detail="missing q or location")
    return q, location


def _provider() -> SerpApiClient:
    try:
        return SerpApiClient.from_settings()
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc


async def _sse_stream(q: str, location: str, provider: SerpApiClient) -> AsyncIterator[str]:
    async for event, data in stream_events(q, location, provider=provider):
        if event == KEEPALIVE:
            yield KEEPALIVE_COMMENT
        else:
            yield format_sse(event, data)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/run-search")
async def run_search(body: SearchRequest) -> dict[str, Any]:
    """Scan every ranked competitor and return the rows sorted by rank."""
    q, location = _require_input(body.q, body.location)
    provider = _provider()
    try:
        return await run_batch(q, location, provider=provider)
    except UpstreamProviderError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc


@router.get("/run-search-sse")
async def run_search_sse(q: str = "", location: str = "") -> StreamingResponse:
    """Stream blacklist placeholders, then each row as it completes, then a summary."""
    q, location = _require_input(q, location)
    provider = _provider()
    return StreamingResponse(
        _sse_stream(q, location, provider),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )
