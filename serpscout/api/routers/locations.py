"""Location autocomplete passthrough.

Routes
------
GET /api/proxy-locations?q=<partial text>
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from serpscout.errors import ConfigurationError, UpstreamProviderError
from serpscout.providers.serpapi import SerpApiClient

router = APIRouter()


@router.get("/proxy-locations")
async def proxy_locations(q: str = "") -> Response:
    """Return the provider's location suggestions with its status and body untouched."""
    if not q.strip():
        raise HTTPException(status_code=400, detail="missing q parameter")
    try:
        provider = SerpApiClient.from_settings()
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=exc.message) from exc
    try:
        upstream = await provider.locations(q.strip())
    except UpstreamProviderError as exc:
        raise HTTPException(status_code=502, detail=exc.message) from exc
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type="application/json",
    )
