"""Single-row retry endpoint.

Routes
------
POST /api/retry-scrape    Body: {"url": "https://..."}

Always answers 200 once the input is valid: a failed re-fetch is reported as
``{"result": {"finalUrl": ..., "error": ...}}`` so the caller renders "retry
failed" without a network-error code path.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from serpscout.engine.pipeline import retry_one

logger = logging.getLogger(__name__)

router = APIRouter()


class RetryRequest(BaseModel):
    url: str = ""


@router.post("/retry-scrape")
async def retry_scrape(body: RetryRequest) -> dict[str, Any]:
    """Re-fetch *url* with generous timeouts and return one cleaned row."""
    url = body.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="missing url")
    try:
        return await retry_one(url)
    except Exception as exc:
        logger.exception("[RETRY] unexpected failure for %s", url)
        return {"result": {"finalUrl": url, "error": str(exc), "errorKind": "internal"}}
