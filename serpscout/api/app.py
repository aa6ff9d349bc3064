"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging and warms the process-wide blacklist
cache so the first request does not pay for the file read.

Routers
-------
All endpoints are mounted under ``/api``:

    POST /api/run-search        batch scan
    GET  /api/run-search-sse    streamed scan (Server-Sent Events)
    POST /api/retry-scrape      re-fetch a single row
    GET  /api/proxy-locations   location autocomplete passthrough

Malformed input is reported as 400 (FastAPI's default 422 is re-mapped).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from serpscout import __version__
from serpscout.log import configure_logging
from serpscout.scraper.blacklist import get_blacklist

from serpscout.api.routers import locations as locations_router
from serpscout.api.routers import retry as retry_router
from serpscout.api.routers import search as search_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Warm the blacklist cache on startup."""
    get_blacklist()
    yield


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"detail": f"malformed request ({problems})"})


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    configure_logging()
    app = FastAPI(
        title="serp-scout API",
        description=(
            "Fetches the ranked competitor pages for a keyword and location and "
            "extracts title, meta description, first heading, word count and "
            "response time from each, as a batch or as a Server-Sent Event stream."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # The static front end is served from a different origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(search_router.router, prefix="/api", tags=["search"])
    app.include_router(retry_router.router, prefix="/api", tags=["retry"])
    app.include_router(locations_router.router, prefix="/api", tags=["locations"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn serpscout.api.app:app --reload
app = create_app()
