"""Turn fetch outcomes into display rows, placeholders, summaries and SSE frames."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from serpscout.config import settings
from serpscout.engine.context import RunContext
from serpscout.errors import BlockedError
from serpscout.scraper.models import (
    Blocked,
    CleanedResult,
    Failed,
    FetchOutcome,
    FetchRequest,
    RunSummary,
    Success,
)
from serpscout.scraper.text import clean_text, domain_from_url

KEEPALIVE_COMMENT = ": keep-alive\n\n"

PLACEHOLDER_DESCRIPTION = "Excluded from competitor view. Toggle 'Show Listicles' to include."


@dataclass(frozen=True)
class TextLimits:
    """Maximum display lengths for cleaned text fields."""

    title: int = 120
    meta: int = 160
    h1: int = 100

    @classmethod
    def from_settings(cls) -> "TextLimits":
        return cls(
            title=settings.title_max_len,
            meta=settings.meta_max_len,
            h1=settings.h1_max_len,
        )


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

def clean_outcome(
    request: Optional[FetchRequest],
    outcome: FetchOutcome,
    limits: Optional[TextLimits] = None,
) -> CleanedResult:
    """Build the display row for *outcome*.

    *request* is ``None`` for a retry-one-row fetch, in which case the row has
    no rank and the brand is taken from the final URL.
    """
    limits = limits or TextLimits.from_settings()
    rank = request.rank if request else None
    url = request.url if request else None

    if isinstance(outcome, Success):
        brand = (request.brand if request else "") or domain_from_url(outcome.final_url)
        return CleanedResult(
            rank=rank,
            brand=brand,
            permalink=outcome.final_url,
            status="ok",
            final_url=outcome.final_url,
            response_time_ms=outcome.response_time_ms,
            title_raw=outcome.title_raw,
            title=clean_text(outcome.title_raw, limits.title),
            meta_description_raw=outcome.meta_description_raw,
            meta_description=clean_text(outcome.meta_description_raw, limits.meta),
            h1_raw=outcome.h1_raw,
            h1=clean_text(outcome.h1_raw, limits.h1),
            word_count=outcome.word_count,
        )
    if isinstance(outcome, Blocked):
        return CleanedResult(
            rank=rank,
            brand=(request.brand if request else "") or domain_from_url(outcome.final_url),
            permalink=url or outcome.final_url,
            status="blocked",
            final_url=outcome.final_url,
            response_time_ms=outcome.response_time_ms,
            error=f"Blocked by site ({outcome.reason})",
            error_kind=BlockedError.kind,
        )
    if isinstance(outcome, Failed):
        return CleanedResult(
            rank=rank,
            brand=(request.brand if request else "") or domain_from_url(outcome.url),
            permalink=url or outcome.url,
            status="failed",
            final_url=outcome.url,
            response_time_ms=outcome.response_time_ms,
            error=outcome.error_message,
            error_kind=outcome.error_kind,
        )
    raise TypeError(f"unknown fetch outcome: {outcome!r}")


def blacklist_placeholder(request: FetchRequest) -> CleanedResult:
    """Synthetic row for an excluded host; no network work involved."""
    return CleanedResult(
        rank=request.rank,
        brand=request.brand,
        permalink=request.url,
        status="blacklisted",
        response_time_ms=0,
        title=f"{request.brand} (Directory/Listicle)",
        meta_description=PLACEHOLDER_DESCRIPTION,
        h1="",
        word_count=0,
        is_blacklisted=True,
    )


def sort_by_rank(rows: Iterable[CleanedResult]) -> list[CleanedResult]:
    return sorted(rows, key=lambda r: (r.rank is None, r.rank or 0))


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def build_summary(
    context: RunContext,
    *,
    total: int,
    scraped: int,
    blacklisted: int,
) -> RunSummary:
    """Terminal accounting: separates excluded, not-attempted and abandoned rows."""
    counters = context.counters
    attempted = counters["admitted"]
    completed = counters["completed"]
    return RunSummary(
        total=total,
        scraped=scraped,
        attempted=attempted,
        completed=completed,
        not_attempted=scraped - attempted,
        abandoned=attempted - completed,
        blacklisted=blacklisted,
        successful=counters["successful"],
        blocked=counters["blocked"],
        failed=counters["failed"],
        total_ms=context.elapsed_ms(),
    )


# ---------------------------------------------------------------------------
# SSE framing
# ---------------------------------------------------------------------------

def format_sse(event: str, data: Any) -> str:
    """Format one named Server-Sent Event."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"
