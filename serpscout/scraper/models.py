"""Data models for the scrape pipeline.

``FetchOutcome`` is a closed union of three frozen dataclasses.  Consumers
branch on it with ``isinstance`` and raise ``TypeError`` on anything else, so
adding a variant fails loudly instead of silently falling through.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class FetchRequest:
    """One ranked link headed for the fetcher."""

    url: str
    rank: int
    brand: str


@dataclass(frozen=True)
class Success:
    final_url: str
    response_time_ms: int
    title_raw: Optional[str]
    meta_description_raw: Optional[str]
    h1_raw: Optional[str]
    word_count: int

    kind = "success"


@dataclass(frozen=True)
class Blocked:
    """Bot-defense detected on both the primary and the alternate identity."""

    final_url: str
    response_time_ms: int
    reason: str

    kind = "blocked"


@dataclass(frozen=True)
class Failed:
    """Transport error or timeout.  ``error_kind`` mirrors ``ScoutError.kind``.

    ``phase`` is set for timeouts only: ``"fetch"`` or ``"body"``.
    """

    url: str
    error_message: str
    error_kind: str = "transport"
    response_time_ms: Optional[int] = None
    phase: Optional[str] = None

    kind = "failed"


FetchOutcome = Union[Success, Blocked, Failed]


def outcome_to_dict(request: FetchRequest, outcome: FetchOutcome) -> dict[str, Any]:
    """Serialise a raw outcome for the diagnostics section of a batch response."""
    base: dict[str, Any] = {"rank": request.rank, "url": request.url, "kind": outcome.kind}
    if isinstance(outcome, Success):
        base.update(
            finalUrl=outcome.final_url,
            responseTimeMs=outcome.response_time_ms,
            titleRaw=outcome.title_raw,
            metaDescriptionRaw=outcome.meta_description_raw,
            h1Raw=outcome.h1_raw,
            wordCount=outcome.word_count,
        )
    elif isinstance(outcome, Blocked):
        base.update(
            finalUrl=outcome.final_url,
            responseTimeMs=outcome.response_time_ms,
            error=outcome.reason,
        )
    elif isinstance(outcome, Failed):
        base.update(
            finalUrl=outcome.url,
            responseTimeMs=outcome.response_time_ms,
            error=outcome.error_message,
            errorKind=outcome.error_kind,
            phase=outcome.phase,
        )
    else:
        raise TypeError(f"unknown fetch outcome: {outcome!r}")
    return base


@dataclass
class CleanedResult:
    """A display-ready row.  ``rank`` is ``None`` only for retry-one-row results."""

    rank: Optional[int]
    brand: str
    permalink: str
    status: str  # ok | blocked | failed | blacklisted
    final_url: Optional[str] = None
    response_time_ms: Optional[int] = None
    title_raw: Optional[str] = None
    title: Optional[str] = None
    meta_description_raw: Optional[str] = None
    meta_description: Optional[str] = None
    h1_raw: Optional[str] = None
    h1: Optional[str] = None
    word_count: int = 0
    is_blacklisted: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank,
            "brand": self.brand,
            "permalink": self.permalink,
            "status": self.status,
            "finalUrl": self.final_url,
            "responseTimeMs": self.response_time_ms,
            "titleRaw": self.title_raw,
            "title": self.title,
            "metaDescriptionRaw": self.meta_description_raw,
            "metaDescription": self.meta_description,
            "h1Raw": self.h1_raw,
            "h1": self.h1,
            "wordCount": self.word_count,
            "isBlacklisted": self.is_blacklisted,
            "error": self.error,
            "errorKind": self.error_kind,
        }


@dataclass
class RunSummary:
    """Terminal accounting for one orchestration run."""

    total: int = 0
    scraped: int = 0
    attempted: int = 0
    completed: int = 0
    not_attempted: int = 0
    abandoned: int = 0
    blacklisted: int = 0
    successful: int = 0
    blocked: int = 0
    failed: int = 0
    total_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "scraped": self.scraped,
            "attempted": self.attempted,
            "completed": self.completed,
            "notAttempted": self.not_attempted,
            "abandoned": self.abandoned,
            "blacklisted": self.blacklisted,
            "successful": self.successful,
            "blocked": self.blocked,
            "failed": self.failed,
            "totalMs": self.total_ms,
        }
