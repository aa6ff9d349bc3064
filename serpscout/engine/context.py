"""Per-run orchestration context.

One :class:`RunContext` is created per search request and handed explicitly
to the pool and the pipeline.  Timing and counters are plain fields and the
timeline is a list of dicts, so tests assert on them directly instead of
scraping log output.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from serpscout.config import settings
from serpscout.scraper.models import Blocked, Failed, FetchOutcome, FetchRequest, Success

_COUNTERS = ("admitted", "completed", "successful", "blocked", "failed", "escalated")


@dataclass
class RunContext:
    deadline: float
    drain_grace: float = 0.0
    started_at: float = field(default_factory=time.monotonic)
    counters: dict[str, int] = field(default_factory=lambda: dict.fromkeys(_COUNTERS, 0))
    admitted_ranks: list[int] = field(default_factory=list)
    events: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_settings(cls) -> "RunContext":
        return cls(deadline=settings.global_deadline, drain_grace=settings.drain_grace)

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def elapsed_ms(self) -> int:
        return int(self.elapsed() * 1000)

    def deadline_passed(self) -> bool:
        """``True`` once no new work may be admitted."""
        return self.elapsed() >= self.deadline

    def close_in(self) -> float:
        """Seconds until the run may close without waiting for stragglers."""
        return self.deadline + self.drain_grace - self.elapsed()

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def record(self, event: str, **fields: Any) -> None:
        self.events.append({"event": event, "elapsed_ms": self.elapsed_ms(), **fields})

    def admit(self, request: FetchRequest) -> None:
        self.counters["admitted"] += 1
        self.admitted_ranks.append(request.rank)
        self.record("admitted", rank=request.rank, url=request.url)

    def escalate(self, request: FetchRequest) -> None:
        self.counters["escalated"] += 1
        self.record("escalated", rank=request.rank)

    def complete(self, request: FetchRequest, outcome: FetchOutcome) -> None:
        self.counters["completed"] += 1
        if isinstance(outcome, Success):
            self.counters["successful"] += 1
        elif isinstance(outcome, Blocked):
            self.counters["blocked"] += 1
        elif isinstance(outcome, Failed):
            self.counters["failed"] += 1
        else:
            raise TypeError(f"unknown fetch outcome: {outcome!r}")
        self.record(
            "completed",
            rank=request.rank,
            kind=outcome.kind,
            response_time_ms=outcome.response_time_ms,
        )
