"""Scrape orchestration: run context, pool, emitter and pipeline."""

from serpscout.engine.context import RunContext
from serpscout.engine.pipeline import retry_one, run_batch, stream_events
from serpscout.engine.scheduler import ScrapePool

__all__ = ["RunContext", "ScrapePool", "retry_one", "run_batch", "stream_events"]
