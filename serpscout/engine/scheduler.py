"""Bounded scrape pool with a global admission deadline.

``ScrapePool.run`` is an async generator: ``pool_size`` workers drain a FIFO
queue of requests (lowest rank first) and push each ``(request, outcome)``
onto a fan-in queue the moment it is known, so callers see early results
long before the slowest fetch resolves.

Deadline semantics
------------------
* Once ``context.deadline`` has elapsed, workers stop taking new requests
  and skip the slow-tier escalation.
* Fetches already in flight keep running under their own per-attempt
  timeouts and are still delivered if they finish.
* At ``deadline + drain_grace`` the run closes without waiting further; any
  stragglers are cancelled and show up as ``abandoned`` in the summary.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence

from serpscout.engine.context import RunContext
from serpscout.scraper.fetcher import FetchTimeouts
from serpscout.scraper.models import Failed, FetchOutcome, FetchRequest, Success

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, FetchTimeouts], Awaitable[FetchOutcome]]
_Item = Optional[tuple[FetchRequest, FetchOutcome]]


class ScrapePool:
    """Run a fetcher over many requests with bounded concurrency.

    Args:
        fetcher: ``async (url, timeouts) -> FetchOutcome``.  Expected not to
            raise; an unexpected exception becomes a ``Failed`` outcome.
        pool_size: Maximum concurrent fetcher invocations.
        tiers: Timeout pairs tried in order.  A later tier runs whenever the
            previous one ended in ``Failed`` or ``Blocked``.
        context: The run's clock and bookkeeping.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        pool_size: int,
        tiers: Sequence[FetchTimeouts],
        context: RunContext,
    ) -> None:
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        if not tiers:
            raise ValueError("at least one timeout tier is required")
        self.fetcher = fetcher
        self.pool_size = pool_size
        self.tiers = tuple(tiers)
        self.context = context
        self._deadline_noted = False

    # ------------------------------------------------------------------
    # One request
    # ------------------------------------------------------------------
    async def _invoke(self, request: FetchRequest, timeouts: FetchTimeouts) -> FetchOutcome:
        try:
            return await self.fetcher(request.url, timeouts)
        except Exception as exc:
            logger.exception("[POOL] fetcher raised for rank %d (%s)", request.rank, request.url)
            return Failed(url=request.url, error_message=f"scrape failed: {exc}", error_kind="internal")

    async def _fetch(self, request: FetchRequest) -> FetchOutcome:
        outcome = await self._invoke(request, self.tiers[0])
        for timeouts in self.tiers[1:]:
            if isinstance(outcome, Success) or self.context.deadline_passed():
                break
            logger.info("[POOL] rank %d %s on fast tier; retrying with %gs/%gs",
                        request.rank, outcome.kind, timeouts.fetch, timeouts.body)
            self.context.escalate(request)
            outcome = await self._invoke(request, timeouts)
        return outcome

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------
    async def _worker(
        self,
        pending: "asyncio.Queue[FetchRequest]",
        done: "asyncio.Queue[_Item]",
    ) -> None:
        while True:
            if self.context.deadline_passed():
                if not pending.empty() and not self._deadline_noted:
                    self._deadline_noted = True
                    logger.warning("[POOL] global deadline reached; %d request(s) not started",
                                   pending.qsize())
                    self.context.record("deadline_reached", not_started=pending.qsize())
                return
            try:
                request = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            self.context.admit(request)
            outcome = await self._fetch(request)
            self.context.complete(request, outcome)
            done.put_nowait((request, outcome))

    @staticmethod
    async def _signal_when_idle(
        workers: list["asyncio.Task[None]"],
        done: "asyncio.Queue[_Item]",
    ) -> None:
        await asyncio.gather(*workers, return_exceptions=True)
        done.put_nowait(None)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run(
        self, requests: Sequence[FetchRequest]
    ) -> AsyncIterator[tuple[FetchRequest, FetchOutcome]]:
        """Yield ``(request, outcome)`` pairs in completion order."""
        if not requests:
            return

        pending: asyncio.Queue[FetchRequest] = asyncio.Queue()
        for request in requests:
            pending.put_nowait(request)
        done: asyncio.Queue[_Item] = asyncio.Queue()

        workers = [
            asyncio.create_task(self._worker(pending, done))
            for _ in range(min(self.pool_size, len(requests)))
        ]
        watcher = asyncio.create_task(self._signal_when_idle(workers, done))
        logger.info("[POOL] %d request(s), %d worker(s)", len(requests), len(workers))

        try:
            while True:
                try:
                    item = done.get_nowait()
                except asyncio.QueueEmpty:
                    budget = self.context.close_in()
                    if budget <= 0:
                        item = None
                        self._close_early()
                    else:
                        try:
                            item = await asyncio.wait_for(done.get(), timeout=budget)
                        except asyncio.TimeoutError:
                            item = None
                            self._close_early()
                if item is None:
                    break
                yield item
        finally:
            for task in (*workers, watcher):
                task.cancel()
            await asyncio.gather(*workers, watcher, return_exceptions=True)

    def _close_early(self) -> None:
        in_flight = self.context.counters["admitted"] - self.context.counters["completed"]
        logger.warning("[POOL] closing run with %d fetch(es) still in flight", in_flight)
        self.context.record("closed_with_stragglers", in_flight=in_flight)
