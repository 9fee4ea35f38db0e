"""
Single-worker payout queue.

Payouts are processed strictly one at a time, in the order they were
enqueued.  Two payouts from the same wallet must never interleave their
counters, so there is exactly one worker task and it finishes a job
(including every node round-trip) before taking the next.

Every job ends in exactly one :class:`PayoutResult` delivered to the
notifier.  Failures are reported, never retried, and never stop the worker.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

from bakerpay_core.payout import Payout, PayoutResult, PayoutStatus

logger = logging.getLogger("bakerpay.queue")

Processor = Callable[[Payout], Awaitable[PayoutResult]]
Notifier = Callable[[PayoutResult], Union[None, Awaitable[None]]]


class PayoutQueue:
    """FIFO of payouts drained by a single asyncio worker task."""

    def __init__(self, processor: Processor, notifier: Notifier | None = None):
        self._processor = processor
        self._notifier = notifier
        self._queue: asyncio.Queue[Payout] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._current: Payout | None = None
        self.processed = 0

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the worker.  Must be called from a running event loop."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._worker(), name="payout-queue-worker")
        logger.info("Payout queue started")

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Payout queue stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Producer side ────────────────────────────────────────────────

    def enqueue(self, payout: Payout) -> None:
        """Append *payout* to the queue without blocking."""
        self._queue.put_nowait(payout)
        logger.info(f"Queued payout for cycle {payout.cycle} ({self._queue.qsize()} pending)")

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def current(self) -> Payout | None:
        """The payout being processed right now, if any."""
        return self._current

    async def join(self) -> None:
        """Wait until every payout enqueued so far has been fully processed."""
        await self._queue.join()

    # ── Worker ───────────────────────────────────────────────────────

    async def _worker(self) -> None:
        while True:
            payout = await self._queue.get()
            self._current = payout
            try:
                result = await self._process(payout)
                await self._notify(result)
            finally:
                self._current = None
                self.processed += 1
                self._queue.task_done()

    async def _process(self, payout: Payout) -> PayoutResult:
        try:
            return await self._processor(payout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception(f"Payout for cycle {payout.cycle} failed")
            return PayoutResult(cycle=payout.cycle, status=PayoutStatus.FAILED, error=str(exc))

    async def _notify(self, result: PayoutResult) -> None:
        if self._notifier is None:
            return
        try:
            outcome = self._notifier(result)
            if inspect.isawaitable(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Notifier failed for cycle {result.cycle}")
