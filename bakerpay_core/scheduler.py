"""
Cycle scheduler.

Polls the node's head block on a fixed interval and, whenever the cycle
number advances, enqueues a payout for the cycle that just closed.

The first observation only records the cycle; there is no default starting
value that could trigger a payout by accident.  A failed head fetch is
logged and retried on the next tick.  A failure to build the payout itself
is fatal: it points at a configuration or wallet problem that would recur
on every tick.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable

from bakerpay_core.errors import NodeError
from bakerpay_core.payout import Payout
from bakerpay_core.payout_queue import PayoutQueue

logger = logging.getLogger("bakerpay.scheduler")

DEFAULT_INTERVAL = 60.0


class SchedulerState(str, Enum):
    AWAITING_TICK = "awaiting-tick"
    PROCESSING_ROLLOVER = "processing-rollover"


class CycleScheduler:
    """Detects cycle rollovers and feeds the payout queue."""

    def __init__(
        self,
        node: Any,
        queue: PayoutQueue,
        payout_factory: Callable[[int], Payout],
        interval: float = DEFAULT_INTERVAL,
    ):
        self.node = node
        self.queue = queue
        self.payout_factory = payout_factory
        self.interval = interval
        self.state = SchedulerState.AWAITING_TICK
        self._current_cycle: int | None = None

    @property
    def current_cycle(self) -> int | None:
        return self._current_cycle

    async def tick(self) -> Payout | None:
        """
        Run one poll.  Returns the payout that was enqueued, if any.

        Exceptions from the payout factory propagate.
        """
        try:
            head = await self.node.head()
        except NodeError as exc:
            logger.error(f"Failed to get current cycle: {exc}")
            return None

        if self._current_cycle is None:
            self._current_cycle = head.cycle
            logger.info(f"Current cycle: {head.cycle}")
            return None

        if head.cycle <= self._current_cycle:
            return None

        closed = self._current_cycle
        self.state = SchedulerState.PROCESSING_ROLLOVER
        try:
            try:
                payout = self.payout_factory(closed)
            except Exception:
                logger.critical(f"Failed to initialize payout for cycle {closed}")
                raise
            logger.info(f"Adding payout for cycle {closed} to queue")
            self.queue.enqueue(payout)
            self._current_cycle = head.cycle
            logger.info(f"New current cycle: {head.cycle}")
        finally:
            self.state = SchedulerState.AWAITING_TICK
        return payout

    async def run(self) -> None:
        """Tick forever, ``interval`` seconds apart."""
        logger.info(f"Cycle scheduler polling every {self.interval:.0f}s")
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)
