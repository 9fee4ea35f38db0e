"""
Payout server: wires the scheduler, queue, forger and node client together.

    config -> wallet -> NodeClient -> BatchForger -> PayoutExecutor
           -> PayoutQueue (one worker) <- CycleScheduler (polling loop)
"""

from __future__ import annotations

import logging
from typing import Any

from bakerpay_core.config import BakerPayConfig
from bakerpay_core.forge import BatchForger
from bakerpay_core.payout import Payout, PayoutExecutor, PayoutResult
from bakerpay_core.payout_queue import PayoutQueue
from bakerpay_core.rewards import JSONRewardSource
from bakerpay_core.rpc import NodeClient
from bakerpay_core.scheduler import CycleScheduler
from bakerpay_core.wallet import Wallet, load_wallet

logger = logging.getLogger("bakerpay.server")


class PayoutServer:
    """Long-running service that pays out cycle by cycle."""

    def __init__(
        self,
        config: BakerPayConfig,
        verbose: bool = True,
        *,
        wallet: Wallet | None = None,
        node: Any = None,
        reward_source: Any = None,
    ):
        self.config = config
        self.verbose = verbose
        self.wallet = wallet or load_wallet(config.wallet)
        self.node = node or NodeClient(config.node.rpc_url, timeout=config.node.timeout)
        self.reward_source = reward_source or JSONRewardSource(config.rewards.payments_dir)

        self.forger = BatchForger(self.node, batch_size=config.payout.batch_size)
        self.executor = PayoutExecutor(
            self.node,
            self.forger,
            confirmation_interval=config.payout.confirmation_interval,
            confirmation_attempts=config.payout.confirmation_attempts,
        )
        self.queue = PayoutQueue(self.executor, self.notify)
        self.scheduler = CycleScheduler(
            self.node,
            self.queue,
            self.build_payout,
            interval=config.scheduler.interval_seconds,
        )

    def build_payout(self, cycle: int) -> Payout:
        """Payout job for a closed *cycle*, using the configured reward source."""
        pc = self.config.payout
        return Payout(
            cycle=cycle,
            payments=tuple(self.reward_source.payments_for_cycle(cycle)),
            wallet=self.wallet,
            fee=pc.fee,
            gas_limit=pc.gas_limit,
            storage_limit=pc.storage_limit,
            inject=pc.inject,
            verbose=self.verbose,
        )

    def notify(self, result: PayoutResult) -> None:
        if result.ok:
            logger.info(
                f"Payout for cycle {result.cycle} submitted: "
                f"{len(result.operations)} operations, hashes={result.operation_hashes}"
            )
        else:
            logger.error(
                f"Payout for cycle {result.cycle} failed: {result.error} "
                f"({len(result.operations)} operations were prepared, "
                f"{len(result.operation_hashes)} injected)"
            )

    async def start(self) -> None:
        """Run until cancelled.  A fatal scheduler error propagates."""
        logger.info(f"Starting payout server for {self.wallet.address} against {self.config.node.rpc_url}")
        self.queue.start()
        try:
            await self.scheduler.run()
        finally:
            await self.stop()

    async def stop(self) -> None:
        await self.queue.stop()
        close = getattr(self.node, "close", None)
        if close is not None:
            await close()
        self.wallet.wipe()
