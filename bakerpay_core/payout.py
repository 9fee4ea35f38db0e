"""
Payout jobs and their execution.

A :class:`Payout` is everything needed to pay one closed cycle: the list of
payments, the paying wallet and the fee settings.  The
:class:`PayoutExecutor` is what the payout queue runs for each job: it asks
the batch forger for signed operations and, when the job says so, injects
them one after another.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any

from bakerpay_core.errors import NodeError

if TYPE_CHECKING:
    from bakerpay_core.forge import BatchForger
    from bakerpay_core.wallet import Wallet

logger = logging.getLogger("bakerpay.payout")


def to_mutez(value: Any) -> int:
    """Coerce *value* to a whole, non-negative number of mutez."""
    if isinstance(value, bool):
        raise ValueError("Amount must be a number, not a bool")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, (float, Decimal, str)):
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Amount {value!r} is not a number") from None
        if not dec.is_finite() or dec != dec.to_integral_value():
            raise ValueError(f"Amount {value!r} is not a whole number of mutez")
        amount = int(dec)
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {amount}")
    return amount


@dataclass(frozen=True)
class Payment:
    """A single transfer of *amount* mutez to *destination*."""
    destination: str
    amount: int

    def __post_init__(self):
        if not self.destination:
            raise ValueError("Payment destination is required")
        object.__setattr__(self, "amount", to_mutez(self.amount))


@dataclass(frozen=True)
class Payout:
    """One cycle's payout job.  Immutable once enqueued."""
    cycle: int
    payments: tuple[Payment, ...]
    wallet: Wallet = field(repr=False)
    fee: int
    gas_limit: int
    storage_limit: int = 0
    inject: bool = True
    verbose: bool = False

    def __post_init__(self):
        object.__setattr__(self, "payments", tuple(self.payments))

    @property
    def total(self) -> int:
        return sum(p.amount for p in self.payments)


class PayoutStatus(str, Enum):
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass
class PayoutResult:
    """Outcome of processing one payout, handed to the queue's notifier."""
    cycle: int
    status: PayoutStatus
    operations: list[str] = field(default_factory=list)
    operation_hashes: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is PayoutStatus.SUBMITTED


class PayoutExecutor:
    """
    Processes a payout end to end: forge/sign/pre-apply, then inject.

    When the payout is verbose, each injected operation is waited on until
    it shows up in the head block before the next one is injected.
    """

    def __init__(
        self,
        node: Any,
        forger: BatchForger,
        confirmation_interval: float = 10.0,
        confirmation_attempts: int = 30,
    ):
        self.node = node
        self.forger = forger
        self.confirmation_interval = confirmation_interval
        self.confirmation_attempts = confirmation_attempts

    async def __call__(self, payout: Payout) -> PayoutResult:
        logger.info(
            f"Processing payout for cycle {payout.cycle}: "
            f"{len(payout.payments)} payments, {payout.total} mutez"
        )
        try:
            operations = await self.forger.create_batch_payment(
                list(payout.payments),
                payout.wallet,
                payout.fee,
                payout.gas_limit,
                payout.storage_limit,
            )
        except NodeError as exc:
            logger.error(f"Cycle {payout.cycle}: batch creation failed: {exc}")
            return PayoutResult(
                cycle=payout.cycle,
                status=PayoutStatus.FAILED,
                operations=exc.operations,
                error=str(exc),
            )

        result = PayoutResult(cycle=payout.cycle, status=PayoutStatus.SUBMITTED, operations=operations)
        if not payout.inject:
            logger.info(f"Cycle {payout.cycle}: {len(operations)} operations prepared (injection disabled)")
            return result

        for i, op in enumerate(operations, start=1):
            try:
                op_hash = await self.node.inject_operation(op)
            except NodeError as exc:
                logger.error(f"Cycle {payout.cycle}: injection {i}/{len(operations)} failed: {exc}")
                result.status = PayoutStatus.FAILED
                result.error = str(exc)
                return result
            result.operation_hashes.append(op_hash)
            logger.info(f"Cycle {payout.cycle}: injected operation {i}/{len(operations)}: {op_hash}")
            if payout.verbose and i < len(operations):
                await self.wait_for_confirmation(op_hash)
        return result

    async def wait_for_confirmation(self, op_hash: str) -> bool:
        """Poll head blocks until *op_hash* is included.  Returns False on give-up."""
        for _ in range(self.confirmation_attempts):
            await asyncio.sleep(self.confirmation_interval)
            try:
                included = op_hash in await self.node.operation_hashes()
            except NodeError as exc:
                logger.warning(f"Could not check confirmation of {op_hash}: {exc}")
                continue
            if included:
                logger.info(f"Operation {op_hash} confirmed")
                return True
        logger.warning(f"Operation {op_hash} not seen after {self.confirmation_attempts} checks")
        return False
