"""
Batch forging of payment operations.

Payments are split into batches of bounded size; every batch becomes one
operation group of ``transaction`` contents.  All groups of a call share the
same branch and a single running counter that starts at the wallet's
on-chain counter + 1 and is never reset between batches.

Each group is forged by the node, signed locally, and pre-applied by the
node before its injectable payload is accepted.  The first failure stops
the call; payloads already accepted travel with the raised error.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from bakerpay_core.errors import HexDecodeError, NodeError, NodeRequestError, ValidationError
from bakerpay_core.payout import Payment
from bakerpay_core.signer import sign_operation, signed_payload
from bakerpay_core.wallet import Wallet

logger = logging.getLogger("bakerpay.forge")

DEFAULT_BATCH_SIZE = 100


def split_batches(payments: list[Payment], batch_size: int) -> list[list[Payment]]:
    """Partition *payments* into consecutive batches, preserving order."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [payments[i:i + batch_size] for i in range(0, len(payments), batch_size)]


def build_contents(
    batch: Iterable[Payment],
    source: str,
    counter: int,
    fee: int,
    gas_limit: int,
    storage_limit: int = 0,
) -> tuple[list[dict], int]:
    """
    Build ``transaction`` contents for *batch* starting at *counter*.

    Payments of zero mutez are skipped and consume no counter.  Returns the
    contents and the next unused counter.
    """
    contents: list[dict] = []
    for payment in batch:
        if payment.amount <= 0:
            continue
        contents.append({
            "kind": "transaction",
            "source": source,
            "fee": str(fee),
            "counter": str(counter),
            "gas_limit": str(gas_limit),
            "storage_limit": str(storage_limit),
            "amount": str(payment.amount),
            "destination": payment.destination,
        })
        counter += 1
    return contents, counter


class BatchForger:
    """Turns a payment list into signed, pre-applied, injectable operations."""

    def __init__(self, node: Any, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.node = node
        self.batch_size = batch_size

    async def create_batch_payment(
        self,
        payments: list[Payment],
        wallet: Wallet,
        fee: int,
        gas_limit: int,
        storage_limit: int = 0,
    ) -> list[str]:
        """
        Forge, sign and pre-apply *payments* in batches.

        Returns one injectable hex payload per non-empty batch.  Raises
        NodeRequestError or ValidationError on the first failing batch, with
        ``.operations`` set to the payloads produced before it.
        """
        operations: list[str] = []

        try:
            head = await self.node.head()
            counter = await self.node.counter(wallet.address) + 1
        except NodeError as exc:
            raise NodeRequestError(f"Unable to fetch branch and counter: {exc}") from exc

        batches = split_batches(list(payments), self.batch_size)
        logger.debug(
            f"Creating {len(batches)} batches for {len(payments)} payments "
            f"from {wallet.address} (branch {head.hash}, counter {counter})"
        )

        for k, batch in enumerate(batches):
            contents, next_counter = build_contents(
                batch, wallet.address, counter, fee, gas_limit, storage_limit,
            )
            if not contents:
                logger.debug(f"Batch {k} has only zero-amount payments, skipping")
                continue

            try:
                forged = await self.node.forge_operations(head.hash, contents)
            except NodeError as exc:
                raise NodeRequestError(
                    f"Forging batch {k} failed: {exc}", operations=operations,
                ) from exc

            try:
                edsig = sign_operation(forged, wallet)
            except HexDecodeError as exc:
                raise NodeRequestError(
                    f"Forged bytes for batch {k} are not valid hex: {exc}", operations=operations,
                ) from exc

            try:
                await self.node.preapply_operations(head.protocol, head.hash, contents, edsig)
            except ValidationError as exc:
                raise ValidationError(
                    f"Batch {k} failed to pre-apply: {exc}", operations=operations,
                ) from exc
            except NodeError as exc:
                raise NodeRequestError(
                    f"Pre-apply request for batch {k} failed: {exc}", operations=operations,
                ) from exc

            operations.append(signed_payload(forged, edsig))
            counter = next_counter
            logger.debug(f"Batch {k}: {len(contents)} transactions signed and pre-applied")

        return operations
