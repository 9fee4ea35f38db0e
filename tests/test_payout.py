"""
Tests for bakerpay_core.payout — payments, payout jobs and the executor.

Covers:
  - Integral mutez amounts (no floating point rounding)
  - Payout immutability
  - PayoutExecutor: inject in order, dry runs, forger and injection
    failures, confirmation waits between injections
"""

import dataclasses
from decimal import Decimal

import pytest

from bakerpay_core.forge import BatchForger
from bakerpay_core.payout import (
    Payment,
    Payout,
    PayoutExecutor,
    PayoutResult,
    PayoutStatus,
    to_mutez,
)


def _payout(wallet, amounts, **kw):
    payments = [Payment(f"tz1dest{i:029d}", a) for i, a in enumerate(amounts)]
    return Payout(cycle=100, payments=payments, wallet=wallet, fee=1420, gas_limit=10600, **kw)


def _executor(node, batch_size=100):
    return PayoutExecutor(node, BatchForger(node, batch_size=batch_size),
                          confirmation_interval=0, confirmation_attempts=3)


# ═══════════════════════════════════════════════════════════════════
#  Amounts
# ═══════════════════════════════════════════════════════════════════

class TestAmounts:
    def test_int(self):
        assert to_mutez(1_000_000) == 1_000_000

    def test_integral_float_and_decimal(self):
        assert to_mutez(25.0) == 25
        assert to_mutez(Decimal("1200")) == 1200
        assert to_mutez("7") == 7

    @pytest.mark.parametrize("bad", [0.5, Decimal("10.01"), "1.5", "ten", float("inf")])
    def test_fractional_rejected(self, bad):
        with pytest.raises(ValueError):
            to_mutez(bad)

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            Payment("tz1abc", -1)

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_mutez(True)

    def test_zero_is_valid(self):
        assert Payment("tz1abc", 0).amount == 0

    def test_payment_normalises_amount(self):
        p = Payment("tz1abc", 3.0)
        assert p.amount == 3
        assert isinstance(p.amount, int)

    def test_destination_required(self):
        with pytest.raises(ValueError):
            Payment("", 1)


class TestPayout:
    def test_payments_frozen_as_tuple(self, wallet):
        payout = _payout(wallet, [1, 2])
        assert isinstance(payout.payments, tuple)
        with pytest.raises(dataclasses.FrozenInstanceError):
            payout.cycle = 101

    def test_total(self, wallet):
        assert _payout(wallet, [1, 0, 5]).total == 6

    def test_repr_hides_wallet(self, wallet):
        assert wallet.address not in repr(_payout(wallet, [1]))

    def test_result_ok(self):
        assert PayoutResult(cycle=1, status=PayoutStatus.SUBMITTED).ok
        assert not PayoutResult(cycle=1, status=PayoutStatus.FAILED).ok


# ═══════════════════════════════════════════════════════════════════
#  Executor
# ═══════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
class TestPayoutExecutor:

    async def test_injects_every_batch_in_order(self, node, wallet):
        result = await _executor(node, batch_size=1)(_payout(wallet, [1, 2, 3]))
        assert result.status is PayoutStatus.SUBMITTED
        assert result.operation_hashes == ["oo0000", "oo0001", "oo0002"]
        assert node.injected == result.operations

    async def test_dry_run_does_not_inject(self, node, wallet):
        result = await _executor(node)(_payout(wallet, [1, 2], inject=False))
        assert result.ok
        assert len(result.operations) == 1
        assert node.injected == []

    async def test_forger_failure_injects_nothing(self, node, wallet):
        node.fail_preapply_on = {1}
        result = await _executor(node, batch_size=1)(_payout(wallet, [1, 2, 3]))
        assert result.status is PayoutStatus.FAILED
        assert "pre-apply" in result.error
        assert len(result.operations) == 1
        assert node.injected == []

    async def test_non_hex_forge_result_reported_with_partial_operations(self, node, wallet):
        node.junk_forge_on = {1}
        result = await _executor(node, batch_size=1)(_payout(wallet, [1, 2, 3]))
        assert result.status is PayoutStatus.FAILED
        assert len(result.operations) == 1
        assert node.injected == []

    async def test_injection_failure_stops(self, node, wallet):
        node.fail_inject_on = {1}
        result = await _executor(node, batch_size=1)(_payout(wallet, [1, 2, 3]))
        assert result.status is PayoutStatus.FAILED
        assert result.operation_hashes == ["oo0000"]
        assert len(node.injected) == 2

    async def test_verbose_waits_for_confirmation(self, node, wallet):
        executor = _executor(node, batch_size=1)
        seen = []
        original = executor.wait_for_confirmation

        async def _tracking(op_hash):
            seen.append(op_hash)
            return await original(op_hash)

        executor.wait_for_confirmation = _tracking
        result = await executor(_payout(wallet, [1, 2, 3], verbose=True))
        assert result.ok
        # waits in between injections, not after the last one
        assert seen == ["oo0000", "oo0001"]

    async def test_confirmation_gives_up(self, node, wallet):
        executor = _executor(node)
        assert not await executor.wait_for_confirmation("ooMissing")

    async def test_confirmation_found(self, node):
        node.included.append("ooPresent")
        assert await _executor(node).wait_for_confirmation("ooPresent")
