"""
Shared pytest fixtures for the BakerPay test suite.
"""

import hashlib
import json

import pytest

from bakerpay_core.errors import NodeRequestError, ValidationError
from bakerpay_core.payout import Payment
from bakerpay_core.rpc import BlockHead
from bakerpay_core.wallet import Wallet

MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
OTHER_MNEMONIC = (
    "legal winner thank year wave sausage worth useful "
    "legal winner thank yellow"
)

BRANCH = "BLockGenesisGenesisGenesisGenesisGenesisf79b5d1CoW2"
PROTOCOL = "PtParisBxoLz5gzMmn3d9WBQNoPSZakgnkMC2VNuQ3KXfUtUQeZ"


class FakeNode:
    """In-memory stand-in for NodeClient that records every call."""

    def __init__(self, cycle: int = 100, counter: int = 41):
        self.cycle = cycle
        self.counter_value = counter
        self.head_calls = 0
        self.counter_calls: list[str] = []
        self.forged: list[tuple[str, list[dict]]] = []
        self.preapplied: list[dict] = []
        self.injected: list[str] = []
        self.included: list[str] = []
        self.fail_head = False
        self.fail_forge_on: set[int] = set()
        self.junk_forge_on: set[int] = set()
        self.fail_preapply_on: set[int] = set()
        self.fail_inject_on: set[int] = set()

    async def head(self) -> BlockHead:
        self.head_calls += 1
        if self.fail_head:
            raise NodeRequestError("GET head failed: connection refused")
        return BlockHead(hash=BRANCH, protocol=PROTOCOL, level=self.cycle * 4096, cycle=self.cycle)

    async def counter(self, address: str) -> int:
        self.counter_calls.append(address)
        return self.counter_value

    async def forge_operations(self, branch: str, contents: list[dict]) -> str:
        idx = len(self.forged)
        self.forged.append((branch, contents))
        if idx in self.fail_forge_on:
            raise NodeRequestError("POST forge returned HTTP 500", status=500)
        if idx in self.junk_forge_on:
            return "<html>oops</html>"
        return hashlib.sha256(json.dumps([branch, contents], sort_keys=True).encode()).hexdigest()

    async def preapply_operations(self, protocol, branch, contents, signature):
        idx = len(self.preapplied)
        self.preapplied.append({
            "protocol": protocol,
            "branch": branch,
            "contents": contents,
            "signature": signature,
        })
        if idx in self.fail_preapply_on:
            raise ValidationError("balance_too_low")
        return [{"contents": [{"metadata": {"operation_result": {"status": "applied"}}} for _ in contents]}]

    async def inject_operation(self, payload: str) -> str:
        idx = len(self.injected)
        self.injected.append(payload)
        if idx in self.fail_inject_on:
            raise NodeRequestError("POST injection returned HTTP 500", status=500)
        op_hash = f"oo{idx:04d}"
        self.included.append(op_hash)
        return op_hash

    async def operation_hashes(self) -> list[str]:
        return list(self.included)


@pytest.fixture
def wallet():
    """Deterministic wallet derived from the BIP-39 test mnemonic."""
    return Wallet.create(MNEMONIC)


@pytest.fixture
def other_wallet():
    """A second, unrelated deterministic wallet."""
    return Wallet.create(OTHER_MNEMONIC)


@pytest.fixture
def node():
    """Fresh fake node at cycle 100 with on-chain counter 41."""
    return FakeNode()


@pytest.fixture
def payments():
    """Five payments, two of them zero-amount."""
    return [
        Payment("tz1a1111111111111111111111111111111", 1_000_000),
        Payment("tz1b2222222222222222222222222222222", 0),
        Payment("tz1c3333333333333333333333333333333", 250_000),
        Payment("tz1d4444444444444444444444444444444", 0),
        Payment("tz1e5555555555555555555555555555555", 42),
    ]


@pytest.fixture
def node_factory():
    """The FakeNode class, for tests that need custom cycle/counter values."""
    return FakeNode
