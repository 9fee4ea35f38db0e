"""
BakerPay - automated reward payouts for a Tezos baker.

Key features:
- ed25519 wallets from mnemonics, edsk keys/seeds and edesk encrypted seeds
- Base58Check encoding with Tezos prefix tags
- Batched transfer forging with a single running counter per call
- Watermarked BLAKE2b + ed25519 operation signing
- Pre-apply validation before anything is returned for injection
- Cycle-rollover scheduler feeding a single-worker payout queue
"""

__version__ = "1.0.0"
__all__ = [
    "encoding",
    "errors",
    "wallet",
    "signer",
    "forge",
    "payout",
    "payout_queue",
    "scheduler",
    "rpc",
    "rewards",
    "config",
    "logging_config",
    "server",
]
