"""
TOML-based configuration for BakerPay.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from bakerpay_core.config import load_config
    cfg = load_config("bakerpay.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[import,no-redef]


@dataclass
class NodeConfig:
    """Remote node RPC settings."""
    rpc_url: str = "http://127.0.0.1:8732"
    timeout: float = 30.0


@dataclass
class WalletConfig:
    """Payout wallet.

    Either ``secret_key`` (``edsk`` key or seed, checked against
    ``address`` and ``public_key``) or ``encrypted_secret_key`` (``edesk``,
    opened with ``password``) must be set.  Prefer the environment
    variables over writing secrets into the TOML file.
    """
    address: str = ""
    public_key: str = ""
    secret_key: str = field(default="", repr=False)
    encrypted_secret_key: str = field(default="", repr=False)
    password: str = field(default="", repr=False)


@dataclass
class PayoutConfig:
    """Operation parameters.  All amounts are in mutez."""
    fee: int = 1420
    gas_limit: int = 10600
    storage_limit: int = 0
    batch_size: int = 100
    inject: bool = True
    confirmation_interval: float = 10.0
    confirmation_attempts: int = 30


@dataclass
class SchedulerConfig:
    """Cycle polling."""
    interval_seconds: float = 60.0


@dataclass
class RewardsConfig:
    """Where per-cycle payment lists are read from."""
    payments_dir: str = "data/payments"


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class BakerPayConfig:
    """Top-level configuration container."""
    node: NodeConfig = field(default_factory=NodeConfig)
    wallet: WalletConfig = field(default_factory=WalletConfig)
    payout: PayoutConfig = field(default_factory=PayoutConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    rewards: RewardsConfig = field(default_factory=RewardsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def load_config(path: str | None = None) -> BakerPayConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        BAKERPAY_RPC_URL          -> node.rpc_url
        BAKERPAY_WALLET_ADDRESS   -> wallet.address
        BAKERPAY_WALLET_PK        -> wallet.public_key
        BAKERPAY_WALLET_SK        -> wallet.secret_key
        BAKERPAY_WALLET_ESK       -> wallet.encrypted_secret_key
        BAKERPAY_WALLET_PASSWORD  -> wallet.password
        BAKERPAY_FEE              -> payout.fee
        BAKERPAY_GAS_LIMIT        -> payout.gas_limit
        BAKERPAY_BATCH_SIZE       -> payout.batch_size
        BAKERPAY_INTERVAL         -> scheduler.interval_seconds
        BAKERPAY_PAYMENTS_DIR     -> rewards.payments_dir
        BAKERPAY_LOG_LEVEL        -> logging.level
        BAKERPAY_LOG_FMT          -> logging.format
    """
    cfg = BakerPayConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("node", cfg.node),
                ("wallet", cfg.wallet),
                ("payout", cfg.payout),
                ("scheduler", cfg.scheduler),
                ("rewards", cfg.rewards),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("BAKERPAY_RPC_URL"):
        cfg.node.rpc_url = v
    if v := os.environ.get("BAKERPAY_WALLET_ADDRESS"):
        cfg.wallet.address = v
    if v := os.environ.get("BAKERPAY_WALLET_PK"):
        cfg.wallet.public_key = v
    if v := os.environ.get("BAKERPAY_WALLET_SK"):
        cfg.wallet.secret_key = v
    if v := os.environ.get("BAKERPAY_WALLET_ESK"):
        cfg.wallet.encrypted_secret_key = v
    if v := os.environ.get("BAKERPAY_WALLET_PASSWORD"):
        cfg.wallet.password = v
    if v := os.environ.get("BAKERPAY_FEE"):
        cfg.payout.fee = int(v)
    if v := os.environ.get("BAKERPAY_GAS_LIMIT"):
        cfg.payout.gas_limit = int(v)
    if v := os.environ.get("BAKERPAY_BATCH_SIZE"):
        cfg.payout.batch_size = int(v)
    if v := os.environ.get("BAKERPAY_INTERVAL"):
        cfg.scheduler.interval_seconds = float(v)
    if v := os.environ.get("BAKERPAY_PAYMENTS_DIR"):
        cfg.rewards.payments_dir = v
    if v := os.environ.get("BAKERPAY_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("BAKERPAY_LOG_FMT"):
        cfg.logging.format = v

    return cfg
