#!/usr/bin/env python3
"""
BakerPay runner — starts the payout service:
  - Polls the node for the current cycle
  - Queues a payout whenever a cycle closes
  - Forges, signs, pre-applies and injects the payout batches

Usage:
    python run_payout.py serv --config bakerpay.toml
    python run_payout.py serv --quiet        # no confirmation waits

Environment variables (alternative to the TOML file):
    BAKERPAY_RPC_URL, BAKERPAY_WALLET_SK, BAKERPAY_WALLET_ESK,
    BAKERPAY_WALLET_PASSWORD, BAKERPAY_FEE, BAKERPAY_GAS_LIMIT, ...
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from bakerpay_core.config import load_config  # noqa: E402
from bakerpay_core.errors import BakerPayError  # noqa: E402
from bakerpay_core.logging_config import setup_logging  # noqa: E402
from bakerpay_core.server import PayoutServer  # noqa: E402

logger = logging.getLogger("bakerpay")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="bakerpay", description="BakerPay reward payout service")
    sub = p.add_subparsers(dest="command", required=True)

    serv = sub.add_parser("serv", help="run a service that pays out cycle by cycle")
    serv.add_argument("--config", default=os.environ.get("BAKERPAY_CONFIG"),
                      help="Path to bakerpay.toml config file")
    serv.set_defaults(verbose=True)
    mode = serv.add_mutually_exclusive_group()
    mode.add_argument("-v", "--verbose", dest="verbose", action="store_true",
                      help="wait for and log confirmations in between injections "
                           "(already the default; kept so existing invocations keep working)")
    mode.add_argument("-q", "--quiet", dest="verbose", action="store_false",
                      help="inject batches back to back without waiting for confirmations")
    return p.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as exc:
        setup_logging()
        logger.critical(f"Failed to load configuration from {args.config}: {exc}")
        return 1
    setup_logging(level=cfg.logging.level, fmt=cfg.logging.format, log_file=cfg.logging.file)

    try:
        server = PayoutServer(cfg, verbose=args.verbose)
    except BakerPayError as exc:
        logger.critical(f"Failed to initialize server: {exc}")
        return 1

    try:
        await server.start()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
    except Exception as exc:
        logger.critical(f"Payout server stopped: {exc}")
        return 1
    return 0


def main_sync() -> None:
    """Synchronous entry point for console_scripts."""
    code = 0
    with contextlib.suppress(KeyboardInterrupt):
        code = asyncio.run(main())
    sys.exit(code)


if __name__ == "__main__":
    main_sync()
