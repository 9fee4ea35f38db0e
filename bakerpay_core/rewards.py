"""
Reward source: where a cycle's payment list comes from.

Reward computation itself happens elsewhere.  This module reads its output:
one JSON file per cycle, ``cycle-<n>.json``, holding a list of
``{"destination": "tz1...", "amount": <mutez>}`` objects.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from bakerpay_core.payout import Payment

logger = logging.getLogger("bakerpay.rewards")


class JSONRewardSource:
    """Loads per-cycle payment lists from a directory of JSON files."""

    def __init__(self, payments_dir: str):
        self.payments_dir = Path(payments_dir)

    def path_for(self, cycle: int) -> Path:
        return self.payments_dir / f"cycle-{cycle}.json"

    def payments_for_cycle(self, cycle: int) -> list[Payment]:
        """
        Read the payments for *cycle*.

        Raises FileNotFoundError if the file is missing and ValueError if
        it is not a list of valid payment objects.
        """
        path = self.path_for(cycle)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{path}: expected a list of payments")

        payments = []
        for i, entry in enumerate(data):
            try:
                payments.append(Payment(entry["destination"], entry["amount"]))
            except (KeyError, TypeError, ValueError) as exc:
                raise ValueError(f"{path}: invalid payment at index {i}: {exc}") from exc
        logger.info(f"Loaded {len(payments)} payments for cycle {cycle} from {path}")
        return payments
