"""
Tests for bakerpay_core.logging_config — formatters and secret masking.
"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from bakerpay_core.logging_config import (
    SecretRedactionFilter,
    _HumanFormatter,
    _JSONFormatter,
    redact,
    setup_logging,
)

EDSK = "edsk3gUfUPyBSfrS9CCgmCiQsTCHGkviBDusMxDJstFtojtc1zcpsh"
EDESK = "edesk1GXwWmGjXiLHBKxGBxwmNvG21vKBh6FBxc4CQJyzwCxuJQ8eh2mT3RCjH8Vy7cRcLfiDmXy1GkmVpR4WhHJ"


def _record(msg, *args, exc_info=None):
    return logging.LogRecord("bakerpay.test", logging.INFO, __file__, 1, msg, args, exc_info)


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestRedact:

    def test_masks_secret_key(self):
        assert redact(f"loaded {EDSK} ok") == "loaded edsk<redacted> ok"

    def test_masks_encrypted_key(self):
        assert redact(EDESK) == "edesk<redacted>"

    def test_leaves_public_data(self):
        text = "tz1VSUr8wwNhLAzempoch5d6hLRiTh8Cjcjb edpkuBknW28nW72KG6RoHtYW7p12T6GKc7nAbwYX5m8Wd9sDVC9yav"
        assert redact(text) == text

    def test_short_prefix_only_is_untouched(self):
        assert redact("edsk prefix") == "edsk prefix"


class TestSecretRedactionFilter:

    def test_rewrites_message_and_args(self):
        record = _record("secret is %s", EDSK)
        assert SecretRedactionFilter().filter(record)
        assert record.getMessage() == "secret is edsk<redacted>"
        assert record.args is None

    def test_clean_record_unchanged(self):
        record = _record("cycle %d", 100)
        SecretRedactionFilter().filter(record)
        assert record.args == (100,)
        assert record.getMessage() == "cycle 100"


class TestFormatters:

    def test_json_formatter(self):
        out = json.loads(_JSONFormatter().format(_record("hello %s", "world")))
        assert out["msg"] == "hello world"
        assert out["level"] == "INFO"
        assert out["logger"] == "bakerpay.test"
        assert "ts" in out

    def test_json_formatter_redacts_exception(self):
        try:
            raise ValueError(f"bad key {EDSK}")
        except ValueError:
            record = _record("failed", exc_info=sys.exc_info())
        out = json.loads(_JSONFormatter().format(record))
        assert EDSK not in out["exception"]
        assert "edsk<redacted>" in out["exception"]

    def test_human_formatter(self):
        line = _HumanFormatter().format(_record("payout %d", 7))
        assert "bakerpay.test: payout 7" in line
        assert "[INFO" in line


class TestSetupLogging:

    def test_console_handler_with_filter(self, restore_root):
        setup_logging(level="debug")
        assert restore_root.level == logging.DEBUG
        assert len(restore_root.handlers) == 1
        handler = restore_root.handlers[0]
        assert isinstance(handler.formatter, _HumanFormatter)
        assert any(isinstance(f, SecretRedactionFilter) for f in handler.filters)

    def test_json_console(self, restore_root):
        setup_logging(fmt="json")
        assert isinstance(restore_root.handlers[0].formatter, _JSONFormatter)

    def test_file_handler_is_json(self, restore_root, tmp_path):
        log_file = tmp_path / "logs" / "bakerpay.log"
        setup_logging(log_file=str(log_file))
        assert len(restore_root.handlers) == 2
        logging.getLogger("bakerpay.test").warning(f"wallet {EDSK}")
        for h in restore_root.handlers:
            h.flush()
        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["msg"] == "wallet edsk<redacted>"
        restore_root.handlers[1].close()

    def test_aiohttp_quietened(self, restore_root):
        setup_logging(level="DEBUG")
        assert logging.getLogger("aiohttp").level == logging.WARNING
