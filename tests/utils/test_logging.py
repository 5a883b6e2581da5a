# tests/utils/test_logging.py
"""
Tests for logging configuration.
"""

import json
import logging

import pytest

from lotledger.utils.context import correlation_scope
from lotledger.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    JsonFormatter,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging() changes after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="lotledger.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationIdFilter:
    """Tests for CorrelationIdFilter."""

    def test_adds_placeholder_without_context(self):
        record = _record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == NO_CORRELATION_ID

    def test_adds_current_id(self):
        record = _record()

        with correlation_scope("abc123"):
            CorrelationIdFilter().filter(record)

        assert record.correlation_id == "abc123"


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self):
        record = _record("rate missing", correlation_id="cid-1")

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "lotledger.test"
        assert payload["message"] == "rate missing"
        assert payload["correlation_id"] == "cid-1"

    def test_non_json_extras_are_stringified(self):
        from decimal import Decimal

        record = _record(excess=Decimal("0.5"))

        payload = json.loads(JsonFormatter().format(record))

        assert payload["extra"]["excess"] == "0.5"


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_installs_single_handler(self, restore_root_logger):
        setup_logging(level="DEBUG", log_format="text")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        handler = restore_root_logger.handlers[0]
        assert any(isinstance(f, CorrelationIdFilter) for f in handler.filters)

    def test_json_format(self, restore_root_logger):
        setup_logging(level="INFO", log_format="json")

        assert isinstance(restore_root_logger.handlers[0].formatter, JsonFormatter)

    def test_quiets_noisy_loggers(self, restore_root_logger):
        setup_logging(level="DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING

    def test_invalid_level(self, restore_root_logger):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging(level="LOUD")
