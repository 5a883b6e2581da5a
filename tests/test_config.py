# tests/test_config.py
"""
Tests for environment-based settings.
"""

import pytest
from pydantic import ValidationError

from lotledger.config import Settings


class TestSettings:
    """Tests for Settings loading and validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REFERENCE_CURRENCY", raising=False)
        monkeypatch.delenv("RATE_LOOKBACK_DAYS", raising=False)

        settings = Settings(_env_file=None)

        assert settings.reference_currency == "USD"
        assert settings.rate_lookback_days == 5
        assert settings.rate_fetch_timeout == 30.0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("REFERENCE_CURRENCY", " eur ")
        monkeypatch.setenv("RATE_MAX_CONCURRENCY", "4")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert settings.reference_currency == "EUR"
        assert settings.rate_max_concurrency == 4
        assert settings.is_production

    def test_rejects_out_of_range_lookback(self, monkeypatch):
        monkeypatch.setenv("RATE_LOOKBACK_DAYS", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_rejects_inverted_retry_window(self, monkeypatch):
        monkeypatch.setenv("RATE_RETRY_MIN_WAIT", "5")
        monkeypatch.setenv("RATE_RETRY_MAX_WAIT", "1")

        with pytest.raises(ValidationError, match="RATE_RETRY_MIN_WAIT"):
            Settings(_env_file=None)
