# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Mock rate provider (configurable rates, errors and latency)
- Transaction factory
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from lotledger.services.exceptions import RateNotFoundError
from lotledger.services.ledger.types import Transaction, TransactionKind
from lotledger.services.rates.base import HistoricalRateProvider
from lotledger.services.rates.types import RateQuote


# =============================================================================
# MOCK RATE PROVIDER
# =============================================================================

class MockRateProvider(HistoricalRateProvider):
    """
    Mock implementation of HistoricalRateProvider for testing.

    Rates can be configured for one (date, currency) pair or for a currency
    on every date. Unconfigured lookups raise RateNotFoundError.
    """

    def __init__(self, delay: float = 0.0):
        self._rates: dict[tuple[date, str], Decimal] = {}
        self._default_rates: dict[str, Decimal] = {}
        self._errors: dict[tuple[date, str], Exception] = {}
        self.delay = delay
        self.calls: list[tuple[date, str]] = []
        self.batch_calls = 0

    @property
    def name(self) -> str:
        return "mock"

    def add_rate(self, currency: str, rate: Decimal | str, on_date: date | None = None) -> None:
        """Configure a rate; without a date it applies to every date."""
        if on_date is None:
            self._default_rates[currency.upper()] = Decimal(str(rate))
        else:
            self._rates[(on_date, currency.upper())] = Decimal(str(rate))

    def add_error(self, currency: str, on_date: date, error: Exception) -> None:
        """Configure an error for one lookup."""
        self._errors[(on_date, currency.upper())] = error

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def get_rates_batch(self, keys, max_concurrency=None):
        self.batch_calls += 1
        return await super().get_rates_batch(keys, max_concurrency)

    async def get_rate(self, rate_date: date, currency: str) -> RateQuote:
        self.calls.append((rate_date, currency))
        if self.delay:
            await asyncio.sleep(self.delay)

        key = (rate_date, currency)
        if key in self._errors:
            raise self._errors[key]

        rate = self._rates.get(key, self._default_rates.get(currency))
        if rate is None:
            raise RateNotFoundError(currency, rate_date)
        return RateQuote(currency=currency, requested_date=rate_date, rate=rate)


@pytest.fixture
def mock_provider() -> MockRateProvider:
    """Provide a fresh mock rate provider."""
    return MockRateProvider()


@pytest.fixture
def slow_provider() -> MockRateProvider:
    """Provide a mock rate provider that takes one second per lookup."""
    return MockRateProvider(delay=1.0)


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def make_txn(
        txn_id,
        kind: str,
        quantity,
        price,
        on_date: date = date(2024, 1, 2),
        currency: str = "USD",
        asset_id: str | None = None,
) -> Transaction:
    """Build a Transaction with Decimal-coerced numbers."""
    return Transaction(
        id=txn_id,
        date=on_date,
        kind=TransactionKind(kind),
        quantity=Decimal(str(quantity)),
        price=Decimal(str(price)),
        currency=currency,
        asset_id=asset_id,
    )


@pytest.fixture
def txn_factory():
    """Provide the transaction factory to tests."""
    return make_txn
