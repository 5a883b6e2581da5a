# lotledger/services/rates/resolver.py
"""
Rate resolver - turns a set of (date, currency) keys into a RateTable.

This is the only place the engine waits on I/O. One call:
1. Deduplicates the requested keys (each pair is fetched at most once)
2. Drops the reference currency (rate 1 by definition, never fetched)
3. Fetches the rest concurrently through the provider's batch method,
   bounded by max_concurrency and by one overall timeout
4. Freezes the outcome into an immutable RateTable

Failures never propagate. Each failed key becomes a RateUnavailable record
in the table and is logged at WARNING; the ledger then substitutes rate 1
and flags its result degraded. When the overall timeout expires, every
requested key is treated as unavailable, so a replay never mixes rates from
a half-finished fetch.
"""

import asyncio
import logging
from typing import Iterable

from lotledger.config import settings
from lotledger.services.circuit_breaker import CircuitBreakerOpen
from lotledger.services.exceptions import (
    InvalidRateError,
    ProviderUnavailableError,
    RateLimitError,
    RateNotFoundError,
)
from lotledger.services.rates.base import HistoricalRateProvider
from lotledger.services.rates.types import RateKey, RateTable, RateUnavailable

logger = logging.getLogger(__name__)


def describe_failure(error: BaseException) -> str:
    """Short reason string stored on RateUnavailable."""
    if isinstance(error, RateNotFoundError):
        return f"not found in {error.lookback_days}-day window"
    if isinstance(error, CircuitBreakerOpen):
        return "circuit breaker open"
    if isinstance(error, RateLimitError):
        return "rate limited"
    if isinstance(error, ProviderUnavailableError):
        return f"provider unavailable: {error.reason}"
    if isinstance(error, InvalidRateError):
        return f"invalid rate {error.value!r}"
    return str(error) or type(error).__name__


class RateResolver:
    """
    Resolves the historical rates one computation needs.

    Usage:
        resolver = RateResolver(provider)
        table = await resolver.resolve({(date(2024, 1, 2), "IDR")}, timeout=5)
        table.get(date(2024, 1, 2), "IDR")
    """

    def __init__(
            self,
            provider: HistoricalRateProvider,
            reference_currency: str | None = None,
            max_concurrency: int | None = None,
    ) -> None:
        self.provider = provider
        self.reference_currency = (reference_currency or settings.reference_currency).upper()
        self.max_concurrency = max_concurrency or settings.rate_max_concurrency

    async def resolve(
            self,
            keys: Iterable[RateKey],
            timeout: float | None = None,
    ) -> RateTable:
        """
        Resolve keys into a snapshot.

        Args:
            keys: (date, currency) pairs, duplicates allowed
            timeout: Seconds for the whole fetch phase (None = no limit)

        Returns:
            RateTable with a quote or a RateUnavailable for every
            non-reference key
        """
        wanted = list(dict.fromkeys(
            (rate_date, currency.upper())
            for rate_date, currency in keys
            if currency.upper() != self.reference_currency
        ))

        if not wanted:
            return RateTable.empty(self.reference_currency)

        logger.debug(
            f"Resolving {len(wanted)} rate(s) via {self.provider.name} "
            f"(concurrency={self.max_concurrency}, timeout={timeout})"
        )

        try:
            batch = await asyncio.wait_for(
                self.provider.get_rates_batch(wanted, max_concurrency=self.max_concurrency),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Rate fetch timed out after {timeout}s; "
                f"using default rate 1 for all {len(wanted)} key(s)"
            )
            return RateTable(
                reference_currency=self.reference_currency,
                unavailable={
                    key: RateUnavailable(rate_date=key[0], currency=key[1], reason="timeout")
                    for key in wanted
                },
            )

        if not batch.all_successful:
            logger.debug(
                f"{batch.failure_count} of {len(wanted)} rate lookup(s) failed, "
                f"{batch.success_count} resolved"
            )

        unavailable: dict[RateKey, RateUnavailable] = {}
        for key in wanted:
            if key in batch.successful:
                continue
            error = batch.failed.get(key)
            reason = describe_failure(error) if error is not None else "no result"
            rate_date, currency = key
            logger.warning(f"Rate unavailable for {currency} on {rate_date}: {reason}; using 1")
            unavailable[key] = RateUnavailable(rate_date=rate_date, currency=currency, reason=reason)

        return RateTable(
            reference_currency=self.reference_currency,
            quotes={key: batch.successful[key] for key in wanted if key in batch.successful},
            unavailable=unavailable,
        )
