# lotledger/services/rates/base.py
"""
Abstract interface for historical rate providers.

This module defines the contract every rate source must follow. Using an
abstract base class allows for:
- Swapping the HTTP service for another source without touching the ledger
- Stub implementations for testing
- Consistent retry behavior across all providers

Design Principles:
- Dependency Inversion: the resolver depends on this abstraction only
- DRY: Common retry logic implemented once in the base class
- Async: lookups for one computation are issued concurrently
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lotledger.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)
from lotledger.services.rates.types import RateKey, RateQuote

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchRateResult:
    """
    Result of a batch rate lookup.

    Tracks which lookups succeeded and which failed, allowing partial success.

    Attributes:
        successful: Dict mapping (date, currency) to RateQuote
        failed: Dict mapping (date, currency) to the exception that occurred
    """

    successful: dict[RateKey, RateQuote] = field(default_factory=dict)
    failed: dict[RateKey, Exception] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def all_successful(self) -> bool:
        return self.failure_count == 0


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class HistoricalRateProvider(ABC):
    """
    Abstract base class for historical rate providers.

    Retry Behavior:
        `_execute_with_retry` implements exponential backoff. The defaults
        below can be overridden per subclass or per instance:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError: Network issues, timeouts, server errors
        - RateLimitError: Rate limit exceeded

    Non-Retryable Exceptions:
        - RateNotFoundError: No rate in the lookback window
        - InvalidRateError: The service returned an unusable value
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    DEFAULT_MAX_CONCURRENCY: int = 8

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this provider.

        Used for logging and error messages.
        """
        pass

    @abstractmethod
    async def get_rate(self, rate_date: date, currency: str) -> RateQuote:
        """
        Fetch the rate of one currency on one date.

        Args:
            rate_date: Date the rate is needed for
            currency: Currency code (uppercase)

        Returns:
            RateQuote in units of currency per reference unit

        Raises:
            RateNotFoundError: No rate for the date (after any lookback)
            InvalidRateError: The provider returned an unusable rate
            ProviderUnavailableError: Network or service error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    async def get_rates_batch(
            self,
            keys: Iterable[RateKey],
            max_concurrency: int | None = None,
    ) -> BatchRateResult:
        """
        Fetch several rates concurrently.

        Default implementation calls get_rate() for each key with at most
        `max_concurrency` lookups in flight. Failures are collected per key;
        one failing key never cancels the others.

        Args:
            keys: (date, currency) pairs; duplicates are fetched once
            max_concurrency: Lookups in flight at once

        Returns:
            BatchRateResult with a quote or an exception for every key
        """
        unique_keys = list(dict.fromkeys(keys))
        semaphore = asyncio.Semaphore(max_concurrency or self.DEFAULT_MAX_CONCURRENCY)
        result = BatchRateResult()

        async def _fetch(key: RateKey) -> None:
            rate_date, currency = key
            async with semaphore:
                try:
                    result.successful[key] = await self.get_rate(rate_date, currency)
                except Exception as e:
                    logger.debug(f"Rate lookup failed for {currency} on {rate_date}: {e}")
                    result.failed[key] = e

        await asyncio.gather(*(_fetch(key) for key in unique_keys))
        return result

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    async def _execute_with_retry(
            self,
            func: Callable[..., Awaitable[T]],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Await a coroutine function with retry logic for transient failures.

        Uses exponential backoff for ProviderUnavailableError and
        RateLimitError. Everything else propagates on the first attempt.

        Raises:
            The last exception if all retries fail
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await func(*args, **kwargs)
        raise AssertionError("unreachable")  # pragma: no cover

    async def aclose(self) -> None:
        """Release provider resources. Default implementation does nothing."""
        return None
