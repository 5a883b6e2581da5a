# lotledger/services/rates/http_provider.py
"""
HTTP client for the historical rate service.

The service exposes one endpoint:

    GET {base_url}/get-historical-rate?date=YYYY-MM-DD&currency=CODE
    200 -> {"rate": 15600.0}      units of CODE per 1 reference unit

Markets close on weekends and holidays, so a date without a published rate
is normal. The client walks back one day at a time (up to `lookback_days`
dates, requested date included) and reports the date the rate was actually
found for in RateQuote.source_date.

Error mapping:
    404 / {"rate": null}       -> try the previous day
    other 4xx                  -> try the previous day
    429                        -> RateLimitError (retried)
    5xx, timeouts, transport   -> ProviderUnavailableError (retried, then
                                  try the previous day)
    rate <= 0 / not a number   -> InvalidRateError
    lookback exhausted         -> RateNotFoundError, or the last
                                  ProviderUnavailableError if every date failed

Every request passes through a CircuitBreaker, so a dead service fails fast
instead of costing lookback_days × retry attempts per key.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from lotledger.config import settings
from lotledger.services.circuit_breaker import CircuitBreaker
from lotledger.services.exceptions import (
    InvalidRateError,
    ProviderUnavailableError,
    RateLimitError,
    RateNotFoundError,
)
from lotledger.services.rates.base import HistoricalRateProvider
from lotledger.services.rates.types import RateQuote
from lotledger.utils.date_utils import lookback_dates

logger = logging.getLogger(__name__)

RATE_ENDPOINT = "/get-historical-rate"


class HttpRateProvider(HistoricalRateProvider):
    """
    Historical rate provider backed by the rate service's HTTP API.

    Defaults come from lotledger.config.settings; every one of them can be
    overridden per instance.

    Example:
        async with HttpRateProvider() as provider:
            quote = await provider.get_rate(date(2024, 1, 15), "IDR")
            quote.rate         # Decimal("15600")
            quote.source_date  # date(2024, 1, 12) on a Monday holiday

    Args:
        base_url: Service root, e.g. "https://rates.example.com"
        client: Pre-built httpx.AsyncClient (not closed by this provider)
        transport: httpx transport for the owned client (tests use MockTransport)
        request_timeout: Per-request timeout in seconds
        lookback_days: Dates tried per lookup
        breaker: Circuit breaker shared by all requests of this provider
        max_retry_attempts / retry_min_wait / retry_max_wait: Backoff settings
    """

    def __init__(
            self,
            base_url: str | None = None,
            *,
            client: httpx.AsyncClient | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
            request_timeout: float | None = None,
            lookback_days: int | None = None,
            breaker: CircuitBreaker | None = None,
            max_retry_attempts: int | None = None,
            retry_min_wait: float | None = None,
            retry_max_wait: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.rate_service_url).rstrip("/")
        self.lookback_days = lookback_days or settings.rate_lookback_days
        if self.lookback_days < 1:
            raise ValueError("lookback_days must be at least 1")

        self.MAX_RETRY_ATTEMPTS = max_retry_attempts or settings.rate_max_retry_attempts
        self.RETRY_MIN_WAIT = (
            settings.rate_retry_min_wait if retry_min_wait is None else retry_min_wait
        )
        self.RETRY_MAX_WAIT = (
            settings.rate_retry_max_wait if retry_max_wait is None else retry_max_wait
        )

        self._breaker = breaker or CircuitBreaker(
            name="rate_service",
            failure_threshold=settings.rate_breaker_failure_threshold,
            recovery_timeout=settings.rate_breaker_recovery_timeout,
            excluded_exceptions=(InvalidRateError,),
        )

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=request_timeout or settings.rate_request_timeout,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "rate_service"

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def get_rate(self, rate_date: date, currency: str) -> RateQuote:
        """
        Fetch a rate, walking back day by day when a date has none.

        Raises:
            RateNotFoundError: No rate in the lookback window
            InvalidRateError: The service returned an unusable rate
            ProviderUnavailableError: Service down for every date in the window
            RateLimitError: Still rate limited after all retries
            CircuitBreakerOpen: Breaker is open
        """
        currency = currency.upper()
        unavailable: list[ProviderUnavailableError] = []

        for attempt, check_date in enumerate(lookback_dates(rate_date, self.lookback_days), 1):
            try:
                rate = await self._execute_with_retry(self._fetch_rate, check_date, currency)
            except ProviderUnavailableError as e:
                logger.debug(f"Rate service failed for {currency} on {check_date} ({e.reason}), checking prior day")
                unavailable.append(e)
                continue

            if rate is not None:
                logger.debug(
                    f"Rate {currency} on {check_date} = {rate} "
                    f"(requested {rate_date}, attempt {attempt})"
                )
                return RateQuote(
                    currency=currency,
                    requested_date=rate_date,
                    rate=rate,
                    source_date=check_date,
                )
            logger.debug(f"No rate for {currency} on {check_date}, checking prior day")

        if len(unavailable) == self.lookback_days:
            raise unavailable[-1]
        raise RateNotFoundError(currency, rate_date, self.lookback_days)

    async def aclose(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpRateProvider":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # =========================================================================
    # PRIVATE HELPERS
    # =========================================================================

    async def _fetch_rate(self, rate_date: date, currency: str) -> Decimal | None:
        """
        One request for one exact date.

        Returns:
            The rate, or None if the service has none for that date
        """
        with self._breaker:
            try:
                response = await self._client.get(
                    f"{self.base_url}{RATE_ENDPOINT}",
                    params={"date": rate_date.isoformat(), "currency": currency},
                )
            except httpx.TimeoutException as e:
                raise ProviderUnavailableError(self.name, f"timeout: {e}", currency=currency) from e
            except httpx.TransportError as e:
                raise ProviderUnavailableError(self.name, str(e) or type(e).__name__, currency=currency) from e

            status = response.status_code
            if status == 429:
                raise RateLimitError(
                    self.name,
                    retry_after=self._parse_retry_after(response),
                    currency=currency,
                )
            if status >= 500:
                raise ProviderUnavailableError(self.name, f"HTTP {status}", currency=currency)
            if status >= 400:
                return None

            return self._parse_rate(response, currency)

    def _parse_rate(self, response: httpx.Response, currency: str) -> Decimal | None:
        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidRateError(currency, response.text[:100]) from e

        if not isinstance(payload, dict):
            raise InvalidRateError(currency, payload)

        value = payload.get("rate")
        if value is None:
            return None
        if isinstance(value, bool):
            raise InvalidRateError(currency, value)

        try:
            rate = Decimal(str(value))
        except InvalidOperation as e:
            raise InvalidRateError(currency, value) from e

        if not rate.is_finite() or rate <= 0:
            raise InvalidRateError(currency, value)

        return rate

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> int | None:
        value = response.headers.get("Retry-After")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None
