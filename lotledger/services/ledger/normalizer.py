# lotledger/services/ledger/normalizer.py
"""
Currency normalization against a per-call RateTable.

Formula:
    price_in_target = price / rate(from_currency, date) * rate(to_currency, date)

    where rate(X, d) = units of X per 1 reference unit on date d.

Example (reference USD, IDR rate 15600, target IDR):
    2.00 USD -> 2.00 / 1 * 15600 = 31200 IDR

The normalizer never performs I/O. Every rate comes from the snapshot built
before the replay, so one (date, currency) pair always converts the same way
within a computation.

Fallback:
    A missing rate is replaced by 1 and the result is flagged degraded.
    One RateUnavailable warning is kept per (date, currency), however many
    transactions needed it.
"""

import logging
from datetime import date
from decimal import Decimal

from lotledger.services.ledger.types import NormalizedPrice
from lotledger.services.rates.types import RateKey, RateTable, RateUnavailable

logger = logging.getLogger(__name__)

DEFAULT_RATE = Decimal("1")


class CurrencyNormalizer:
    """
    Converts per-unit prices into a target currency.

    Attributes:
        rate_table: Snapshot of the rates resolved for this computation
    """

    def __init__(self, rate_table: RateTable) -> None:
        self.rate_table = rate_table
        self._warnings: dict[RateKey, RateUnavailable] = {}

    @property
    def warnings(self) -> tuple[RateUnavailable, ...]:
        """RateUnavailable records for every fallback so far, in first-use order."""
        return tuple(self._warnings.values())

    @property
    def degraded(self) -> bool:
        return bool(self._warnings)

    def normalize(
            self,
            quantity: Decimal,
            price: Decimal,
            from_currency: str,
            to_currency: str,
            on_date: date,
    ) -> NormalizedPrice:
        """
        Convert one unit price.

        Args:
            quantity: Units the price applies to (conversion is per unit;
                      the value does not change the result)
            price: Unit price in from_currency
            from_currency: Currency of the price
            to_currency: Target currency
            on_date: Date whose rates apply

        Returns:
            NormalizedPrice, degraded if a default rate was used
        """
        if from_currency == to_currency:
            return NormalizedPrice(price=price)

        from_rate, from_ok = self._rate(on_date, from_currency)
        to_rate, to_ok = self._rate(on_date, to_currency)

        return NormalizedPrice(
            price=price / from_rate * to_rate,
            degraded=not (from_ok and to_ok),
        )

    def _rate(self, on_date: date, currency: str) -> tuple[Decimal, bool]:
        quote = self.rate_table.get(on_date, currency)
        if quote is not None and quote.rate > 0:
            return quote.rate, True

        key = (on_date, currency)
        if key not in self._warnings:
            failure = self.rate_table.failure(on_date, currency)
            if failure is None:
                reason = "not resolved" if quote is None else f"non-positive rate {quote.rate}"
                failure = RateUnavailable(rate_date=on_date, currency=currency, reason=reason)
            self._warnings[key] = failure
            logger.debug(f"Default rate 1 used for {currency} on {on_date} ({failure.reason})")

        return DEFAULT_RATE, False
