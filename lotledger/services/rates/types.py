# lotledger/services/rates/types.py
"""
Data types for historical rate resolution.

Rate convention:
    rate = units of CURRENCY per 1 unit of the reference currency
    (e.g. reference USD: USD = 1, IDR = 15600, CAD = 1.35)

    Converting a price:  price_to = price_from / rate(from) * rate(to)

Design Principles:
- Immutable value objects (frozen=True)
- Decimal for every rate (never float)
- A RateTable is a snapshot built once per engine call; the replay never
  performs I/O and therefore always sees one rate per (date, currency)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

RateKey = tuple[date, str]


@dataclass(frozen=True)
class RateQuote:
    """
    One resolved historical rate.

    Attributes:
        currency: Currency code the rate is for
        requested_date: Date the caller asked for
        rate: Units of currency per 1 reference unit
        source_date: Date the rate was actually published for
                     (earlier than requested_date when a lookback was used)
    """

    currency: str
    requested_date: date
    rate: Decimal
    source_date: date | None = None

    def __post_init__(self) -> None:
        if self.source_date is None:
            object.__setattr__(self, "source_date", self.requested_date)

    @property
    def is_exact_match(self) -> bool:
        """False if the rate comes from an earlier date."""
        return self.source_date == self.requested_date


@dataclass(frozen=True)
class RateUnavailable:
    """
    Warning: a rate could not be resolved and the default rate 1 was used.

    Values computed with it are approximate; the result is flagged degraded.

    Attributes:
        rate_date: Date the rate was needed for
        currency: Currency that could not be resolved
        reason: Why the lookup failed (not found, timeout, provider down, ...)
    """

    rate_date: date
    currency: str
    reason: str

    code = "rate_unavailable"

    @property
    def message(self) -> str:
        return (
            f"No rate for {self.currency} on {self.rate_date} ({self.reason}); "
            f"values may be approximate"
        )


@dataclass(frozen=True)
class RateTable:
    """
    Immutable per-call snapshot of resolved rates.

    Attributes:
        reference_currency: Currency every rate is quoted against
        quotes: Resolved rates keyed by (date, currency)
        unavailable: Failed lookups keyed by (date, currency)
    """

    reference_currency: str
    quotes: Mapping[RateKey, RateQuote] = field(default_factory=dict)
    unavailable: Mapping[RateKey, RateUnavailable] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "quotes", MappingProxyType(dict(self.quotes)))
        object.__setattr__(self, "unavailable", MappingProxyType(dict(self.unavailable)))

    @classmethod
    def empty(cls, reference_currency: str) -> RateTable:
        return cls(reference_currency=reference_currency)

    def get(self, rate_date: date, currency: str) -> RateQuote | None:
        """
        Look up a rate.

        The reference currency always resolves to 1 without being stored.

        Returns:
            The quote, or None if the key was never resolved or failed
        """
        if currency == self.reference_currency:
            return RateQuote(currency=currency, requested_date=rate_date, rate=Decimal("1"))
        return self.quotes.get((rate_date, currency))

    def failure(self, rate_date: date, currency: str) -> RateUnavailable | None:
        """The recorded failure for a key, if any."""
        return self.unavailable.get((rate_date, currency))

    @property
    def is_complete(self) -> bool:
        """True if every requested key resolved."""
        return not self.unavailable

    def __len__(self) -> int:
        return len(self.quotes)
