# tests/services/test_normalizer.py
"""
Tests for CurrencyNormalizer and RateTable lookups.
"""

from datetime import date
from decimal import Decimal

import pytest

from lotledger.services.ledger.normalizer import CurrencyNormalizer
from lotledger.services.rates.types import RateQuote, RateTable, RateUnavailable

DAY = date(2024, 1, 15)


def _table(quotes=None, unavailable=None, reference="USD") -> RateTable:
    return RateTable(
        reference_currency=reference,
        quotes={
            (d, c): RateQuote(currency=c, requested_date=d, rate=Decimal(str(r)))
            for (d, c), r in (quotes or {}).items()
        },
        unavailable=unavailable or {},
    )


class TestNormalize:
    """Tests for price conversion."""

    def test_same_currency_is_noop(self):
        """from == to must return the price unchanged, without any rate."""
        normalizer = CurrencyNormalizer(RateTable.empty("USD"))

        result = normalizer.normalize(Decimal("3"), Decimal("123.45"), "IDR", "IDR", DAY)

        assert result.price == Decimal("123.45")
        assert result.degraded is False
        assert normalizer.warnings == ()

    def test_reference_to_foreign(self):
        """2 USD at 15600 IDR/USD is 31200 IDR."""
        normalizer = CurrencyNormalizer(_table({(DAY, "IDR"): 15600}))

        result = normalizer.normalize(Decimal("1"), Decimal("2"), "USD", "IDR", DAY)

        assert result.price == Decimal("31200")
        assert result.degraded is False

    def test_foreign_to_reference(self):
        """31200 IDR at 15600 IDR/USD is 2 USD."""
        normalizer = CurrencyNormalizer(_table({(DAY, "IDR"): 15600}))

        result = normalizer.normalize(Decimal("1"), Decimal("31200"), "IDR", "USD", DAY)

        assert result.price == Decimal("2")

    def test_cross_rate_between_two_foreign_currencies(self):
        """EUR → CAD goes through the reference: price / EUR * CAD."""
        normalizer = CurrencyNormalizer(_table({(DAY, "EUR"): "0.5", (DAY, "CAD"): "1.5"}))

        result = normalizer.normalize(Decimal("1"), Decimal("10"), "EUR", "CAD", DAY)

        assert result.price == Decimal("30")

    def test_rate_is_taken_from_the_transaction_date(self):
        """Each date uses its own rate."""
        other_day = date(2024, 6, 1)
        normalizer = CurrencyNormalizer(
            _table({(DAY, "IDR"): 15000, (other_day, "IDR"): 16000})
        )

        assert normalizer.normalize(1, Decimal("1"), "USD", "IDR", DAY).price == Decimal("15000")
        assert normalizer.normalize(1, Decimal("1"), "USD", "IDR", other_day).price == Decimal("16000")

    def test_quantity_does_not_change_unit_price(self):
        normalizer = CurrencyNormalizer(_table({(DAY, "IDR"): 15600}))

        one = normalizer.normalize(Decimal("1"), Decimal("2"), "USD", "IDR", DAY)
        many = normalizer.normalize(Decimal("500"), Decimal("2"), "USD", "IDR", DAY)

        assert one.price == many.price


class TestFallback:
    """Tests for the default-rate fallback."""

    def test_missing_rate_defaults_to_one(self):
        """An unresolved rate should be replaced by 1 and flagged."""
        normalizer = CurrencyNormalizer(RateTable.empty("USD"))

        result = normalizer.normalize(Decimal("1"), Decimal("50"), "USD", "IDR", DAY)

        assert result.price == Decimal("50")
        assert result.degraded is True
        assert normalizer.degraded is True
        assert len(normalizer.warnings) == 1
        assert normalizer.warnings[0].currency == "IDR"
        assert normalizer.warnings[0].rate_date == DAY

    def test_recorded_failure_reason_is_kept(self):
        """The resolver's failure record should be surfaced as-is."""
        failure = RateUnavailable(rate_date=DAY, currency="IDR", reason="timeout")
        normalizer = CurrencyNormalizer(_table(unavailable={(DAY, "IDR"): failure}))

        normalizer.normalize(Decimal("1"), Decimal("1"), "IDR", "USD", DAY)

        assert normalizer.warnings == (failure,)

    def test_one_warning_per_date_and_currency(self):
        """Repeated fallbacks for one key should not duplicate warnings."""
        normalizer = CurrencyNormalizer(RateTable.empty("USD"))

        for _ in range(3):
            normalizer.normalize(Decimal("1"), Decimal("1"), "EUR", "USD", DAY)

        assert len(normalizer.warnings) == 1

    def test_non_positive_rate_is_treated_as_missing(self):
        normalizer = CurrencyNormalizer(_table({(DAY, "EUR"): 0}))

        result = normalizer.normalize(Decimal("1"), Decimal("4"), "EUR", "USD", DAY)

        assert result.price == Decimal("4")
        assert result.degraded is True
        assert "non-positive" in normalizer.warnings[0].reason

    def test_partial_fallback_uses_the_known_rate(self):
        """Only the missing side defaults to 1."""
        normalizer = CurrencyNormalizer(_table({(DAY, "CAD"): "1.5"}))

        result = normalizer.normalize(Decimal("1"), Decimal("10"), "EUR", "CAD", DAY)

        assert result.price == Decimal("15")
        assert result.degraded is True


class TestRateTable:
    """Tests for the immutable rate snapshot."""

    def test_reference_currency_is_always_one(self):
        table = RateTable.empty("USD")

        quote = table.get(DAY, "USD")

        assert quote is not None
        assert quote.rate == Decimal("1")

    def test_table_is_read_only(self):
        table = _table({(DAY, "IDR"): 15600})

        with pytest.raises(TypeError):
            table.quotes[(DAY, "EUR")] = None  # type: ignore[index]

        assert len(table) == 1
        assert table.is_complete

    def test_quote_source_date_defaults_to_requested(self):
        quote = RateQuote(currency="IDR", requested_date=DAY, rate=Decimal("1"))

        assert quote.source_date == DAY
        assert quote.is_exact_match

    def test_quote_from_earlier_date_is_not_exact(self):
        quote = RateQuote(
            currency="IDR", requested_date=DAY, rate=Decimal("1"), source_date=date(2024, 1, 12)
        )

        assert not quote.is_exact_match
