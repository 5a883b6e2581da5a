# tests/schemas/test_transactions.py
"""
Tests for transaction input parsing and metrics response schemas.
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from lotledger.schemas.transactions import (
    HoldingMetricsResponse,
    HoldingValuationResponse,
    TransactionIn,
    parse_transactions,
)
from lotledger.schemas.validators import validate_currency
from lotledger.services.exceptions import MalformedTransactionError
from lotledger.services.ledger.calculators import ValuationCalculator
from lotledger.services.ledger.types import (
    HoldingMetrics,
    Oversold,
    RateUnavailable,
    TransactionKind,
)


class TestTransactionIn:
    """Tests for TransactionIn validation."""

    def test_accepts_stored_record_shape(self):
        """The `type` and `amount` keys map to kind and quantity."""
        txn = TransactionIn.model_validate({
            "id": "t1",
            "date": "2024-01-15",
            "type": "buy",
            "amount": "10",
            "price": "1.5",
            "currency": "eur",
        })

        assert txn.kind == TransactionKind.BUY
        assert txn.quantity == Decimal("10")
        assert txn.trade_date == date(2024, 1, 15)
        assert txn.currency == "EUR"

    def test_accepts_field_names(self):
        txn = TransactionIn(
            id=1, trade_date=date(2024, 1, 15), kind="SELL", quantity=2, price=3,
        )

        assert txn.kind == TransactionKind.SELL

    def test_currency_defaults_to_usd(self):
        txn = TransactionIn.model_validate(
            {"id": 1, "date": "2024-01-15", "type": "BUY", "amount": 1, "price": 1}
        )

        assert txn.currency == "USD"

    def test_null_currency_defaults_to_usd(self):
        txn = TransactionIn.model_validate(
            {"id": 1, "date": "2024-01-15", "type": "BUY", "amount": 1, "price": 1, "currency": None}
        )

        assert txn.currency == "USD"

    def test_timestamp_is_truncated_to_date(self):
        txn = TransactionIn.model_validate(
            {"id": 1, "date": "2024-01-15T22:10:00Z", "type": "BUY", "amount": 1, "price": 1}
        )

        assert txn.trade_date == date(2024, 1, 15)

    @pytest.mark.parametrize("amount", [0, -1, "NaN"])
    def test_invalid_quantity(self, amount):
        with pytest.raises(ValidationError):
            TransactionIn.model_validate(
                {"id": 1, "date": "2024-01-15", "type": "BUY", "amount": amount, "price": 1}
            )

    def test_negative_price(self):
        with pytest.raises(ValidationError):
            TransactionIn.model_validate(
                {"id": 1, "date": "2024-01-15", "type": "BUY", "amount": 1, "price": -2}
            )

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            TransactionIn.model_validate(
                {"id": 1, "date": "2024-01-15", "type": "GIFT", "amount": 1, "price": 1}
            )

    def test_to_domain(self):
        txn = TransactionIn.model_validate({
            "id": "t9", "date": "2024-03-01", "type": "SELL", "amount": "0.5",
            "price": "100", "currency": "idr", "asset_id": "BBCA",
        }).to_domain()

        assert txn.id == "t9"
        assert txn.date == date(2024, 3, 1)
        assert txn.kind == TransactionKind.SELL
        assert txn.quantity == Decimal("0.5")
        assert txn.currency == "IDR"
        assert txn.asset_id == "BBCA"


class TestParseTransactions:
    """Tests for bulk parsing."""

    def test_parses_in_order(self):
        rows = [
            {"id": "a", "date": "2024-01-02", "type": "BUY", "amount": 1, "price": 1},
            {"id": "b", "date": "2024-01-01", "type": "SELL", "amount": 1, "price": 2},
        ]

        transactions = parse_transactions(rows)

        assert [t.id for t in transactions] == ["a", "b"]

    def test_invalid_record_raises_malformed(self):
        rows = [
            {"id": "a", "date": "2024-01-02", "type": "BUY", "amount": 1, "price": 1},
            {"id": "bad", "date": "2024-01-03", "type": "BUY", "amount": -5, "price": 1},
        ]

        with pytest.raises(MalformedTransactionError) as exc_info:
            parse_transactions(rows)

        assert exc_info.value.transaction_id == "bad"
        assert exc_info.value.field == "amount"

    def test_missing_id_uses_index(self):
        rows = [{"date": "2024-01-02", "type": "BUY", "amount": 1, "price": 1}]

        with pytest.raises(MalformedTransactionError) as exc_info:
            parse_transactions(rows)

        assert exc_info.value.transaction_id == 0

    def test_bad_date(self):
        rows = [{"id": 3, "date": "15/01/2024", "type": "BUY", "amount": 1, "price": 1}]

        with pytest.raises(MalformedTransactionError, match="date"):
            parse_transactions(rows)


class TestValidators:
    """Tests for reusable validators."""

    def test_currency_normalized(self):
        assert validate_currency(" gbp ") == "GBP"

    @pytest.mark.parametrize("value", ["", None, "EURO", "E1"])
    def test_invalid_currency(self, value):
        with pytest.raises(ValueError):
            validate_currency(value)


class TestHoldingMetricsResponse:
    """Tests for serialization of results."""

    @pytest.fixture
    def metrics(self) -> HoldingMetrics:
        return HoldingMetrics(
            cost_basis=Decimal("10"),
            quantity=Decimal("5"),
            avg_buy_price=Decimal("2"),
            realized_pnl=Decimal("25"),
            first_purchase_date=date(2024, 1, 1),
            target_currency="USD",
            asset_id="AAPL",
            degraded=True,
            warnings=(
                RateUnavailable(rate_date=date(2024, 1, 2), currency="EUR", reason="timeout"),
                Oversold(
                    asset_id="AAPL",
                    transaction_id="s1",
                    sell_date=date(2024, 1, 3),
                    excess_quantity=Decimal("1"),
                ),
            ),
        )

    def test_from_metrics(self, metrics):
        response = HoldingMetricsResponse.from_metrics(metrics)

        assert response.cost_basis == Decimal("10")
        assert response.first_purchase_date == date(2024, 1, 1)
        assert response.degraded is True
        assert [w.code for w in response.warnings] == ["rate_unavailable", "oversold"]
        assert response.warnings[0].currency == "EUR"
        assert response.warnings[1].transaction_id == "s1"

    def test_json_dump(self, metrics):
        payload = HoldingMetricsResponse.from_metrics(metrics).model_dump(mode="json")

        assert payload["asset_id"] == "AAPL"
        assert payload["first_purchase_date"] == "2024-01-01"
        assert payload["warnings"][0]["on_date"] == "2024-01-02"

    def test_from_valuation(self, metrics):
        valuation = ValuationCalculator().calculate(metrics, Decimal("3"))

        response = HoldingValuationResponse.from_valuation(valuation)

        assert response.market_value == Decimal("15")
        assert response.unrealized_pnl == Decimal("5")
        assert response.unrealized_pct == Decimal("50")
        assert response.realized_pnl == Decimal("25")
        assert len(response.warnings) == 2
