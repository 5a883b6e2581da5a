# lotledger/schemas/transactions.py
"""
Pydantic schemas for transaction input and metrics output.

These schemas define:
- What a caller may send (TransactionIn, also accepting the stored record
  shape with `type` and `amount` keys)
- What a presentation layer receives (HoldingMetricsResponse,
  HoldingValuationResponse)

Validation layers:
- Field constraints: type, numeric limits
- Field validators: normalization (uppercase, trim, date coercion)
- Engine: chronology and lot matching

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from lotledger.services.exceptions import MalformedTransactionError
from lotledger.services.ledger.types import (
    HoldingMetrics,
    HoldingValuation,
    LedgerWarning,
    Oversold,
    RateUnavailable,
    Transaction,
    TransactionKind,
)
from lotledger.schemas.validators import (
    DEFAULT_CURRENCY,
    normalize_kind,
    validate_currency,
    validate_trade_date,
)


# =============================================================================
# INPUT SCHEMA
# =============================================================================

class TransactionIn(BaseModel):
    """
    One BUY/SELL record as received from a caller or a store.

    Accepts both field names and the stored record's keys (`date`, `type`
    and `amount` are aliases of trade_date, kind and quantity):
        {"id": "t1", "date": "2024-01-15", "type": "buy",
         "amount": "10", "price": "1.5", "currency": "eur"}
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: int | str = Field(
        ...,
        description="Unique transaction identifier",
        examples=["tx-1", 42]
    )

    trade_date: date = Field(
        ...,
        alias="date",
        description="Trade date (time of day is ignored)",
        examples=["2024-01-15", "2024-01-15T14:30:00Z"]
    )

    kind: TransactionKind = Field(
        ...,
        alias="type",
        description="BUY or SELL",
        examples=["BUY", "SELL"]
    )

    quantity: Decimal = Field(
        ...,
        alias="amount",
        gt=0,
        description="Units traded (must be positive)",
        examples=["10", "0.5"]
    )

    price: Decimal = Field(
        ...,
        ge=0,
        description="Price of one unit in `currency`",
        examples=["150.50", "0"]
    )

    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="Currency of the price (ISO 4217)",
        examples=["USD", "IDR"]
    )

    asset_id: str | None = Field(
        default=None,
        description="Asset the trade belongs to",
        examples=["BBCA", "AAPL"]
    )

    # =========================================================================
    # FIELD VALIDATORS (Normalization & Validation)
    # =========================================================================

    @field_validator('trade_date', mode='before')
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        """Drop time of day from datetimes and ISO timestamps."""
        return validate_trade_date(v)

    @field_validator('kind', mode='before')
    @classmethod
    def uppercase_kind(cls, v: Any) -> Any:
        return normalize_kind(v)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: Any) -> str:
        """Missing or null currency falls back to USD; otherwise must be ISO 4217."""
        if v is None:
            return DEFAULT_CURRENCY
        return validate_currency(v)

    def to_domain(self) -> Transaction:
        """Convert to the engine's Transaction value object."""
        return Transaction(
            id=self.id,
            date=self.trade_date,
            kind=self.kind,
            quantity=self.quantity,
            price=self.price,
            currency=self.currency,
            asset_id=self.asset_id,
        )


def parse_transactions(raw: Iterable[Mapping[str, Any]]) -> list[Transaction]:
    """
    Validate raw records and convert them to domain transactions.

    Args:
        raw: Records as dicts (JSON objects, database rows, ...)

    Returns:
        Transactions in input order

    Raises:
        MalformedTransactionError: On the first invalid record, naming its
                                   id (or its index when it has none)
    """
    transactions: list[Transaction] = []

    for index, record in enumerate(raw):
        try:
            transactions.append(TransactionIn.model_validate(record).to_domain())
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error.get("loc", ())) or None
            transaction_id = record.get("id", index) if isinstance(record, Mapping) else index
            raise MalformedTransactionError(
                transaction_id,
                f"{field}: {error.get('msg')}" if field else str(error.get("msg")),
                field=field,
            ) from e

    return transactions


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class LedgerWarningResponse(BaseModel):
    """A data-quality warning attached to a result."""

    code: str
    message: str
    transaction_id: int | str | None = None
    currency: str | None = None
    on_date: date | None = None

    @classmethod
    def from_warning(cls, warning: LedgerWarning) -> "LedgerWarningResponse":
        if isinstance(warning, Oversold):
            return cls(
                code=warning.code,
                message=warning.message,
                transaction_id=warning.transaction_id,
                on_date=warning.sell_date,
            )
        if isinstance(warning, RateUnavailable):
            return cls(
                code=warning.code,
                message=warning.message,
                currency=warning.currency,
                on_date=warning.rate_date,
            )
        raise TypeError(f"Unknown warning type: {type(warning).__name__}")


class HoldingMetricsResponse(BaseModel):
    """
    Holding metrics for a presentation layer.

    All amounts are in target_currency.
    """

    asset_id: str | None = None
    target_currency: str
    quantity: Decimal
    cost_basis: Decimal
    avg_buy_price: Decimal
    realized_pnl: Decimal
    first_purchase_date: date | None = None
    degraded: bool = False
    warnings: list[LedgerWarningResponse] = Field(default_factory=list)

    @classmethod
    def from_metrics(cls, metrics: HoldingMetrics) -> "HoldingMetricsResponse":
        return cls(
            asset_id=metrics.asset_id,
            target_currency=metrics.target_currency,
            quantity=metrics.quantity,
            cost_basis=metrics.cost_basis,
            avg_buy_price=metrics.avg_buy_price,
            realized_pnl=metrics.realized_pnl,
            first_purchase_date=metrics.first_purchase_date,
            degraded=metrics.degraded,
            warnings=[LedgerWarningResponse.from_warning(w) for w in metrics.warnings],
        )


class HoldingValuationResponse(HoldingMetricsResponse):
    """Holding metrics plus market valuation at a current price."""

    current_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pct: Decimal | None = None

    @classmethod
    def from_valuation(cls, valuation: HoldingValuation) -> "HoldingValuationResponse":
        base = HoldingMetricsResponse.from_metrics(valuation.metrics)
        return cls(
            **base.model_dump(exclude={"warnings"}),
            warnings=base.warnings,
            current_price=valuation.current_price,
            market_value=valuation.market_value,
            unrealized_pnl=valuation.unrealized_pnl,
            unrealized_pct=valuation.unrealized_pct,
        )
