# lotledger/services/ledger/types.py
"""
Data types for the lot-accounting engine.

These dataclasses are the engine's input, intermediate and output records.
They are NOT Pydantic schemas - those live in lotledger/schemas/ for parsing
raw records and serializing results.

Design Principles:
- Immutable value objects (frozen=True), including lots
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for transaction dates
- Data quality problems are returned as warning records, not exceptions

Type Hierarchy:
    Transaction        - One BUY/SELL input record
    NormalizedPrice    - A price converted into the target currency
    Lot                - An open quantity from one BUY
    LotReplayResult    - Lot tracker output (remaining lots + realized P&L)
    CostBasisResult    - Aggregator output
    HoldingMetrics     - Facade output for one asset
    HoldingValuation   - HoldingMetrics valued at a current price
    PortfolioMetrics   - Roll-up over several assets

Warnings:
    RateUnavailable    - Default rate used, result degraded
    Oversold           - SELL exceeded open lots
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Union

from lotledger.services.rates.types import RateUnavailable
from lotledger.utils.date_utils import as_date

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: object) -> Decimal:
    """
    Coerce a numeric input to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion. Values that cannot be parsed become NaN and are rejected by
    transaction validation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal("NaN")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, (float, str)):
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            return Decimal("NaN")
    return Decimal("NaN")


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of a transaction."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Transaction:
    """
    One BUY or SELL of an asset.

    Attributes:
        id: Opaque unique identifier (also used in error messages)
        date: Calendar date of the trade (no time-of-day semantics)
        kind: BUY or SELL
        quantity: Units traded, must be > 0
        price: Price of ONE unit, in `currency`, must be >= 0
        currency: Currency code of `price`
        asset_id: Asset the trade belongs to (optional)

    Note:
        Inputs are coerced on construction: numbers to Decimal, datetimes and
        ISO strings to date, kind and currency strings to their normalized
        form. Nothing is validated here; see lot_tracker.validate_transaction.
    """

    id: int | str
    date: date
    kind: TransactionKind
    quantity: Decimal
    price: Decimal
    currency: str = "USD"
    asset_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "price", to_decimal(self.price))

        if isinstance(self.kind, str) and not isinstance(self.kind, TransactionKind):
            try:
                object.__setattr__(self, "kind", TransactionKind(self.kind.strip().upper()))
            except ValueError:
                pass  # reported by validation

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", self.currency.strip().upper())

        try:
            object.__setattr__(self, "date", as_date(self.date))
        except (TypeError, ValueError):
            pass  # reported by validation

    @property
    def is_buy(self) -> bool:
        return self.kind == TransactionKind.BUY

    @property
    def is_sell(self) -> bool:
        return self.kind == TransactionKind.SELL


@dataclass(frozen=True)
class NormalizedPrice:
    """
    A unit price converted into the target currency.

    Attributes:
        price: Converted price
        degraded: True if a default rate of 1 was substituted for a missing rate
    """

    price: Decimal
    degraded: bool = False


# =============================================================================
# LOTS
# =============================================================================

@dataclass(frozen=True)
class Lot:
    """
    Open quantity remaining from one BUY.

    Attributes:
        remaining_quantity: Units not yet matched by a SELL
        unit_cost_in_target: BUY price normalized at the BUY date; never
                             re-normalized later
        origin_date: Date of the originating BUY
        transaction_id: ID of the originating BUY
    """

    remaining_quantity: Decimal
    unit_cost_in_target: Decimal
    origin_date: date
    transaction_id: int | str | None = None

    @property
    def cost(self) -> Decimal:
        """Cost of the remaining quantity in target currency."""
        return self.remaining_quantity * self.unit_cost_in_target


# =============================================================================
# WARNINGS
# =============================================================================

@dataclass(frozen=True)
class Oversold:
    """
    Warning: a SELL exceeded the open lots.

    The excess is left unmatched: it reduces no lot and contributes nothing
    to realized P&L. The transaction history is inconsistent and the
    holding's quantity should not be trusted blindly.

    Attributes:
        asset_id: Asset affected (None if the caller did not say)
        transaction_id: The SELL that could not be fully matched
        sell_date: Date of that SELL
        excess_quantity: Units sold beyond what was held
    """

    asset_id: str | None
    transaction_id: int | str
    sell_date: date
    excess_quantity: Decimal

    code = "oversold"

    @property
    def message(self) -> str:
        asset = self.asset_id or "asset"
        return (
            f"Oversold {asset}: transaction {self.transaction_id} on {self.sell_date} "
            f"sold {self.excess_quantity} more than was held"
        )


LedgerWarning = Union[RateUnavailable, Oversold]


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class LotReplayResult:
    """
    Output of one FIFO replay.

    Attributes:
        lots: Open lots, oldest first
        realized_pnl: Realized profit/loss across all matches, target currency
        warnings: Oversold warnings raised during the replay
    """

    lots: tuple[Lot, ...]
    realized_pnl: Decimal
    warnings: tuple[Oversold, ...] = ()


@dataclass(frozen=True)
class CostBasisResult:
    """
    Reduction of the remaining lots.

    Attributes:
        cost_basis: Sum of remaining_quantity × unit_cost_in_target
        quantity: Sum of remaining quantities
        avg_buy_price: cost_basis / quantity (0 when quantity is 0)
    """

    cost_basis: Decimal
    quantity: Decimal
    avg_buy_price: Decimal


@dataclass(frozen=True)
class HoldingMetrics:
    """
    Complete metrics snapshot for one asset, in the target currency.

    Attributes:
        cost_basis: Cost of the quantity still held
        quantity: Units still held (BUY − SELL when nothing was oversold)
        avg_buy_price: cost_basis / quantity (0 when nothing is held)
        realized_pnl: Profit/loss locked in by SELLs
        first_purchase_date: Earliest BUY in the whole history ("investing
                             since"), even if that lot was sold since
        target_currency: Currency of every amount above
        asset_id: Asset these metrics belong to (if known)
        degraded: True if any rate fell back to the default of 1
        warnings: RateUnavailable and Oversold records
    """

    cost_basis: Decimal
    quantity: Decimal
    avg_buy_price: Decimal
    realized_pnl: Decimal
    first_purchase_date: date | None
    target_currency: str
    asset_id: str | None = None
    degraded: bool = False
    warnings: tuple[LedgerWarning, ...] = ()

    @classmethod
    def zero(cls, target_currency: str, asset_id: str | None = None) -> HoldingMetrics:
        """Metrics of an asset without transactions."""
        return cls(
            cost_basis=ZERO,
            quantity=ZERO,
            avg_buy_price=ZERO,
            realized_pnl=ZERO,
            first_purchase_date=None,
            target_currency=target_currency,
            asset_id=asset_id,
        )

    @property
    def has_position(self) -> bool:
        """True if units are currently held."""
        return self.quantity > ZERO

    @property
    def oversold(self) -> tuple[Oversold, ...]:
        return tuple(w for w in self.warnings if isinstance(w, Oversold))

    @property
    def rate_warnings(self) -> tuple[RateUnavailable, ...]:
        return tuple(w for w in self.warnings if isinstance(w, RateUnavailable))


@dataclass(frozen=True)
class HoldingValuation:
    """
    HoldingMetrics valued at a current market price.

    Attributes:
        metrics: The underlying metrics
        current_price: Price per unit in the target currency (caller supplied)
        market_value: quantity × current_price
        unrealized_pnl: market_value − cost_basis
        unrealized_pct: unrealized_pnl / cost_basis × 100 (None if no cost basis)
    """

    metrics: HoldingMetrics
    current_price: Decimal
    market_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pct: Decimal | None


@dataclass
class PortfolioMetrics:
    """
    Roll-up over several assets in one target currency.

    Market totals only include holdings for which a current price was given;
    they are None when no holding could be valued.

    Attributes:
        target_currency: Currency of every amount
        holdings: Metrics per asset_id
        valuations: Valuations per asset_id (priced assets only)
        total_cost_basis: Sum of cost bases
        total_realized_pnl: Sum of realized P&L
        total_market_value: Sum of market values
        total_unrealized_pnl: Sum of unrealized P&L
        total_return_pct: total_unrealized_pnl / priced cost basis × 100
    """

    target_currency: str
    holdings: dict[str, HoldingMetrics] = field(default_factory=dict)
    valuations: dict[str, HoldingValuation] = field(default_factory=dict)
    total_cost_basis: Decimal = ZERO
    total_realized_pnl: Decimal = ZERO
    total_market_value: Decimal | None = None
    total_unrealized_pnl: Decimal | None = None
    total_return_pct: Decimal | None = None

    @property
    def degraded(self) -> bool:
        return any(m.degraded for m in self.holdings.values())

    @property
    def warnings(self) -> list[LedgerWarning]:
        return [w for m in self.holdings.values() for w in m.warnings]
