# lotledger/services/ledger/calculators.py
"""
Aggregation calculators over replay output.

Each calculator follows the Single Responsibility Principle:
- CostBasisCalculator: Reduces remaining lots to cost basis, quantity, average
- ValuationCalculator: Values a holding at a caller-supplied current price

Design Principles:
- Stateless (no instance state, pure functions)
- No I/O; every input is passed explicitly
- Decimal for ALL financial calculations, no rounding inside the engine
"""

import logging
from decimal import Decimal
from typing import Iterable

from lotledger.services.ledger.types import (
    HUNDRED,
    ZERO,
    CostBasisResult,
    HoldingMetrics,
    HoldingValuation,
    Lot,
)

logger = logging.getLogger(__name__)


# =============================================================================
# COST BASIS CALCULATOR
# =============================================================================

class CostBasisCalculator:
    """
    Reduces the lots still open after a replay.

    Formula:
        cost_basis    = Σ remaining_quantity × unit_cost_in_target
        quantity      = Σ remaining_quantity
        avg_buy_price = cost_basis ÷ quantity   (0 when nothing is held)

    Example:
        Lots: 5 @ 2 and 10 @ 4
        cost_basis    = 10 + 40 = 50
        quantity      = 15
        avg_buy_price = 50 ÷ 15 = 3.333...
    """

    def calculate(self, lots: Iterable[Lot]) -> CostBasisResult:
        cost_basis = ZERO
        quantity = ZERO

        for lot in lots:
            cost_basis += lot.remaining_quantity * lot.unit_cost_in_target
            quantity += lot.remaining_quantity

        avg_buy_price = cost_basis / quantity if quantity > 0 else ZERO

        return CostBasisResult(
            cost_basis=cost_basis,
            quantity=quantity,
            avg_buy_price=avg_buy_price,
        )


# =============================================================================
# VALUATION CALCULATOR
# =============================================================================

class ValuationCalculator:
    """
    Values a holding at a current market price.

    Formula:
        market_value   = quantity × current_price
        unrealized_pnl = market_value − cost_basis
        unrealized_pct = unrealized_pnl ÷ cost_basis × 100

    The current price must already be in the holding's target currency.
    unrealized_pct is None when there is no cost basis (nothing held, or
    only zero-cost lots), because a percentage of zero is undefined.
    """

    def calculate(self, metrics: HoldingMetrics, current_price: Decimal) -> HoldingValuation:
        """
        Args:
            metrics: Holding to value
            current_price: Price of one unit, in metrics.target_currency

        Returns:
            HoldingValuation

        Raises:
            ValueError: If current_price is negative or not finite
        """
        if not current_price.is_finite() or current_price < 0:
            raise ValueError(f"current_price must be a non-negative number, got {current_price}")

        market_value = metrics.quantity * current_price
        unrealized_pnl = market_value - metrics.cost_basis

        unrealized_pct: Decimal | None = None
        if metrics.cost_basis > 0:
            unrealized_pct = unrealized_pnl / metrics.cost_basis * HUNDRED

        return HoldingValuation(
            metrics=metrics,
            current_price=current_price,
            market_value=market_value,
            unrealized_pnl=unrealized_pnl,
            unrealized_pct=unrealized_pct,
        )
