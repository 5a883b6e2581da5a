# lotledger/services/ledger/__init__.py
"""
Lot-accounting engine.

Turns a BUY/SELL history priced in mixed currencies into per-asset holdings:
remaining quantity, cost basis, average buy price, realized P&L and first
purchase date, all in one target currency.

Usage:
    from lotledger.services.ledger import HoldingMetricsService

    service = HoldingMetricsService(provider)
    metrics = await service.compute_holding_metrics(transactions, "EUR")

Architecture:
    ledger/
    ├── __init__.py       # This file - package exports
    ├── types.py          # Transactions, lots, warnings, results
    ├── normalizer.py     # CurrencyNormalizer (rate table → target prices)
    ├── lot_tracker.py    # FIFOLotTracker + transaction validation
    ├── calculators.py    # CostBasisCalculator, ValuationCalculator
    └── service.py        # HoldingMetricsService (orchestrator)

Data Flow:
    Transactions → collect rate keys → RateResolver → RateTable
    Transactions + RateTable → CurrencyNormalizer → target prices
    Target prices → FIFOLotTracker → lots + realized P&L
    Lots → CostBasisCalculator → HoldingMetrics
    HoldingMetrics + current price → ValuationCalculator → HoldingValuation
"""

# Calculators (for testing / direct usage)
from lotledger.services.ledger.calculators import (
    CostBasisCalculator,
    ValuationCalculator,
)
from lotledger.services.ledger.lot_tracker import (
    FIFOLotTracker,
    ReplayState,
    sort_chronologically,
    validate_transaction,
)
from lotledger.services.ledger.normalizer import CurrencyNormalizer

# Main service
from lotledger.services.ledger.service import (
    HoldingMetricsService,
    collect_rate_keys,
    compute_holding_metrics,
)

# Types
from lotledger.services.ledger.types import (
    CostBasisResult,
    HoldingMetrics,
    HoldingValuation,
    LedgerWarning,
    Lot,
    LotReplayResult,
    NormalizedPrice,
    Oversold,
    PortfolioMetrics,
    RateUnavailable,
    Transaction,
    TransactionKind,
)

__all__ = [
    # Service
    "HoldingMetricsService",
    "compute_holding_metrics",
    "collect_rate_keys",
    # Components
    "CurrencyNormalizer",
    "FIFOLotTracker",
    "ReplayState",
    "sort_chronologically",
    "validate_transaction",
    "CostBasisCalculator",
    "ValuationCalculator",
    # Types
    "Transaction",
    "TransactionKind",
    "NormalizedPrice",
    "Lot",
    "LotReplayResult",
    "CostBasisResult",
    "HoldingMetrics",
    "HoldingValuation",
    "PortfolioMetrics",
    # Warnings
    "LedgerWarning",
    "Oversold",
    "RateUnavailable",
]
