# lotledger/__init__.py
"""
lotledger - FIFO lot accounting and cost basis for multi-currency holdings.

Usage:
    from lotledger import HoldingMetricsService, HttpRateProvider, parse_transactions

    async with HttpRateProvider() as provider:
        service = HoldingMetricsService(provider)
        metrics = await service.compute_holding_metrics(
            parse_transactions(rows), "IDR", asset_id="BBCA"
        )
"""

from lotledger.services import (
    HoldingMetricsService,
    HttpRateProvider,
    HistoricalRateProvider,
    compute_holding_metrics,
    MalformedTransactionError,
    ValidationError,
)
from lotledger.services.ledger.types import (
    HoldingMetrics,
    HoldingValuation,
    Oversold,
    PortfolioMetrics,
    RateUnavailable,
    Transaction,
    TransactionKind,
)
from lotledger.schemas import HoldingMetricsResponse, parse_transactions
from lotledger.utils import setup_logging

__version__ = "0.1.0"

__all__ = [
    "HoldingMetricsService",
    "HttpRateProvider",
    "HistoricalRateProvider",
    "compute_holding_metrics",
    "Transaction",
    "TransactionKind",
    "HoldingMetrics",
    "HoldingValuation",
    "PortfolioMetrics",
    "Oversold",
    "RateUnavailable",
    "MalformedTransactionError",
    "ValidationError",
    "HoldingMetricsResponse",
    "parse_transactions",
    "setup_logging",
]
