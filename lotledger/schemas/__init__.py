# lotledger/schemas/__init__.py
"""
Pydantic schemas for parsing transaction records and serializing results.

Usage:
    from lotledger.schemas import parse_transactions, HoldingMetricsResponse

    transactions = parse_transactions(rows)
    payload = HoldingMetricsResponse.from_metrics(metrics).model_dump(mode="json")
"""

from lotledger.schemas.transactions import (
    HoldingMetricsResponse,
    HoldingValuationResponse,
    LedgerWarningResponse,
    TransactionIn,
    parse_transactions,
)
from lotledger.schemas.validators import validate_currency, validate_trade_date

__all__ = [
    # Input
    "TransactionIn",
    "parse_transactions",
    # Output
    "HoldingMetricsResponse",
    "HoldingValuationResponse",
    "LedgerWarningResponse",
    # Validators
    "validate_currency",
    "validate_trade_date",
]
