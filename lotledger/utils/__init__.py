# lotledger/utils/__init__.py
"""
Utility modules for lotledger.

This package contains cross-cutting utilities used throughout the library:
- logging: Logging configuration with correlation ID support
- context: Correlation ID binding for one computation
- date_utils: Date coercion and rate lookback windows

Usage:
    from lotledger.utils import setup_logging, correlation_scope
    from lotledger.utils.date_utils import lookback_dates
"""

from lotledger.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    correlation_scope,
)
from lotledger.utils.logging import setup_logging

__all__ = [
    # Logging
    "setup_logging",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "correlation_scope",
]
