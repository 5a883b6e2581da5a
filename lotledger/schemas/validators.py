# lotledger/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

This module provides:
- Currency code validation and normalization
- Trade date coercion
- Transaction kind normalization

These validators ensure consistent input handling across all schemas.
"""

import re
from datetime import date, datetime

from lotledger.utils.date_utils import as_date

# =============================================================================
# CONSTANTS
# =============================================================================

# Currency: ISO 4217 format (3 uppercase letters)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')

DEFAULT_CURRENCY = "USD"


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str | None) -> str:
    """
    Validate and normalize a currency code.

    Args:
        value: Raw currency input ("usd", " EUR ")

    Returns:
        Normalized code (uppercase, trimmed)

    Raises:
        ValueError: If the code is empty or not 3 letters
    """
    if value is None or not str(value).strip():
        raise ValueError("Currency cannot be empty")

    normalized = str(value).strip().upper()

    if not CURRENCY_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid currency code: '{normalized}'. "
            "Must be 3 letters (ISO 4217), e.g. USD, EUR, IDR"
        )

    return normalized


# =============================================================================
# DATE VALIDATION
# =============================================================================

def validate_trade_date(value: date | datetime | str) -> date:
    """
    Coerce a trade date to a calendar date.

    Accepts dates, datetimes (time part dropped) and ISO strings with or
    without a time part.

    Raises:
        ValueError: If the value is not a recognizable date
    """
    try:
        return as_date(value)
    except TypeError as e:
        raise ValueError(str(e)) from e
    except ValueError as e:
        raise ValueError(f"Invalid date {value!r}: {e}") from e


# =============================================================================
# KIND VALIDATION
# =============================================================================

def normalize_kind(value: object) -> object:
    """Uppercase and trim string kinds ("buy " -> "BUY"); other values pass through."""
    if isinstance(value, str):
        return value.strip().upper()
    return value
