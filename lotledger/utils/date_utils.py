# lotledger/utils/date_utils.py
"""
Date helpers shared by the rate client and the ledger.

Transactions carry calendar dates only; these helpers keep datetime and
ISO-string inputs from leaking time-of-day semantics into the replay.
"""

from datetime import date, datetime, timedelta


def as_date(value: date | datetime | str) -> date:
    """
    Coerce a date-like value to a plain date.

    Args:
        value: A date, a datetime (time part dropped) or an ISO string
               ("2024-01-15" or "2024-01-15T10:00:00Z")

    Returns:
        The calendar date

    Raises:
        ValueError: If a string cannot be parsed
        TypeError: If the value is not date-like
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 10:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    raise TypeError(f"Expected a date, got {type(value).__name__}")


def lookback_dates(start: date, days: int) -> list[date]:
    """
    Dates to try when a rate is missing, newest first.

    Example:
        >>> lookback_dates(date(2024, 1, 8), 3)
        [date(2024, 1, 8), date(2024, 1, 7), date(2024, 1, 6)]
    """
    if days < 1:
        raise ValueError("days must be at least 1")
    return [start - timedelta(days=offset) for offset in range(days)]
