# lotledger/services/rates/__init__.py
"""
Historical rate resolution.

Components:
- types: RateQuote, RateUnavailable, RateTable
- base: HistoricalRateProvider abstract interface (with retry helper)
- http_provider: HttpRateProvider for the /get-historical-rate service
- resolver: RateResolver building one RateTable per computation
"""

from lotledger.services.rates.base import BatchRateResult, HistoricalRateProvider
from lotledger.services.rates.http_provider import HttpRateProvider
from lotledger.services.rates.resolver import RateResolver
from lotledger.services.rates.types import RateKey, RateQuote, RateTable, RateUnavailable

__all__ = [
    # Types
    "RateKey",
    "RateQuote",
    "RateTable",
    "RateUnavailable",
    # Providers
    "BatchRateResult",
    "HistoricalRateProvider",
    "HttpRateProvider",
    # Resolver
    "RateResolver",
]
