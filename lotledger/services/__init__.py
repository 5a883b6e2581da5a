# lotledger/services/__init__.py
"""
Service layer for the lot-accounting engine.

Services:
- Have NO knowledge of presentation or transport (no HTTP status codes leak)
- Raise domain-specific exceptions
- Receive their collaborators (rate providers) via the constructor
- Are easily testable via dependency injection

Usage:
    from lotledger.services import HoldingMetricsService, HttpRateProvider
    from lotledger.services import (
        MalformedTransactionError,
        RateNotFoundError,
        CircuitBreakerOpen,
    )

Architecture:
    services/
    ├── __init__.py          # This file - main exports
    ├── exceptions.py        # Domain exceptions
    ├── circuit_breaker.py   # Circuit breaker for the rate service
    ├── rates/               # Historical rate resolution
    │   ├── types.py         # RateQuote, RateTable, RateUnavailable
    │   ├── base.py          # HistoricalRateProvider interface
    │   ├── http_provider.py # HTTP client for /get-historical-rate
    │   └── resolver.py      # Concurrent per-call resolution
    └── ledger/              # FIFO lot accounting
        ├── types.py
        ├── normalizer.py
        ├── lot_tracker.py
        ├── calculators.py
        └── service.py       # HoldingMetricsService
"""

from lotledger.services.exceptions import (
    ServiceError,
    ValidationError,
    MalformedTransactionError,
    RateError,
    RateNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
    InvalidRateError,
)
from lotledger.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpen,
    CircuitState,
)
from lotledger.services.rates import (
    HistoricalRateProvider,
    HttpRateProvider,
    RateResolver,
)
from lotledger.services.ledger import (
    HoldingMetricsService,
    compute_holding_metrics,
)

__all__ = [
    # Services
    "HoldingMetricsService",
    "compute_holding_metrics",
    "HistoricalRateProvider",
    "HttpRateProvider",
    "RateResolver",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerOpen",
    "CircuitState",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "MalformedTransactionError",
    "RateError",
    "RateNotFoundError",
    "ProviderUnavailableError",
    "RateLimitError",
    "InvalidRateError",
]
