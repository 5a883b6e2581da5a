# lotledger/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent domain-specific errors and contain NO transport
or presentation knowledge. Callers decide how to surface them.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── MalformedTransactionError
    └── RateError
        ├── RateNotFoundError
        ├── ProviderUnavailableError
        ├── RateLimitError
        └── InvalidRateError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when the rate service breaker is open and blocking requests

Note:
    A missing historical rate is NOT fatal to a replay. The rate resolver
    turns RateError into a RateUnavailable warning record and the result is
    flagged as degraded. Only MalformedTransactionError aborts a replay.
"""

from datetime import date


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when input validation fails.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class MalformedTransactionError(ValidationError):
    """
    Raised when a transaction carries unusable numeric or structural data.

    Examples:
    - Non-finite quantity or price (NaN, Infinity)
    - Zero or negative quantity
    - Negative price
    - Missing currency or date

    The replay is aborted: a partial ledger is worse than a clear error.

    Attributes:
        transaction_id: Identifier of the offending transaction
        reason: What is wrong with it
    """

    def __init__(
            self,
            transaction_id: int | str | None,
            reason: str,
            field: str | None = None,
    ) -> None:
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(
            f"Malformed transaction {transaction_id!r}: {reason}",
            field=field,
        )


# =============================================================================
# RATE ERRORS
# =============================================================================


class RateError(ServiceError):
    """
    Base exception for historical rate lookup failures.

    Attributes:
        currency: The currency code being looked up (optional)
    """

    def __init__(self, message: str, currency: str | None = None) -> None:
        self.currency = currency
        super().__init__(message)


class RateNotFoundError(RateError):
    """
    Raised when no rate exists for a currency within the lookback window.

    Attributes:
        rate_date: The date originally requested
        lookback_days: How many dates were tried (requested date included)
    """

    def __init__(
            self,
            currency: str,
            rate_date: date,
            lookback_days: int = 1,
    ) -> None:
        self.rate_date = rate_date
        self.lookback_days = lookback_days
        super().__init__(
            f"No rate for {currency} in {lookback_days}-day window ending {rate_date}",
            currency=currency,
        )


class ProviderUnavailableError(RateError):
    """
    Raised when the rate provider is temporarily unavailable.

    Examples:
    - Network timeout
    - Server errors (500, 502, 503)

    This is a retryable error.
    """

    def __init__(
            self,
            provider: str,
            reason: str,
            currency: str | None = None,
    ) -> None:
        self.provider = provider
        self.reason = reason
        super().__init__(f"Rate provider '{provider}' is unavailable: {reason}", currency=currency)


class RateLimitError(RateError):
    """
    Raised when the provider's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by the service)
    """

    def __init__(
            self,
            provider: str,
            retry_after: int | None = None,
            currency: str | None = None,
    ) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        self.provider = provider
        self.retry_after = retry_after
        super().__init__(message, currency=currency)


class InvalidRateError(RateError):
    """
    Raised when the provider answers with a rate that cannot be used.

    Examples:
    - Zero or negative rate
    - Non-numeric payload

    Attributes:
        value: The raw value returned
    """

    def __init__(self, currency: str, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid rate for {currency}: {value!r}", currency=currency)


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from lotledger.services.circuit_breaker import CircuitBreakerOpen  # noqa: E402

__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "MalformedTransactionError",
    # Rates
    "RateError",
    "RateNotFoundError",
    "ProviderUnavailableError",
    "RateLimitError",
    "InvalidRateError",
    # Circuit Breaker
    "CircuitBreakerOpen",
]
