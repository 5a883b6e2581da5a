# lotledger/config.py
"""
Library configuration using Pydantic Settings.

Loads configuration from environment variables (and an optional .env file in
the working directory) with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- LOG_LEVEL / LOG_FORMAT: Logging setup (see lotledger.utils.logging)
- REFERENCE_CURRENCY: Currency the rate service quotes every rate against
- RATE_*: Historical rate service client, resolver and breaker settings

Rate convention:
    A rate is "units of CURRENCY per 1 unit of REFERENCE_CURRENCY".
    The reference currency itself always has rate 1 and is never fetched.

Usage:
    from lotledger.config import settings

    provider = HttpRateProvider(base_url=settings.rate_service_url)
"""
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")
        - REFERENCE_CURRENCY: Base of all service rates (default: "USD")
        - DEFAULT_TARGET_CURRENCY: Display currency when none is given (default: "USD")

    Rate service settings (optional, with sensible defaults):
        - RATE_SERVICE_URL: Base URL of the historical rate service
        - RATE_REQUEST_TIMEOUT: Per-request HTTP timeout in seconds
        - RATE_FETCH_TIMEOUT: Budget for the whole batched fetch phase of one call
        - RATE_LOOKBACK_DAYS: Dates tried per lookup, requested date included
        - RATE_MAX_CONCURRENCY: Lookups in flight at once
        - RATE_MAX_RETRY_ATTEMPTS / RATE_RETRY_MIN_WAIT / RATE_RETRY_MAX_WAIT
        - RATE_BREAKER_FAILURE_THRESHOLD / RATE_BREAKER_RECOVERY_TIMEOUT
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    # =========================================================================
    # CURRENCIES
    # =========================================================================
    reference_currency: str = Field(
        default="USD",
        description="Currency every service rate is expressed against (rate = 1)"
    )
    default_target_currency: str = Field(
        default="USD",
        description="Target currency used when a caller does not pass one"
    )

    # =========================================================================
    # HISTORICAL RATE SERVICE
    # =========================================================================
    rate_service_url: str = Field(
        default="http://localhost:8000",
        description="Base URL exposing GET /get-historical-rate"
    )
    rate_request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout per rate request in seconds"
    )
    rate_fetch_timeout: float | None = Field(
        default=30.0,
        gt=0,
        description="Timeout for the whole batched rate-fetch phase (None = unbounded)"
    )
    rate_lookback_days: int = Field(
        default=5,
        ge=1,
        le=31,
        description="Number of dates tried per lookup, walking back one day at a time"
    )
    rate_max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum rate lookups in flight at once"
    )
    rate_max_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request for retryable failures"
    )
    rate_retry_min_wait: float = Field(
        default=1.0,
        ge=0,
        description="Minimum exponential backoff wait in seconds"
    )
    rate_retry_max_wait: float = Field(
        default=10.0,
        ge=0,
        description="Maximum exponential backoff wait in seconds"
    )
    rate_breaker_failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures before the rate circuit breaker opens"
    )
    rate_breaker_recovery_timeout: float = Field(
        default=60.0,
        ge=0,
        description="Seconds the breaker stays open before probing again"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("reference_currency", "default_target_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Normalize currency codes: trim whitespace and uppercase."""
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_retry_window(self) -> "Settings":
        """Backoff bounds must be ordered."""
        if self.rate_retry_min_wait > self.rate_retry_max_wait:
            raise ValueError(
                f"RATE_RETRY_MIN_WAIT ({self.rate_retry_min_wait}) cannot exceed "
                f"RATE_RETRY_MAX_WAIT ({self.rate_retry_max_wait})"
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


# Create single instance
settings = Settings()
