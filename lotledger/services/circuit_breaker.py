# lotledger/services/circuit_breaker.py
"""
Circuit breaker guarding calls to the historical rate service.

When the rate service is down, every replay would otherwise spend its whole
fetch timeout retrying. After a threshold of consecutive failures the breaker
opens and lookups fail fast; the resolver then applies the soft fallback
(rate = 1, degraded result) immediately.

States:
    CLOSED    - Normal operation, lookups pass through
    OPEN      - Too many failures, lookups rejected immediately
    HALF_OPEN - Recovery probe, a limited number of lookups allowed

State Transitions:
    CLOSED -> OPEN: failure count reaches threshold
    OPEN -> HALF_OPEN: recovery timeout expires
    HALF_OPEN -> CLOSED: a probe succeeds
    HALF_OPEN -> OPEN: a probe fails

A call cancelled by its caller (asyncio.CancelledError, e.g. when the
resolver's overall timeout expires) is neither a success nor a failure.

Usage:
    breaker = CircuitBreaker(name="rates-http", failure_threshold=5)

    try:
        with breaker:
            response = await client.get(url)
    except CircuitBreakerOpen:
        ...

The breaker is a plain (synchronous) context manager so it can wrap an
awaited call: the lock is only held while entering and exiting, never across
the await.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """
    Raised when the circuit breaker is open.

    Attributes:
        breaker_name: Name of the circuit breaker
        time_remaining: Seconds until the next recovery probe is allowed
    """

    def __init__(self, breaker_name: str, time_remaining: float) -> None:
        self.breaker_name = breaker_name
        self.time_remaining = time_remaining
        super().__init__(
            f"Circuit breaker '{breaker_name}' is open. "
            f"Retry in {time_remaining:.1f} seconds."
        )


@dataclass
class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Attributes:
        name: Identifier used in logs and errors
        failure_threshold: Consecutive failures before opening
        recovery_timeout: Seconds to stay open before probing
        half_open_max_calls: Probes allowed while half-open
        excluded_exceptions: Exception types that don't count as failures
    """

    name: str
    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    half_open_max_calls: int = 1
    excluded_exceptions: tuple[type[BaseException], ...] = field(default_factory=tuple)

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _opened_at: float = field(default=0.0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout cannot be negative")
        if self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be at least 1")

        logger.debug(
            f"CircuitBreaker '{self.name}' initialized: "
            f"threshold={self.failure_threshold}, "
            f"recovery_timeout={self.recovery_timeout}s"
        )

    @property
    def state(self) -> CircuitState:
        """Current state, after applying any due OPEN -> HALF_OPEN transition."""
        with self._lock:
            self._refresh()
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def _refresh(self) -> None:
        # Lock must be held
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._opened_at >= self.recovery_timeout:
                self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        # Lock must be held
        old_state = self._state
        self._state = new_state

        if new_state == CircuitState.OPEN:
            self._opened_at = time.monotonic()
        elif new_state == CircuitState.HALF_OPEN:
            self._half_open_calls = 0
        elif new_state == CircuitState.CLOSED:
            self._failure_count = 0

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(f"CircuitBreaker '{self.name}' state change: {old_state.value} -> {new_state.value}")

    def _time_until_recovery(self) -> float:
        return max(0.0, self.recovery_timeout - (time.monotonic() - self._opened_at))

    def __enter__(self) -> "CircuitBreaker":
        with self._lock:
            self._refresh()

            if self._state == CircuitState.OPEN:
                raise CircuitBreakerOpen(self.name, self._time_until_recovery())

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitBreakerOpen(self.name, 0.0)
                self._half_open_calls += 1

        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        with self._lock:
            if isinstance(exc_val, asyncio.CancelledError):
                # Frees the probe slot without judging the service
                if self._state == CircuitState.HALF_OPEN:
                    self._half_open_calls = max(0, self._half_open_calls - 1)
                return False

            failed = exc_val is not None and not isinstance(exc_val, self.excluded_exceptions)

            if not failed:
                if self._state == CircuitState.HALF_OPEN:
                    self._transition_to(CircuitState.CLOSED)
                else:
                    self._failure_count = 0
            elif self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.failure_threshold:
                    self._transition_to(CircuitState.OPEN)

        return False

    def reset(self) -> None:
        """Manually close the breaker."""
        with self._lock:
            self._transition_to(CircuitState.CLOSED)
