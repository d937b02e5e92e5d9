"""
Circuit breaker for calls into the leave record store.
Stops hammering Snowflake while it is down and fails fast instead.
"""

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitBreakerOpenError(RuntimeError):
    """Raised when circuit breaker blocks execution."""


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Store calls pass through
    OPEN = "open"  # Store calls fail fast
    HALF_OPEN = "half_open"  # One probe call allowed


class CircuitBreaker:
    """
    Counts consecutive store failures and opens after ``failure_threshold``.

    Transitions:
    - CLOSED -> OPEN: after failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: once timeout seconds have passed since the last failure
    - HALF_OPEN -> CLOSED: the probe call succeeded
    - HALF_OPEN -> OPEN: the probe call failed
    """

    def __init__(self, failure_threshold: int = 5, timeout: int = 60, name: str = "StoreCircuitBreaker"):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name

        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time = None

        logger.info(
            f"CircuitBreaker '{name}' initialized: "
            f"threshold={failure_threshold}, timeout={timeout}s"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Run ``func`` unless the circuit is open.

        Raises:
            CircuitBreakerOpenError: If the circuit is OPEN and not yet due a probe.
            Exception: Whatever ``func`` raised, after recording the failure.
        """
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                logger.info(f"CircuitBreaker '{self.name}': OPEN -> HALF_OPEN")
                self.state = CircuitState.HALF_OPEN
            else:
                raise CircuitBreakerOpenError(
                    f"CircuitBreaker '{self.name}' is OPEN. Leave store unavailable."
                )

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure()
            logger.error(
                f"CircuitBreaker '{self.name}' failure "
                f"({self.failure_count}/{self.failure_threshold}): {e}"
            )
            raise

        if self.state == CircuitState.HALF_OPEN:
            logger.info(f"CircuitBreaker '{self.name}': HALF_OPEN -> CLOSED")
        self._reset()
        return result

    def _record_failure(self):
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                logger.warning(f"CircuitBreaker '{self.name}': {self.state.value} -> open")
            self.state = CircuitState.OPEN

    def _should_attempt_reset(self) -> bool:
        if self.last_failure_time is None:
            return True
        return time.time() - self.last_failure_time >= self.timeout

    def _reset(self):
        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time = None

    def get_state(self) -> dict:
        """Get current circuit breaker state for monitoring."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time,
        }
