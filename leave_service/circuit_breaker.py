"""
Circuit breaker for calls into the relational store.
Stops hammering a database that is already failing and lets requests fail
fast with a generic error until it recovers.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum
from functools import wraps
from typing import Any

from leave_service.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Blocking calls
    HALF_OPEN = "half_open"  # Probing recovery


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Transitions:
    - CLOSED -> OPEN: after failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: once timeout seconds have passed since the last failure
    - HALF_OPEN -> CLOSED: the probe call succeeds
    - HALF_OPEN -> OPEN: the probe call fails

    Only exceptions listed in ``tracked_exceptions`` count as failures, so
    business errors raised inside a store call never trip the breaker.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 60,
        name: str = "StoreCircuitBreaker",
        tracked_exceptions: tuple[type[BaseException], ...] = (Exception,),
    ):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.name = name
        self.tracked_exceptions = tracked_exceptions

        self.failure_count = 0
        self.state = CircuitState.CLOSED
        self.last_failure_time: float | None = None
        self._lock = threading.Lock()

        logger.info(
            f"CircuitBreaker '{name}' initialized: "
            f"threshold={failure_threshold}, timeout={timeout}s"
        )

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Run ``func`` under breaker protection.

        Raises:
            StoreUnavailableError: if the circuit is OPEN
            Exception: whatever ``func`` raised
        """
        with self._lock:
            if self.state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    logger.info(f"CircuitBreaker '{self.name}': OPEN -> HALF_OPEN")
                    self.state = CircuitState.HALF_OPEN
                else:
                    raise StoreUnavailableError(
                        f"CircuitBreaker '{self.name}' is OPEN. Store unavailable."
                    )

        try:
            result = func(*args, **kwargs)
        except self.tracked_exceptions as e:
            with self._lock:
                self._record_failure()
            logger.error(
                f"CircuitBreaker '{self.name}' failure "
                f"({self.failure_count}/{self.failure_threshold}): {e}"
            )
            raise

        with self._lock:
            if self.state == CircuitState.HALF_OPEN:
                logger.info(f"CircuitBreaker '{self.name}': HALF_OPEN -> CLOSED")
            self._reset()
        return result

    def _record_failure(self):
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                logger.warning(f"CircuitBreaker '{self.name}': {self.state.name} -> OPEN")
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
        """Current breaker state for the health endpoint."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "last_failure_time": self.last_failure_time,
        }


def with_circuit_breaker(method):
    """
    Decorator for store methods: routes the call through ``self.circuit_breaker``.

    Usage:
        class SqlStore:
            @with_circuit_breaker
            def get_employee(self, employee_id): ...
    """

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        return self.circuit_breaker.call(method, self, *args, **kwargs)

    return wrapper
