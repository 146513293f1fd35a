"""
Fault tolerance for the persistence collaborator.

1. **Circuit breaker** — after ``CB_FAILURE_THRESHOLD`` consecutive
   connection-level failures every repository call fails fast until
   ``CB_RECOVERY_TIMEOUT`` has elapsed; then one probe call is let through.

       CLOSED ──(threshold reached)──▶ OPEN ──(timeout)──▶ HALF_OPEN
         ▲                                                   │
         └──────────────(probe succeeds)─────────────────────┘

2. **Retry with exponential backoff** — used for the startup connection,
   where a database container may still be booting.

Retries live here and only here; the error translator never retries.
"""

import asyncio
import functools
import logging
import random
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Tuple, Type

from sqlalchemy.exc import InterfaceError

from app.core.config import settings

logger = logging.getLogger(__name__)

# Lost or refused connections only.  OperationalError is left out: SQLite
# raises it for bad statements too, which must not trip the breaker.
CONNECTION_ERRORS: Tuple[Type[BaseException], ...] = (
    InterfaceError,
    ConnectionError,
    TimeoutError,
    OSError,
)


# ────────────────────────────────────────────────────────────────────────────
# Circuit Breaker
# ────────────────────────────────────────────────────────────────────────────


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is open; retry after {retry_after:.1f}s")


class CircuitBreaker:
    """
    Async circuit breaker.

    Parameters
    ----------
    name : str
        Identifier used in logs and the health payload.
    failure_threshold : int
        Consecutive failures before the circuit opens.
    recovery_timeout : float
        Seconds spent OPEN before a probe is allowed (HALF_OPEN).
    expected_exceptions : tuple
        Exception types that count as failures; anything else passes
        through without touching the circuit state.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0.0

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN → HALF_OPEN once the timeout has elapsed."""
        if self._state == CircuitState.OPEN:
            elapsed = time.monotonic() - self._last_failure_time
            if elapsed >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info("Circuit '%s' → HALF_OPEN after %.1fs", self.name, elapsed)
        return self._state

    def _record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit '%s' → CLOSED (probe succeeded)", self.name)
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.error(
                "Circuit '%s' → OPEN after %d failure(s); failing fast for %.1fs",
                self.name,
                self._failure_count,
                self.recovery_timeout,
            )
        else:
            logger.warning(
                "Circuit '%s' failure %d/%d",
                self.name,
                self._failure_count,
                self.failure_threshold,
            )

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """
        Await ``func`` through the breaker.

        Raises :class:`CircuitBreakerError` without calling ``func`` while OPEN.
        """
        if self.state == CircuitState.OPEN:
            retry_after = self.recovery_timeout - (time.monotonic() - self._last_failure_time)
            raise CircuitBreakerError(self.name, max(retry_after, 0.0))

        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions:
            self._record_failure()
            raise
        self._record_success()
        return result

    def reset(self) -> None:
        """Force the circuit back to CLOSED."""
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def get_status(self) -> dict:
        """Snapshot for the health endpoint."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout_s": self.recovery_timeout,
        }


db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    expected_exceptions=CONNECTION_ERRORS,
)


# ────────────────────────────────────────────────────────────────────────────
# Retry with Exponential Backoff
# ────────────────────────────────────────────────────────────────────────────


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[BaseException], ...] = CONNECTION_ERRORS,
) -> Callable:
    """
    Decorator: retry an async function with exponential backoff.

    ``max_retries`` counts retries after the first attempt.  Jitter adds up
    to 50% of the delay.  Non-retryable exceptions propagate immediately;
    the last retryable one is re-raised once retries are exhausted.

    Example::

        @retry_with_backoff(max_retries=5, base_delay=2.0)
        async def connect():
            ...
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            delay = base_delay
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt >= max_retries:
                        logger.error(
                            "All %d retries exhausted for %s: %s",
                            max_retries,
                            func.__qualname__,
                            exc,
                        )
                        raise
                    attempt += 1
                    sleep_for = min(delay, max_delay)
                    if jitter:
                        sleep_for += random.uniform(0, sleep_for * 0.5)
                    logger.warning(
                        "Retry %d/%d for %s in %.2fs (%s)",
                        attempt,
                        max_retries,
                        func.__qualname__,
                        sleep_for,
                        type(exc).__name__,
                    )
                    await asyncio.sleep(sleep_for)
                    delay *= 2

        return wrapper

    return decorator
