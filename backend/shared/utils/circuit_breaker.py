"""
Per-source circuit breaker.
A prediction site that keeps failing is skipped for a recovery window instead
of being hit (and retried) on every digest run.
"""
from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from shared.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """The source is being skipped; retry_after is the time left until the next probe."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN. Retry after {retry_after:.0f}s.")


class CircuitBreaker:
    """
    Counts consecutive failures of one source.

    After `failure_threshold` failures in a row the breaker opens and calls are
    rejected with CircuitBreakerOpen. Once `recovery_timeout_s` has passed, one
    probe call goes through: success closes the breaker, failure reopens it for
    another full window.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout_s: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = max(1, failure_threshold)
        self.recovery_timeout_s = recovery_timeout_s
        self._clock = clock
        self._lock = asyncio.Lock()

        self._open = False
        self._opened_at = 0.0
        self._consecutive_failures = 0
        self._probing = False
        self.last_error: Optional[str] = None

    def seconds_until_probe(self) -> float:
        if not self._open:
            return 0.0
        return max(0.0, self.recovery_timeout_s - (self._clock() - self._opened_at))

    @property
    def state(self) -> CircuitState:
        if not self._open:
            return CircuitState.CLOSED
        return CircuitState.HALF_OPEN if self.seconds_until_probe() == 0.0 else CircuitState.OPEN

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._consecutive_failures,
            "last_error": self.last_error,
        }

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await func(*args, **kwargs) unless the source is currently skipped."""
        async with self._lock:
            state = self.state
            if state == CircuitState.OPEN:
                raise CircuitBreakerOpen(self.name, max(self.seconds_until_probe(), 1.0))
            if state == CircuitState.HALF_OPEN:
                if self._probing:
                    raise CircuitBreakerOpen(self.name, 1.0)
                self._probing = True
                logger.info("circuit_breaker_probe", name=self.name)

        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            await self._record_failure(exc)
            raise
        except BaseException:
            # Cancelled mid-probe: no verdict, let the next call probe again
            self._probing = False
            raise
        await self._record_success()
        return result

    async def _record_success(self) -> None:
        async with self._lock:
            if self._open:
                logger.info("circuit_breaker_closed", name=self.name)
            self._open = False
            self._probing = False
            self._consecutive_failures = 0
            self.last_error = None

    async def _record_failure(self, exc: Exception) -> None:
        async with self._lock:
            self._consecutive_failures += 1
            self.last_error = str(exc) or type(exc).__name__
            failed_probe = self._probing
            self._probing = False
            if failed_probe or self._consecutive_failures >= self.failure_threshold:
                self._open = True
                self._opened_at = self._clock()
                logger.warning(
                    "circuit_breaker_opened",
                    name=self.name,
                    failures=self._consecutive_failures,
                    probe=failed_probe,
                    error=self.last_error,
                )
