"""Circuit breaker and retry-with-jitter helpers for external calls."""

from __future__ import annotations

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from flightwx.domain.errors import CircuitOpenError, ProviderError
from flightwx.domain.models import CircuitState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CircuitSnapshot:
    """Point-in-time view of a circuit breaker."""

    name: str
    state: CircuitState
    failure_count: int
    success_count: int
    last_failure_time: Optional[float]


class CircuitBreaker:
    """Per-dependency circuit breaker.

    CLOSED counts consecutive failures and opens at ``failure_threshold``.
    OPEN rejects calls until ``reset_timeout`` has elapsed since the last
    failure, then lets trial calls through as HALF_OPEN.
    HALF_OPEN closes after ``success_threshold`` consecutive successes and
    reopens on any failure. Exceptions listed in ``ignored`` pass through
    without counting either way.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        reset_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        ignored: tuple[type[BaseException], ...] = (),
    ):
        self.name = name
        self.ignored = ignored
        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def snapshot(self) -> CircuitSnapshot:
        with self._lock:
            self._maybe_half_open()
            return CircuitSnapshot(
                name=self.name,
                state=self._state,
                failure_count=self._failure_count,
                success_count=self._success_count,
                last_failure_time=self._last_failure_time,
            )

    def _maybe_half_open(self) -> None:
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return
        if self._clock() - self._last_failure_time >= self.reset_timeout:
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0
            logger.info("Circuit '%s' half-open after cooldown", self.name)

    def can_execute(self) -> bool:
        with self._lock:
            self._maybe_half_open()
            return self._state != CircuitState.OPEN

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    self._state = CircuitState.CLOSED
                    self._failure_count = 0
                    self._success_count = 0
                    self._last_failure_time = None
                    logger.info("Circuit '%s' closed", self.name)
                return
            self._failure_count = 0

    def record_failure(self) -> None:
        with self._lock:
            self._last_failure_time = self._clock()
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                self._success_count = 0
                logger.warning("Circuit '%s' reopened by half-open failure", self.name)
                return
            self._failure_count += 1
            if self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(
                    "Circuit '%s' opened after %d consecutive failures",
                    self.name,
                    self._failure_count,
                )

    async def call(self, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func`` under the breaker, failing fast while open."""

        if not self.can_execute():
            raise CircuitOpenError(self.name)
        try:
            result = await func()
        except asyncio.CancelledError:
            raise
        except self.ignored:
            raise
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result


def is_transient_error(exc: BaseException) -> bool:
    """Timeouts, connection failures and 5xx responses are worth retrying."""

    if isinstance(exc, ProviderError):
        return exc.retryable
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff where each delay is jittered to 50-100% of nominal."""

    max_retries: int = 2
    base_delay: float = 0.5
    factor: float = 2.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int, rand: Callable[[float, float], float] = random.uniform) -> float:
        nominal = min(self.base_delay * (self.factor ** attempt), self.max_delay)
        return nominal * rand(0.5, 1.0)


async def retry_with_jitter(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    should_retry: Callable[[BaseException], bool] = is_transient_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "call",
) -> T:
    """Await ``func`` with up to ``policy.max_retries`` retries on transient errors."""

    attempt = 0
    while True:
        try:
            return await func()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if attempt >= policy.max_retries or not should_retry(exc):
                raise
            delay = policy.delay_for(attempt)
            attempt += 1
            logger.debug(
                "Retrying %s in %.2fs (attempt %d/%d): %s",
                label,
                delay,
                attempt,
                policy.max_retries,
                exc,
            )
            await sleep(delay)


__all__ = [
    "CircuitBreaker",
    "CircuitSnapshot",
    "RetryPolicy",
    "is_transient_error",
    "retry_with_jitter",
]
