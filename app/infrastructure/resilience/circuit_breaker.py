"""Circuit breaker for external service calls.

The breaker samples call outcomes over a sliding time window and opens
when the failure ratio crosses a threshold:

1. CLOSED: Normal operation, calls pass through and outcomes are sampled
2. OPEN: Calls fail fast with CircuitBreakerOpenError for the break duration
3. HALF_OPEN: A single trial call decides between CLOSED and OPEN

State transitions:
- CLOSED -> OPEN: failure ratio >= threshold once minimum_throughput
  calls were sampled inside the window
- OPEN -> HALF_OPEN: after break_seconds
- HALF_OPEN -> CLOSED: trial call succeeds
- HALF_OPEN -> OPEN: trial call fails
"""

import threading
import time
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Deque, Optional, Tuple, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult

logger = get_module_logger()

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls immediately
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreakerOpenError(Exception):
    """Raised when the circuit is open and the call is rejected.

    Never retried: the caller should report the check as not verified.
    """

    retryable = False

    def __init__(self, name: str, retry_in_seconds: float = 0.0):
        self.name = name
        self.retry_in_seconds = retry_in_seconds
        super().__init__(
            f"Circuit breaker '{name}' is OPEN. "
            f"Retry in {int(retry_in_seconds)} seconds."
        )

    @property
    def operation_result(self) -> OperationResult:
        return OperationResult.transient_error(
            str(self),
            error_code="CIRCUIT_OPEN",
            retry_after=int(self.retry_in_seconds) or None,
        )


class CircuitBreaker:
    """Failure-ratio circuit breaker for async calls.

    Args:
        name: Name of the circuit (typically the service name)
        failure_ratio: Ratio of failed sampled calls that opens the circuit
        sampling_seconds: Width of the sliding sampling window
        minimum_throughput: Sampled calls required before the ratio applies
        break_seconds: Seconds the circuit stays OPEN before a trial call
        failure_predicate: Decides which exceptions count as failures.
            Exceptions it rejects are re-raised without being sampled as
            failures. Defaults to counting every exception.
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        name: str,
        failure_ratio: float = 0.5,
        sampling_seconds: float = 30.0,
        minimum_throughput: int = 5,
        break_seconds: float = 60.0,
        failure_predicate: Optional[Callable[[BaseException], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not 0 < failure_ratio <= 1:
            raise ValueError("failure_ratio must be in (0, 1]")
        if minimum_throughput < 1:
            raise ValueError("minimum_throughput must be at least 1")

        self.name = name
        self.failure_ratio = failure_ratio
        self.sampling_seconds = sampling_seconds
        self.minimum_throughput = minimum_throughput
        self.break_seconds = break_seconds
        self._failure_predicate = failure_predicate
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._samples: Deque[Tuple[float, bool]] = deque()
        self._opened_at: Optional[float] = None
        self._half_open_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            return self._state

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """Execute an async function through the circuit breaker.

        Args:
            func: Coroutine function to call
            *args, **kwargs: Arguments to pass to function

        Returns:
            Result from function

        Raises:
            CircuitBreakerOpenError: If the circuit is open
            Exception: Any exception raised by func
        """
        self._before_call()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            if self._failure_predicate is None or self._failure_predicate(e):
                self._on_failure(e)
            else:
                self._on_success()
            raise
        except BaseException:
            # Cancellation is not an outcome; release a half-open trial slot.
            with self._lock:
                self._half_open_in_flight = False
            raise

        self._on_success()
        return result

    def _before_call(self) -> None:
        with self._lock:
            if self._state == CircuitState.OPEN:
                remaining = self._remaining_break()
                if remaining > 0:
                    logger.warning(
                        "circuit_breaker_open",
                        name=self.name,
                        retry_in_seconds=int(remaining),
                    )
                    raise CircuitBreakerOpenError(self.name, remaining)
                self._transition_to_half_open()

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_in_flight:
                    logger.debug("circuit_breaker_half_open_limit", name=self.name)
                    raise CircuitBreakerOpenError(self.name, 0.0)
                self._half_open_in_flight = True

    def _on_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.info("circuit_breaker_success_half_open", name=self.name)
                self._transition_to_closed()
            elif self._state == CircuitState.CLOSED:
                self._record(True)

    def _on_failure(self, exception: Exception) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.warning(
                    "circuit_breaker_recovery_failed",
                    name=self.name,
                    error=str(exception),
                )
                self._transition_to_open()
                return
            if self._state != CircuitState.CLOSED:
                return

            self._record(False)
            total, failures = self._counts()
            if total >= self.minimum_throughput and (
                failures / total >= self.failure_ratio
            ):
                logger.error(
                    "circuit_breaker_threshold_exceeded",
                    name=self.name,
                    sampled_calls=total,
                    failures=failures,
                    failure_ratio=self.failure_ratio,
                    error=str(exception),
                )
                self._transition_to_open()
            else:
                logger.warning(
                    "circuit_breaker_failure",
                    name=self.name,
                    sampled_calls=total,
                    failures=failures,
                    error=str(exception),
                )

    def _record(self, success: bool) -> None:
        now = self._clock()
        self._samples.append((now, success))
        self._trim(now)

    def _trim(self, now: float) -> None:
        horizon = now - self.sampling_seconds
        while self._samples and self._samples[0][0] < horizon:
            self._samples.popleft()

    def _counts(self) -> Tuple[int, int]:
        self._trim(self._clock())
        failures = sum(1 for _, ok in self._samples if not ok)
        return len(self._samples), failures

    def _remaining_break(self) -> float:
        if self._opened_at is None:
            return 0.0
        return self.break_seconds - (self._clock() - self._opened_at)

    def _transition_to_closed(self) -> None:
        logger.info("circuit_breaker_closed", name=self.name)
        self._state = CircuitState.CLOSED
        self._samples.clear()
        self._opened_at = None
        self._half_open_in_flight = False

    def _transition_to_open(self) -> None:
        logger.error(
            "circuit_breaker_opened",
            name=self.name,
            break_seconds=self.break_seconds,
        )
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._half_open_in_flight = False

    def _transition_to_half_open(self) -> None:
        logger.info("circuit_breaker_half_open", name=self.name)
        self._state = CircuitState.HALF_OPEN
        self._half_open_in_flight = False

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        with self._lock:
            total, failures = self._counts()
            return {
                "name": self.name,
                "state": self._state.value,
                "sampled_calls": total,
                "failure_count": failures,
                "retry_in_seconds": (
                    max(0, int(self._remaining_break()))
                    if self._state == CircuitState.OPEN
                    else 0
                ),
            }

    def reset(self) -> None:
        """Manually reset circuit breaker (for testing/admin operations)."""
        with self._lock:
            logger.info("circuit_breaker_manual_reset", name=self.name)
            self._transition_to_closed()
