"""Composed resilience policy: circuit breaker, retry and timeout.

A call runs as ``breaker(retry(timeout(call)))``: the breaker samples one
outcome per logical call, retries happen inside it, and every attempt is
bounded by its own timeout.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from infrastructure.operations import is_transient_error
from infrastructure.resilience.circuit_breaker import CircuitBreaker
from infrastructure.resilience.retry import RetryConfig, execute_with_retry

T = TypeVar("T")


@dataclass
class ResiliencePolicy:
    """Per-service policy applied to every external call.

    Attributes:
        name: Service name used for logs and the breaker
        timeout_seconds: Per-attempt timeout (None disables it)
        retry: Retry limits and backoff
        breaker: Optional circuit breaker shared by all calls to the service
        should_retry: Retry predicate
    """

    name: str
    timeout_seconds: Optional[float] = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    breaker: Optional[CircuitBreaker] = None
    should_retry: Callable[[BaseException], bool] = is_transient_error

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: Optional[str] = None,
    ) -> T:
        """Run a zero-argument coroutine factory under the policy.

        Raises:
            CircuitBreakerOpenError: The service's circuit is open
            asyncio.TimeoutError: The final attempt timed out
            Exception: The final attempt's error, or a non-retryable one
        """
        label = f"{self.name}.{operation_name}" if operation_name else self.name

        async def attempt() -> T:
            if self.timeout_seconds is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout=self.timeout_seconds)

        async def with_retry() -> T:
            return await execute_with_retry(
                attempt, self.retry, name=label, should_retry=self.should_retry
            )

        if self.breaker is None:
            return await with_retry()
        return await self.breaker.call(with_retry)
