"""Resilience patterns for external calls.

Circuit breakers, in-process retry and the composed per-service policy.
"""

from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
)
from infrastructure.resilience.policies import ResiliencePolicy
from infrastructure.resilience.retry import (
    BackoffStrategy,
    RetryConfig,
    execute_with_retry,
)
from infrastructure.resilience.service import (
    DIRECTORY,
    RECORD_STORE,
    SECRET_STORE,
    ResilienceService,
)

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    # Retry
    "BackoffStrategy",
    "RetryConfig",
    "execute_with_retry",
    # Policies
    "ResiliencePolicy",
    "ResilienceService",
    "DIRECTORY",
    "SECRET_STORE",
    "RECORD_STORE",
]
