"""In-process retry for external calls.

Usage:
    from infrastructure.resilience.retry import (
        BackoffStrategy,
        RetryConfig,
        execute_with_retry,
    )

    config = RetryConfig(max_retries=2, base_delay_seconds=2,
                         max_delay_seconds=4, backoff=BackoffStrategy.LINEAR)
    value = await execute_with_retry(lambda: client.get_secret(name), config)
"""

from infrastructure.resilience.retry.config import BackoffStrategy, RetryConfig
from infrastructure.resilience.retry.executor import execute_with_retry

__all__ = [
    "BackoffStrategy",
    "RetryConfig",
    "execute_with_retry",
]
