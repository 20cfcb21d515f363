"""Async retry executor."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.operations import is_transient_error
from infrastructure.resilience.retry.config import RetryConfig

logger = get_module_logger()

T = TypeVar("T")


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig,
    *,
    name: str = "operation",
    should_retry: Callable[[BaseException], bool] = is_transient_error,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` and re-run it on retryable failures.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt
        config: Retry limits and backoff
        name: Label used in log events
        should_retry: Predicate deciding whether an exception is retryable
        on_retry: Optional hook called with (retry_number, error, delay)
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        The operation's result

    Raises:
        The last exception once attempts are exhausted, or immediately
        for a non-retryable exception.
    """
    retry_number = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if retry_number >= config.max_retries or not should_retry(exc):
                if retry_number:
                    logger.warning(
                        "retry_exhausted",
                        name=name,
                        attempts=retry_number + 1,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                raise
            retry_number += 1
            delay = config.delay_for(retry_number)
            logger.info(
                "retrying_operation",
                name=name,
                retry_number=retry_number,
                max_retries=config.max_retries,
                delay_seconds=delay,
                error_type=type(exc).__name__,
            )
            if on_retry is not None:
                on_retry(retry_number, exc, delay)
            await sleep(delay)
