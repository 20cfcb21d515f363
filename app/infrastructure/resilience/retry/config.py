"""Retry policy configuration.

Defines how many times an external call is re-attempted and how long to
wait between attempts.
"""

from dataclasses import dataclass
from enum import Enum


class BackoffStrategy(Enum):
    """How the delay grows between attempts."""

    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass
class RetryConfig:
    """Configuration for in-process retries of a single logical call.

    Attributes:
        max_retries: Attempts after the first one (0 disables retries)
        base_delay_seconds: Delay before the first retry
        max_delay_seconds: Cap applied to every computed delay
        backoff: Delay growth strategy

    Delays for retry ``n`` (1-based):
        CONSTANT: base
        LINEAR: base * n
        EXPONENTIAL: base * 2 ** (n - 1)

    Example:
        # Directory calls: 3 retries, 1s, 2s, 4s (capped at 30s)
        config = RetryConfig(
            max_retries=3,
            base_delay_seconds=1,
            max_delay_seconds=30,
            backoff=BackoffStrategy.EXPONENTIAL,
        )
    """

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    backoff: BackoffStrategy = BackoffStrategy.EXPONENTIAL

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry_number: int) -> float:
        """Return the delay in seconds before retry ``retry_number`` (1-based)."""
        if retry_number < 1:
            raise ValueError("retry_number must be at least 1")
        if self.backoff == BackoffStrategy.CONSTANT:
            delay = self.base_delay_seconds
        elif self.backoff == BackoffStrategy.LINEAR:
            delay = self.base_delay_seconds * retry_number
        else:
            delay = self.base_delay_seconds * (2 ** (retry_number - 1))
        return min(delay, self.max_delay_seconds)
