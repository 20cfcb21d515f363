"""Result cache abstract base class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class ResultCache(ABC):
    """Abstract base class for time-bounded result caches.

    Holds the latest sweep result per tenant so readers get a recent
    answer without triggering a new sweep.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get the cached value for ``key``.

        Returns:
            The cached value, or None if missing or expired.
        """

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Cache ``value`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    def clear(self) -> None:
        """Clear all cached entries (for testing)."""

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics (implementation-specific)."""
