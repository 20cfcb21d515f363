"""In-process TTL cache."""

import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from infrastructure.caching.cache import ResultCache


class InMemoryResultCache(ResultCache):
    """Dictionary-backed cache with per-entry expiry.

    Expired entries are dropped lazily on read and on ``set``.

    Args:
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._entries[key] = (now + ttl_seconds, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            self._evict_expired(self._clock())
            return {
                "backend": "memory",
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }

    def _evict_expired(self, now: float) -> None:
        expired = [
            key for key, (expires_at, _) in self._entries.items() if expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
