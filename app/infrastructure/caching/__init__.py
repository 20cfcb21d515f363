"""Time-bounded result caching."""

from infrastructure.caching.cache import ResultCache
from infrastructure.caching.key_builder import CacheKeyBuilder
from infrastructure.caching.memory import InMemoryResultCache

__all__ = [
    "ResultCache",
    "CacheKeyBuilder",
    "InMemoryResultCache",
]
