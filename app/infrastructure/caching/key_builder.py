"""Cache key builder for consistent key generation."""

from typing import Any


class CacheKeyBuilder:
    """Build readable, namespaced cache keys.

    Example:
        >>> builder = CacheKeyBuilder(namespace="state-validation")
        >>> builder.build(42)
        'state-validation:42'
    """

    def __init__(self, namespace: str):
        if not namespace:
            raise ValueError("namespace is required")
        self.namespace = namespace

    def build(self, *parts: Any) -> str:
        """Join the namespace and ``parts`` with ``:``.

        Raises:
            ValueError: If no parts are given or a part is empty
        """
        if not parts:
            raise ValueError("at least one key part is required")
        rendered = [str(part) for part in parts]
        if any(not part for part in rendered):
            raise ValueError("cache key parts must not be empty")
        return ":".join([self.namespace, *rendered])
