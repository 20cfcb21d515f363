"""Unit tests for the in-memory result cache and key builder."""

import pytest

from infrastructure.caching import CacheKeyBuilder, InMemoryResultCache

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return InMemoryResultCache(clock=clock)


class TestInMemoryResultCache:
    def test_returns_value_within_ttl(self, cache, clock):
        cache.set("state-validation:1", {"valid": True}, ttl_seconds=300)
        clock.now = 299.9

        assert cache.get("state-validation:1") == {"valid": True}

    def test_expires_at_ttl(self, cache, clock):
        cache.set("state-validation:1", "result", ttl_seconds=300)
        clock.now = 300

        assert cache.get("state-validation:1") is None
        assert cache.get_stats()["entries"] == 0

    def test_set_replaces_and_restarts_ttl(self, cache, clock):
        cache.set("k", "old", ttl_seconds=10)
        clock.now = 8
        cache.set("k", "new", ttl_seconds=10)
        clock.now = 15

        assert cache.get("k") == "new"

    def test_delete_and_clear(self, cache):
        cache.set("a", 1, ttl_seconds=10)
        cache.set("b", 2, ttl_seconds=10)

        cache.delete("a")
        cache.delete("missing")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.clear()
        assert cache.get("b") is None

    def test_stats_count_hits_and_misses(self, cache):
        cache.set("a", 1, ttl_seconds=10)
        cache.get("a")
        cache.get("a")
        cache.get("b")

        assert cache.get_stats() == {
            "backend": "memory",
            "entries": 1,
            "hits": 2,
            "misses": 1,
        }

    def test_expired_entries_are_evicted_on_set(self, cache, clock):
        cache.set("a", 1, ttl_seconds=1)
        clock.now = 5
        cache.set("b", 2, ttl_seconds=10)

        assert cache._entries.keys() == {"b"}

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_non_positive_ttl_rejected(self, cache, ttl):
        with pytest.raises(ValueError):
            cache.set("a", 1, ttl_seconds=ttl)


class TestCacheKeyBuilder:
    def test_builds_namespaced_key(self):
        assert CacheKeyBuilder("state-validation").build(42) == "state-validation:42"

    def test_multiple_parts(self):
        builder = CacheKeyBuilder("membership")

        assert builder.build("tenant", 7, "user-1") == "membership:tenant:7:user-1"

    def test_namespace_required(self):
        with pytest.raises(ValueError):
            CacheKeyBuilder("")

    def test_parts_required(self):
        with pytest.raises(ValueError):
            CacheKeyBuilder("ns").build()

    def test_empty_part_rejected(self):
        with pytest.raises(ValueError):
            CacheKeyBuilder("ns").build(1, "")
