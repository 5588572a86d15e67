"""Tests for caching utilities."""

import time
import pytest

from entity_graph.models import Document, EntityMention, EntityType
from entity_graph.utils.cache import (
    CacheStats,
    ExtractionCache,
    ExtractionCacheEntry,
    LRUCache,
)


def make_mention(name="Tokyo"):
    return EntityMention(
        type=EntityType.PLACE,
        name=name,
        normalized_name=name.lower(),
        confidence=0.95,
    )


class TestLRUCache:
    """Tests for LRUCache."""

    def test_basic_get_set(self):
        """Test basic get and set operations."""
        cache: LRUCache[str] = LRUCache(max_size=10)
        cache.set("key1", "value1")

        assert cache.get("key1") == "value1"
        assert cache.get("nonexistent") is None

    def test_lru_eviction(self):
        """Test LRU eviction when cache is full."""
        cache: LRUCache[int] = LRUCache(max_size=3)

        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        # Access "a" to make it recently used
        assert cache.get("a") == 1

        cache.set("d", 4)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.get("d") == 4
        assert cache.get_stats().evictions == 1

    def test_ttl_expiry(self):
        """Test TTL-based expiry."""
        cache: LRUCache[str] = LRUCache(max_size=10, ttl_seconds=0.1)
        cache.set("key", "value")

        assert cache.get("key") == "value"

        time.sleep(0.15)

        assert cache.get("key") is None

    def test_ttl_override(self):
        """Test TTL override for specific entry."""
        cache: LRUCache[str] = LRUCache(max_size=10, ttl_seconds=1.0)

        cache.set("short", "value", ttl=0.1)
        cache.set("long", "value")

        time.sleep(0.15)

        assert cache.get("short") is None
        assert cache.get("long") == "value"

    def test_last_writer_wins(self):
        """Test that a second set replaces the value."""
        cache: LRUCache[str] = LRUCache(max_size=10)
        cache.set("key", "first")
        cache.set("key", "second")

        assert cache.get("key") == "second"
        assert len(cache) == 1

    def test_invalidate(self):
        """Test manual invalidation."""
        cache: LRUCache[str] = LRUCache(max_size=10)
        cache.set("key", "value")

        assert cache.invalidate("key") is True
        assert cache.get("key") is None
        assert cache.invalidate("nonexistent") is False

    def test_clear(self):
        """Test clearing all entries."""
        cache: LRUCache[str] = LRUCache(max_size=10)
        cache.set("a", "1")
        cache.set("b", "2")

        cache.clear()

        assert len(cache) == 0
        assert cache.get_stats().size == 0

    def test_cleanup_expired(self):
        """Test removal of expired entries."""
        cache: LRUCache[str] = LRUCache(max_size=10)
        cache.set("short", "value", ttl=0.05)
        cache.set("forever", "value")

        time.sleep(0.1)

        assert cache.cleanup_expired() == 1
        assert len(cache) == 1

    def test_stats(self):
        """Test hit and miss accounting."""
        cache: LRUCache[str] = LRUCache(max_size=10)
        cache.set("key", "value")

        cache.get("key")
        cache.get("key")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)

    def test_invalid_size(self):
        """Test that a non-positive size is rejected."""
        with pytest.raises(ValueError):
            LRUCache(max_size=0)


class TestCacheStats:
    """Tests for CacheStats."""

    def test_hit_rate_without_traffic(self):
        """Test that an unused cache reports a zero hit rate."""
        assert CacheStats().hit_rate == 0.0


class TestExtractionCache:
    """Tests for ExtractionCache."""

    def test_fingerprint_is_stable(self):
        """Test that equal documents share a fingerprint."""
        first = Document(identifier="a", title="T", content="Tokyo", tags=["japan"])
        second = Document(identifier="a", title="T", content="Tokyo", tags=["japan"])

        assert ExtractionCache.fingerprint(first) == ExtractionCache.fingerprint(second)
        assert len(ExtractionCache.fingerprint(first)) == 32

    @pytest.mark.parametrize(
        "changes",
        [
            {"identifier": "b"},
            {"title": "Other"},
            {"excerpt": "Summary"},
            {"content": "Kyoto"},
            {"tags": ["japan", "food"]},
        ],
    )
    def test_fingerprint_changes_with_content(self, changes):
        """Test that any field change produces a new fingerprint."""
        base = Document(identifier="a", title="T", content="Tokyo", tags=["japan"])
        changed = base.model_copy(update=changes)

        assert ExtractionCache.fingerprint(base) != ExtractionCache.fingerprint(changed)

    def test_fingerprint_respects_field_boundaries(self):
        """Test that separator characters inside fields cannot shift content between fields."""
        first = Document(identifier="a", title="x\x1fy", excerpt="z")
        second = Document(identifier="a", title="x", excerpt="y", content="z\x1f")

        assert ExtractionCache.fingerprint(first) != ExtractionCache.fingerprint(second)

    def test_put_and_get(self):
        """Test caching a mention list."""
        cache = ExtractionCache(max_size=10)
        cache.put("fp", [make_mention()])

        cached = cache.get("fp")
        assert [m.name for m in cached] == ["Tokyo"]
        assert cache.get("other") is None
        assert len(cache) == 1

    def test_get_returns_a_copy(self):
        """Test that callers cannot mutate the cached result."""
        cache = ExtractionCache(max_size=10)
        cache.put("fp", [make_mention()])

        cache.get("fp").append(make_mention("Kyoto"))

        assert len(cache.get("fp")) == 1

    def test_corrupt_entry_is_discarded(self):
        """Test that a malformed entry is treated as a miss and dropped."""
        cache = ExtractionCache(max_size=10)
        cache._cache.set("fp", "not an entry")

        assert cache.get("fp") is None
        assert len(cache) == 0

    def test_mismatched_fingerprint_is_discarded(self):
        """Test that an entry stored under the wrong key is dropped."""
        cache = ExtractionCache(max_size=10)
        cache._cache.set("fp", ExtractionCacheEntry(fingerprint="other", mentions=(make_mention(),)))

        assert cache.get("fp") is None
        assert len(cache) == 0

    def test_clear(self):
        """Test clearing the cache."""
        cache = ExtractionCache(max_size=10)
        cache.put("fp", [make_mention()])
        cache.clear()

        assert cache.get("fp") is None
        assert len(cache) == 0
