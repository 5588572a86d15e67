"""Caching utilities for extraction results and knowledge base records."""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

from entity_graph.models import Document, EntityMention

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Single cache entry with metadata."""

    value: T
    created_at: float
    expires_at: float | None
    hits: int = 0


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0.0-1.0)."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class LRUCache(Generic[T]):
    """Thread-safe LRU cache with optional per-entry TTL.

    Concurrent ``set`` calls on one key resolve last writer wins. Expired
    entries count as misses and are dropped when touched or swept by
    ``cleanup_expired()``.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float | None = None,
        name: str = "cache",
    ):
        """Initialize LRU cache.

        Args:
            max_size: Entry limit before the least recently used is evicted
            ttl_seconds: Default time-to-live (None = no expiry)
            name: Name used in log messages

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")

        self.max_size = max_size
        self.ttl = ttl_seconds
        self.name = name
        self._cache: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._stats = CacheStats(max_size=max_size)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._cache)

    @staticmethod
    def _expired(entry: CacheEntry[T], now: float) -> bool:
        return entry.expires_at is not None and now > entry.expires_at

    def get(self, key: str) -> T | None:
        """Value for ``key``, or None when absent or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None and self._expired(entry, time.time()):
                self._remove(key)
                entry = None

            if entry is None:
                self._stats.misses += 1
                return None

            self._cache.move_to_end(key)
            entry.hits += 1
            self._stats.hits += 1
            return entry.value

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        """Store ``value``, evicting least recently used entries when full.

        Args:
            key: Cache key
            value: Value to store
            ttl: TTL for this entry, overriding the cache default
        """
        now = time.time()
        lifetime = self.ttl if ttl is None else ttl

        with self._lock:
            self._cache.pop(key, None)
            while len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
                self._stats.evictions += 1

            self._cache[key] = CacheEntry(
                value=value,
                created_at=now,
                expires_at=now + lifetime if lifetime else None,
            )
            self._stats.size = len(self._cache)

    def _remove(self, key: str) -> bool:
        """Drop ``key``. Caller holds the lock."""
        removed = self._cache.pop(key, None) is not None
        self._stats.size = len(self._cache)
        return removed

    def invalidate(self, key: str) -> bool:
        """Drop one entry; True if it was present."""
        with self._lock:
            return self._remove(key)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._stats.size = 0
        logger.info(f"Cache '{self.name}' cleared")

    def get_stats(self) -> CacheStats:
        return self._stats

    def cleanup_expired(self) -> int:
        """Sweep expired entries.

        Returns:
            Number of entries removed
        """
        now = time.time()
        with self._lock:
            expired = [key for key, entry in self._cache.items() if self._expired(entry, now)]
            for key in expired:
                self._remove(key)

        if expired:
            logger.debug(f"Cache '{self.name}': removed {len(expired)} expired entries")
        return len(expired)


@dataclass(frozen=True)
class ExtractionCacheEntry:
    """Cached extraction result for one document fingerprint."""

    fingerprint: str
    mentions: tuple[EntityMention, ...]
    created_at: float = field(default_factory=time.time)


class ExtractionCache:
    """Memoizes per-document extraction results by content fingerprint.

    A changed document gets a new fingerprint, so stale entries are never
    served; they simply age out of the LRU.
    """

    def __init__(self, max_size: int = 1000):
        """Initialize extraction cache.

        Args:
            max_size: Maximum number of documents to cache
        """
        self._cache: LRUCache[ExtractionCacheEntry] = LRUCache(
            max_size=max_size,
            ttl_seconds=None,
            name="extractions",
        )

    def __len__(self) -> int:
        return len(self._cache)

    @staticmethod
    def fingerprint(document: Document) -> str:
        """Stable hash of the document identifier and content."""
        content = json.dumps(
            [document.identifier, document.title, document.excerpt, document.content, document.tags],
            ensure_ascii=False,
        )
        return hashlib.sha256(content.encode("utf-8")).hexdigest()[:32]

    def get(self, fingerprint: str) -> list[EntityMention] | None:
        """Get cached mentions for a fingerprint.

        Args:
            fingerprint: Document fingerprint

        Returns:
            Copy of the cached mention list, or None on a miss
        """
        entry = self._cache.get(fingerprint)
        if entry is None:
            return None

        if not isinstance(entry, ExtractionCacheEntry) or entry.fingerprint != fingerprint:
            logger.warning(f"Discarding corrupt extraction cache entry {fingerprint}")
            self._cache.invalidate(fingerprint)
            return None

        return list(entry.mentions)

    def put(self, fingerprint: str, mentions: list[EntityMention]) -> None:
        """Cache mentions for a fingerprint.

        Args:
            fingerprint: Document fingerprint
            mentions: Extraction result
        """
        self._cache.set(
            fingerprint,
            ExtractionCacheEntry(fingerprint=fingerprint, mentions=tuple(mentions)),
        )

    def clear(self) -> None:
        """Drop every cached extraction."""
        self._cache.clear()

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._cache.get_stats()


class EnrichmentCache(Protocol):
    """Storage strategy for knowledge base records keyed by external id."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...

    def clear(self) -> None: ...
