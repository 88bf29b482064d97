"""Bounded in-memory TTL cache with insertion-order eviction and metrics."""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now_ms() -> float:
    return time.monotonic() * 1000


class CacheMetrics:
    """Tracks cache hit/miss statistics."""

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    cached_at: float  # ms, monotonic clock
    value: T


class TtlCache(Generic[T]):
    """Size- and time-bounded cache keyed by string.

    Entries expire ``ttl_ms`` after they were set and are purged lazily on
    the next read. When a new key would push the cache past ``max_entries``
    the oldest inserted key is evicted. Reads do not reorder entries, so
    this is FIFO rather than LRU.

    Not thread-safe; callers sharing an instance across threads must lock.

    Args:
        ttl_ms: Entry lifetime in milliseconds.
        max_entries: Maximum number of entries held at once.
    """

    def __init__(self, ttl_ms: int, max_entries: int) -> None:
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._ttl_ms = ttl_ms
        self._max_entries = max_entries
        self._store: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self.metrics = CacheMetrics()

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: str) -> T | None:
        """Return the value for *key*, or None if missing or expired."""
        entry = self._store.get(key)
        if entry is None:
            self.metrics.misses += 1
            return None

        if _now_ms() - entry.cached_at > self._ttl_ms:
            del self._store[key]
            self.metrics.misses += 1
            logger.debug("Cache entry expired: %s", key)
            return None

        self.metrics.hits += 1
        return entry.value

    def set(self, key: str, value: T) -> None:
        """Store *value* under *key*, evicting the oldest entry if full."""
        if key not in self._store and len(self._store) >= self._max_entries:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("Cache full, evicted oldest entry: %s", evicted)

        # Overwrites keep their original insertion position
        self._store[key] = CacheEntry(cached_at=_now_ms(), value=value)

    def invalidate(self, key: str) -> bool:
        """Remove a specific key. Returns True if the key existed."""
        if key in self._store:
            del self._store[key]
            return True
        return False

    def clear(self) -> None:
        """Remove all entries."""
        self._store.clear()

    @property
    def size(self) -> int:
        """Current number of entries, including expired ones not yet read."""
        return len(self._store)


def create_cache(ttl_ms: int, max_entries: int) -> TtlCache:
    """Build a new, empty :class:`TtlCache`."""
    return TtlCache(ttl_ms, max_entries)
