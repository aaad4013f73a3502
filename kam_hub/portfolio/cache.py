"""
Query Result Cache

Process-wide keyed cache for portfolio reads. Keys are tuples naming the
query and its parameters, e.g. ("restaurant", "R1", "kam@zomato.com").

- get_or_load() serves fresh entries and loads missing or expired ones
- invalidate(prefix) drops matching entries; the next read refetches
- Subscribers are told which keys went stale
- Entries older than the TTL count as stale and are purged on write

Streamlit runs each session's script in its own thread, so all access to
the entry map goes through one lock. Loaders run outside the lock; a load
that overlaps an invalidate() or clear() returns its value to the caller
but does not store it.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from ..config import config

logger = logging.getLogger(__name__)

CacheKey = Tuple[Hashable, ...]


@dataclass
class CacheEntry:
    value: Any
    loaded_at: float


class QueryCache:
    """
    Keyed cache with explicit invalidation.

    Usage:
        cache = QueryCache(ttl_seconds=300)
        rows = cache.get_or_load(("restaurants", email), load_restaurants)
        cache.invalidate(("restaurants",))
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._subscribers: List[Callable[[CacheKey], None]] = []
        self._generation = 0
        self._lock = threading.RLock()

    # =========================================================================
    # READS
    # =========================================================================

    def get_or_load(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, loading it when missing or stale.

        Loader exceptions propagate and leave the cache untouched.
        """
        key = tuple(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not self._is_expired(entry):
                return entry.value
            generation = self._generation

        logger.debug(f"Cache miss: {key}")
        value = loader()

        with self._lock:
            if self._generation != generation:
                logger.debug(f"Invalidated during load, not caching: {key}")
                return value
            self._store(key, value)
        return value

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(tuple(key))

    def is_stale(self, key: CacheKey) -> bool:
        """Missing keys count as stale"""
        with self._lock:
            entry = self._entries.get(tuple(key))
            return entry is None or self._is_expired(entry)

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._entries.keys())

    def _is_expired(self, entry: CacheEntry) -> bool:
        if self.ttl_seconds is not None and self.ttl_seconds > 0:
            return self._clock() - entry.loaded_at > self.ttl_seconds
        return False

    # =========================================================================
    # WRITES
    # =========================================================================

    def set(self, key: CacheKey, value: Any):
        with self._lock:
            self._store(tuple(key), value)

    def _store(self, key: CacheKey, value: Any):
        expired = [k for k, e in self._entries.items() if self._is_expired(e)]
        for k in expired:
            del self._entries[k]
        self._entries[key] = CacheEntry(value=value, loaded_at=self._clock())

    def invalidate(self, prefix: CacheKey) -> int:
        """
        Drop every entry whose key starts with prefix.

        Loads already in flight are not stored when they finish.

        Returns:
            Number of entries dropped
        """
        prefix = tuple(prefix)
        with self._lock:
            self._generation += 1
            matched = [
                key for key in self._entries
                if key[:len(prefix)] == prefix
            ]
            for key in matched:
                del self._entries[key]
            subscribers = list(self._subscribers)

        for key in matched:
            for callback in subscribers:
                callback(key)

        logger.debug(f"Invalidated {len(matched)} cache entries for prefix {prefix}")
        return len(matched)

    def clear(self):
        with self._lock:
            self._generation += 1
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"🧹 Query cache cleared ({count} entries)")

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, callback: Callable[[CacheKey], None]) -> Callable[[], None]:
        """
        Register callback(key), called for each key that goes stale.

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe


# ==================== SINGLETON CACHE ====================

_cache = None
_cache_lock = threading.Lock()


def get_query_cache() -> QueryCache:
    """Process-wide cache, built on first use"""
    global _cache

    if _cache is None:
        with _cache_lock:
            if _cache is None:
                ttl = config.get_app_setting("CACHE_TTL_SECONDS", 300)
                _cache = QueryCache(ttl_seconds=ttl)
                logger.info(f"✅ Query cache created (ttl={ttl}s)")

    return _cache
