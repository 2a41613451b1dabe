"""
In-memory response cache for upstream OpenSky queries.

Every distinct query shape (worldwide, or a specific bounding box) gets
one entry. Entries expire after their TTL and the cache holds at most
max_size entries, evicting the oldest-inserted one when full (FIFO, not
LRU: reads do not refresh an entry's position).

Design rationale:
Anonymous OpenSky access allows roughly one request every 10 seconds.
A 15 second TTL means any number of browser clients polling the same
region cost a single upstream request per TTL window.

The lock only protects dictionary bookkeeping. Producers run outside it,
so two concurrent misses on the same key both reach OpenSky and the last
one to finish wins. A background sweeper thread drops expired entries
that nobody reads any more.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

_MISSING = object()


@dataclass
class CacheEntry:
    """Cached payload with its creation time and TTL (seconds)."""
    data: Any
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class ResponseCache:
    """
    Thread-safe TTL cache with bounded capacity.

    Construct one per application and pass it to whatever needs it.
    """

    def __init__(
        self,
        max_size: int = 100,
        enabled: bool = True,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError('max_size must be at least 1')

        self.max_size = max_size
        self.enabled = enabled
        self.sweep_interval = sweep_interval
        self._clock = clock

        # dicts keep insertion order, which is the FIFO eviction order
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        self._sweeper: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Statistics
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a cached value.

        Returns default if not cached or expired. Expired entries are
        removed on read.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None:
                if not entry.is_expired(self._clock()):
                    self._hits += 1
                    return entry.data
                del self._cache[key]

            self._misses += 1
            return default

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value, evicting the oldest entry when at capacity."""
        with self._lock:
            if key not in self._cache and len(self._cache) >= self.max_size:
                self._evict_oldest()

            self._cache[key] = CacheEntry(
                data=value,
                timestamp=self._clock(),
                ttl=ttl,
            )

    def _evict_oldest(self) -> None:
        """Remove the oldest-inserted entry."""
        oldest = next(iter(self._cache))
        del self._cache[oldest]
        self._evictions += 1
        logger.debug(f'Cache full, evicted {oldest}')

    def get_or_set(self, key: str, producer: Callable[[], T], ttl: float) -> T:
        """
        Return the cached value for key, or produce, store and return it.

        When the cache is disabled the producer is called every time.
        Producer exceptions propagate and leave the cache untouched.
        """
        if not self.enabled:
            return producer()

        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug(f'Cache hit: {key}')
            return cached

        logger.debug(f'Cache miss: {key}')
        result = producer()
        self.set(key, result, ttl)
        return result

    def sweep(self) -> int:
        """
        Remove all expired entries.

        Returns count of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._cache.items() if e.is_expired(now)]
            for key in expired:
                del self._cache[key]

        if expired:
            logger.debug(f'Swept {len(expired)} expired cache entries')
        return len(expired)

    def _run_sweeper(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f'Cache sweep failed: {e}')

    def start_sweeper(self) -> None:
        """Start the periodic sweep in a background thread."""
        if not self.enabled:
            return
        if self._sweeper and self._sweeper.is_alive():
            logger.warning('Cache sweeper already running')
            return

        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._run_sweeper,
            name='response-cache-sweeper',
            daemon=True,
        )
        self._sweeper.start()
        logger.info(f'Cache sweeper started (interval={self.sweep_interval}s)')

    def stop_sweeper(self) -> None:
        """Stop the background sweep."""
        self._stop_event.set()
        if self._sweeper:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def clear(self) -> None:
        """Clear entire cache."""
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        """Entry count, including expired entries not yet swept."""
        with self._lock:
            return len(self._cache)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                'enabled': self.enabled,
                'entries': len(self._cache),
                'max_size': self.max_size,
                'hits': self._hits,
                'misses': self._misses,
                'evictions': self._evictions,
                'hit_rate': self._hits / total if total > 0 else 0,
            }
