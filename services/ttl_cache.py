"""
In-memory cache with a fixed time-to-live per entry.
"""

from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar
from dataclasses import dataclass
import logging
import time

logger = logging.getLogger("labeliq.cache")

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """Cached value with its expiry deadline (monotonic seconds)"""

    value: V
    deadline: float

    def is_expired(self, now: float) -> bool:
        return now >= self.deadline


class TTLCache(Generic[V]):
    """
    Key/value cache whose entries expire after ``ttl_seconds``.

    Expired entries are evicted lazily on read and in bulk by ``purge()``.
    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[V]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    def set(self, key: Hashable, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, deadline=self._clock() + ttl)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def purge(self) -> int:
        """Drop every expired entry, returning how many were removed"""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": len(self._entries),
            "hit_rate": self._hits / total if total else 0.0,
        }
