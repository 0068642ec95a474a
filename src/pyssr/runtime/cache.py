"""LRU cache with per-entry TTL, handed to server bundles for component caching."""
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


@dataclass
class CacheEntry:
    """Cached value with its insertion time."""

    data: Any
    timestamp: float
    ttl: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        if self.ttl is None:
            return False
        return now - self.timestamp >= self.ttl


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
        }


class LRUCache:
    """Bounded mapping that evicts the least recently used entry.

    Entries older than ``ttl`` seconds are treated as missing and dropped on
    access. ``ttl=None`` disables expiry.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        ttl: Optional[float] = 60 * 15,
        timer: Callable[[], float] = time.monotonic,
    ):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self.maxsize = maxsize
        self.ttl = ttl
        self._timer = timer
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._stats = CacheStats()

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._lookup(key)
        if entry is None:
            self._stats.misses += 1
            return default
        self._stats.hits += 1
        self._entries.move_to_end(key)
        return entry.data

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        now = self._timer()
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = CacheEntry(value, now, ttl if ttl is not None else self.ttl)
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)
            self._stats.evictions += 1

    def has(self, key: Hashable) -> bool:
        """Check presence without touching recency."""
        return self._lookup(key) is not None

    def delete(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def prune(self) -> int:
        """Drop every expired entry, returning how many were removed."""
        now = self._timer()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._stats.expirations += len(expired)
        return len(expired)

    def stats(self) -> Dict[str, int]:
        data = self._stats.to_dict()
        data["size"] = len(self._entries)
        data["maxsize"] = self.maxsize
        return data

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return len(self._entries)

    def _lookup(self, key: Hashable) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._timer()):
            del self._entries[key]
            self._stats.expirations += 1
            return None
        return entry
