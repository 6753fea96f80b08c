"""
In-process TTL cache for search payloads

Entries expire lazily: a stale entry is only removed when it is read. When
the cache grows past max_entries, the entries closest to expiry are evicted
first. With a uniform TTL that behaves like FIFO; it is not LRU, reads never
extend an entry's life.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Bounded key/value store with per-entry expiry

    Args:
        max_entries: Maximum number of entries kept after any set()
        ttl: Default time-to-live in seconds
        clock: Source of the current time in seconds (monotonic by default)
    """

    def __init__(self, max_entries: int = 100, ttl: float = 45.0, clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive: {max_entries}")
        self.max_entries = max_entries
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None if missing or expired (expired entries are removed)"""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self.clock() >= entry.expires_at:
            del self._entries[key]
            return None

        return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a value, then evict the soonest-expiring entries above max_entries

        Entries with equal expiry are evicted in insertion order.
        """
        self._entries.pop(key, None)
        lifetime = self.ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=self.clock() + lifetime)

        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            by_expiry = sorted(self._entries.items(), key=lambda item: item[1].expires_at)
            for stale_key, _ in by_expiry[:overflow]:
                del self._entries[stale_key]

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        # Raw presence, expired entries included until they are read
        return key in self._entries
