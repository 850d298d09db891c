"""
In-Memory Cache Store

Key -> entry table with per-entry TTL:
- Expiry is lazy: evaluated only when a key is read
- No capacity bound (one entry per entity type x owner)
- Returned data is not copied; callers treat it as read-only
- Statistics tracking for monitoring
"""

import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Cache entry with metadata."""
    data: Any
    created_at: float
    ttl: timedelta
    hits: int = 0

    def age(self, now: float) -> float:
        """Seconds since the entry was written."""
        return now - self.created_at

    def is_expired(self, now: float) -> bool:
        """An entry is valid only while strictly younger than its TTL."""
        return self.age(now) >= self.ttl.total_seconds()


@dataclass
class CacheStats:
    """Cache operation statistics."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    expirations: int = 0
    invalidations: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.lookups if self.lookups > 0 else 0.0


class CacheStore:
    """
    TTL cache scoped to one session/process.

    Shared mutable state; any caller may set or invalidate any key.
    Access control belongs to the data store, not here.
    """

    def __init__(
        self,
        default_ttl: timedelta = timedelta(minutes=5),
        clock: Optional[Clock] = None,
        enabled: bool = True,
    ):
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()

    # =========================================================================
    # Core Operations
    # =========================================================================

    def set(self, key: str, data: Any, ttl: Optional[timedelta] = None) -> None:
        """Store ``data`` under ``key``, overwriting any existing entry."""
        if ttl is None:
            ttl = self.default_ttl
        if ttl.total_seconds() <= 0:
            raise ValueError(f"TTL must be positive, got {ttl}")

        if not self.enabled:
            return

        self._entries[key] = CacheEntry(data=data, created_at=self._clock(), ttl=ttl)
        self._stats.sets += 1
        logger.debug(f"Cache SET: {key} (TTL: {ttl.total_seconds():.0f}s)")

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns None if the key is absent or its entry has expired.
        Expired entries are removed on the way out.
        """
        entry = self._entries.get(key)

        if entry is None:
            self._stats.misses += 1
            logger.debug(f"Cache MISS: {key}")
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._stats.misses += 1
            self._stats.expirations += 1
            logger.debug(f"Cache EXPIRED: {key}")
            return None

        entry.hits += 1
        self._stats.hits += 1
        logger.debug(f"Cache HIT: {key} (hits: {entry.hits})")
        return entry.data

    def invalidate(self, key: str) -> bool:
        """Delete a key. Returns True if something was removed."""
        if self._entries.pop(key, None) is None:
            return False
        self._stats.invalidations += 1
        logger.debug(f"Cache INVALIDATED: {key}")
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``. Returns count deleted."""
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            self.invalidate(key)
        return len(keys)

    def clear(self) -> None:
        """Drop all entries (e.g. on sign-out)."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cache cleared ({count} entries)")

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns count removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._stats.expirations += len(expired)
        return len(expired)

    # =========================================================================
    # Introspection
    # =========================================================================

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[str]:
        return list(self._entries)

    def ttl_remaining(self, key: str) -> Optional[float]:
        """Seconds until ``key`` expires, or None if absent/expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry.ttl.total_seconds() - entry.age(self._clock())
        return remaining if remaining > 0 else None

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def get_stats(self) -> Dict:
        """Get cache statistics."""
        return {
            "enabled": self.enabled,
            "entries": len(self._entries),
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "sets": self._stats.sets,
            "expirations": self._stats.expirations,
            "invalidations": self._stats.invalidations,
            "hit_rate_percent": round(self._stats.hit_rate * 100, 2),
        }
