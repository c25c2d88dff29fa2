"""Local blurb cache for the Copycopter client.

This module provides the thread-safe store that the sync loop writes
downloaded blurbs into and the i18n backend reads from. Entries may
carry an expiry instant; an expired entry is discarded the next time it
is read, or when :meth:`TranslationCache.do_expiration` sweeps the store.

When caching is disabled the client uses :class:`NullCache`, which
accepts writes and answers every read with a miss.

Example:
    >>> cache = TranslationCache(expires_in=300)
    >>> cache.set("en.greeting", "Hello")
    >>> cache.get("en.greeting")
    'Hello'
    >>> cache.get("en.farewell") is None
    True
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


@dataclass
class CacheStats:
    """Statistics for cache lookups.

    Attributes:
        hits: Number of successful lookups.
        misses: Number of lookups that found nothing usable.
        expirations: Number of entries discarded after their expiry.
        entries_count: Current number of entries.
        creation_time: Timestamp when the cache was created.
    """

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    entries_count: int = 0
    creation_time: float = field(default_factory=time.time)

    @property
    def hit_ratio(self) -> float:
        """Ratio of hits to total lookups (0.0 to 1.0)."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "entries_count": self.entries_count,
            "hit_ratio": self.hit_ratio,
            "creation_time": self.creation_time,
        }


@dataclass
class CacheRecord:
    """A cached blurb with an optional absolute expiry time.

    Attributes:
        value: The cached value.
        expires_at: Unix timestamp after which the record is stale,
            or ``None`` if it never expires.
    """

    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        if now is None:
            now = time.time()
        return now >= self.expires_at


class TranslationCache:
    """Thread-safe key/value store with optional per-entry expiry.

    Args:
        expires_in: Default time-to-live in seconds applied to entries
            stored without an explicit ``ttl``. ``None`` keeps entries
            until they are overwritten or cleared.

    Attributes:
        enabled: Always ``True`` for this implementation.
        stats: Lookup statistics.
        size: Current number of entries, expired ones included.
    """

    enabled = True

    def __init__(self, expires_in: Optional[float] = None):
        self._expires_in = expires_in
        self._records: Dict[str, CacheRecord] = {}
        self._stats = CacheStats()
        self._lock = threading.RLock()

    @property
    def expires_in(self) -> Optional[float]:
        return self._expires_in

    @property
    def stats(self) -> CacheStats:
        with self._lock:
            self._stats.entries_count = len(self._records)
            return self._stats

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def get(self, key: str) -> Optional[Any]:
        """Get a value from the cache.

        Args:
            key: The key to look up.

        Returns:
            The cached value, or ``None`` if absent or expired.
        """
        with self._lock:
            record = self._records.get(key)
            if record is None:
                self._stats.misses += 1
                return None

            if record.is_expired():
                del self._records[key]
                self._stats.expirations += 1
                self._stats.misses += 1
                return None

            self._stats.hits += 1
            return record.value

    def contains(self, key: str) -> bool:
        """Check whether a live entry exists without touching statistics."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return False
            if record.is_expired():
                del self._records[key]
                self._stats.expirations += 1
                return False
            return True

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value.

        Args:
            key: The key to store.
            value: The value to cache.
            ttl: Time-to-live in seconds; defaults to ``expires_in``.
        """
        with self._lock:
            self._records[key] = self._make_record(value, ttl)

    def set_all(self, entries: Mapping[str, Any], ttl: Optional[float] = None) -> None:
        """Upsert many entries as one atomic batch.

        Readers observe either none or all of the batch.
        """
        with self._lock:
            for key, value in entries.items():
                self._records[key] = self._make_record(value, ttl)

    def remove(self, key: str) -> Optional[Any]:
        with self._lock:
            record = self._records.pop(key, None)
            if record is None:
                return None
            return record.value

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def keys(self) -> List[str]:
        """Return the keys of all live entries."""
        now = time.time()
        with self._lock:
            return [k for k, r in self._records.items() if not r.is_expired(now)]

    def do_expiration(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        now = time.time()
        with self._lock:
            expired_keys = [k for k, r in self._records.items() if r.is_expired(now)]
            for key in expired_keys:
                del self._records[key]
            self._stats.expirations += len(expired_keys)
        return len(expired_keys)

    def _make_record(self, value: Any, ttl: Optional[float]) -> CacheRecord:
        if ttl is None:
            ttl = self._expires_in
        expires_at = time.time() + ttl if ttl is not None else None
        return CacheRecord(value=value, expires_at=expires_at)


class NullCache:
    """Pass-through cache used when caching is disabled.

    Writes are accepted and dropped; every read is a miss.
    """

    enabled = False
    expires_in = None

    def __init__(self):
        self._stats = CacheStats()
        self._lock = threading.Lock()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def size(self) -> int:
        return 0

    def get(self, key: str) -> None:
        with self._lock:
            self._stats.misses += 1
        return None

    def contains(self, key: str) -> bool:
        return False

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        pass

    def set_all(self, entries: Mapping[str, Any], ttl: Optional[float] = None) -> None:
        pass

    def remove(self, key: str) -> None:
        return None

    def clear(self) -> None:
        pass

    def keys(self) -> List[str]:
        return []

    def do_expiration(self) -> int:
        return 0


def create_cache(options: Mapping[str, Any]):
    """Build the cache described by a configuration snapshot.

    Args:
        options: Mapping with ``cache_enabled`` and ``cache_expires_in``.

    Returns:
        A :class:`TranslationCache` when caching is enabled, otherwise
        a :class:`NullCache`.
    """
    if options.get("cache_enabled"):
        return TranslationCache(expires_in=options.get("cache_expires_in"))
    return NullCache()
