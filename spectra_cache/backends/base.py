"""
Shared read/write path for filter-guarded TTL caches.

Every lookup consults the owned :class:`MembershipFilter` first and only
touches the entry index when the filter cannot rule the key out.
Expired entries are evicted lazily, when a ``get`` or ``contains_key``
observes them; there is no background sweep.  Subclasses choose the
index: a plain dict, or a dict plus a sorted key list.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional, Tuple

from pydantic import BaseModel

from spectra_cache.config import get_settings
from spectra_cache.entry import TTL, TimestampedEntry
from spectra_cache.filter import MembershipFilter

logger = logging.getLogger(__name__)


class CacheStats(BaseModel):
    """Aggregate cache statistics.

    Attributes:
        hits: Reads that returned a live value.
        misses: Reads that returned nothing, including filter rejections
            and expirations.
        filter_rejections: Lookups answered by the filter alone.
        expirations: Entries evicted because their TTL had elapsed.
        hit_rate: Ratio of hits to total reads (0.0 if no reads).
        entry_count: Entries currently in the index.
        filter_size: The filter's insert count (or merge estimate).
    """

    hits: int = 0
    misses: int = 0
    filter_rejections: int = 0
    expirations: int = 0
    hit_rate: float = 0.0
    entry_count: int = 0
    filter_size: int = 0


class FilteredCache(ABC):
    """Base class for caches guarded by a membership filter.

    Not thread-safe; share a whole instance behind an external lock if
    needed.

    Args:
        capacity: Filter capacity.  Defaults to
            ``cache.filter_capacity`` from settings.
        false_positive_rate: Filter false-positive rate.  Defaults to
            ``cache.false_positive_rate`` from settings.
        default_ttl: TTL applied by :meth:`insert`.  Defaults to
            ``cache.default_ttl_seconds`` (``None`` = never expires).
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        false_positive_rate: Optional[float] = None,
        default_ttl: Optional[TTL] = None,
    ) -> None:
        if capacity is None or false_positive_rate is None or default_ttl is None:
            settings = get_settings().cache
            capacity = capacity if capacity is not None else settings.filter_capacity
            if false_positive_rate is None:
                false_positive_rate = settings.false_positive_rate
            if default_ttl is None:
                default_ttl = settings.default_ttl_seconds

        self._filter = MembershipFilter(capacity, false_positive_rate)
        self._default_ttl = default_ttl
        self._store: Dict[str, TimestampedEntry] = {}
        self._hits: int = 0
        self._misses: int = 0
        self._filter_rejections: int = 0
        self._expirations: int = 0

    # ------------------------------------------------------------------
    # Index hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _put(self, entry: TimestampedEntry) -> None:
        """Store ``entry`` under ``entry.key``, replacing any previous one."""

    @abstractmethod
    def _pop(self, key: str) -> Optional[TimestampedEntry]:
        """Remove and return the entry for ``key``, if any."""

    @abstractmethod
    def _clear_index(self) -> None:
        """Drop every entry."""

    @abstractmethod
    def _iter_entries(self) -> Iterator[TimestampedEntry]:
        """Yield entries in the backend's iteration order."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @property
    def filter(self) -> MembershipFilter:
        """The owned membership filter (a superset of live keys)."""
        return self._filter

    def insert(self, key: str, value: str) -> None:
        """Store ``value`` under ``key`` with the cache's default TTL."""
        if self._default_ttl is None:
            self._write(TimestampedEntry.new(key, value))
        else:
            self._write(TimestampedEntry.with_ttl(key, value, self._default_ttl))

    def insert_with_ttl(self, key: str, value: str, ttl: TTL) -> None:
        """Store ``value`` under ``key``, expiring ``ttl`` from now.

        Args:
            key: Cache key.
            value: Text to cache.
            ttl: A ``timedelta`` or a number of seconds.
        """
        self._write(TimestampedEntry.with_ttl(key, value, ttl))

    def _write(self, entry: TimestampedEntry) -> None:
        self._put(entry)
        # Recorded on every write, overwrites included.
        self._filter.insert(entry.key)
        logger.debug(
            "Cache set",
            extra={"cache_key": entry.key, "ttl": entry.ttl},
        )

    def update(self, key: str, value: str) -> bool:
        """Replace the value of an indexed entry and touch it.

        Neither the filter nor the TTL is consulted.  An entry that has
        expired but not yet been evicted is still updated and reported
        as ``True``; its TTL keeps counting from creation, so the next
        read evicts it.

        Returns:
            ``True`` if the key was in the index, ``False`` otherwise.
        """
        entry = self._store.get(key)
        if entry is None:
            return False
        entry.update_value(value)
        return True

    def remove(self, key: str) -> Optional[str]:
        """Remove ``key`` from the index and return its value.

        The filter keeps the key's bits.
        """
        entry = self._pop(key)
        if entry is None:
            return None
        logger.debug("Cache entry removed", extra={"cache_key": key})
        return entry.value

    def clear(self) -> int:
        """Empty the index and the filter.

        Returns:
            Number of entries removed.
        """
        count = len(self._store)
        self._clear_index()
        self._filter.clear()
        logger.info("Cache cleared", extra={"entries_removed": count})
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _live_entry(self, key: str) -> Optional[TimestampedEntry]:
        """Filter probe, index probe, then lazy expiration."""
        if not self._filter.contains(key):
            self._filter_rejections += 1
            return None

        entry = self._store.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            self._pop(key)
            self._expirations += 1
            logger.debug("Cache entry expired", extra={"cache_key": key})
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        """Return the live value for ``key`` and mark it accessed.

        Returns:
            The cached value, or ``None`` if absent or expired.
        """
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            return None

        entry.touch()
        self._hits += 1
        logger.debug("Cache hit", extra={"cache_key": key})
        return entry.value

    def contains_key(self, key: str) -> bool:
        """Whether ``key`` has a live entry.  Does not touch it."""
        return self._live_entry(key) is not None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains_key(key)

    def keys(self) -> Iterator[str]:
        """Lazily yield indexed keys, expired-but-unobserved ones included."""
        return (entry.key for entry in self._iter_entries())

    def values(self) -> Iterator[str]:
        """Lazily yield indexed values, in the same order as :meth:`keys`."""
        return (entry.value for entry in self._iter_entries())

    def items(self) -> Iterator[Tuple[str, str]]:
        return ((entry.key, entry.value) for entry in self._iter_entries())

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def cleanup_expired(self) -> int:
        """Remove all expired entries from the index.

        Never called automatically; reads evict lazily regardless.

        Returns:
            Number of entries removed.
        """
        expired_keys = [
            entry.key for entry in self._iter_entries() if entry.is_expired()
        ]
        for key in expired_keys:
            self._pop(key)
        self._expirations += len(expired_keys)

        if expired_keys:
            logger.info(
                "Expired entries cleaned up",
                extra={"count": len(expired_keys)},
            )
        return len(expired_keys)

    def stats(self) -> CacheStats:
        """Return aggregate cache statistics."""
        total = self._hits + self._misses
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            filter_rejections=self._filter_rejections,
            expirations=self._expirations,
            hit_rate=self._hits / total if total > 0 else 0.0,
            entry_count=len(self._store),
            filter_size=self._filter.size,
        )

    @property
    def size(self) -> int:
        """Entries currently in the index."""
        return len(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def is_empty(self) -> bool:
        return not self._store
