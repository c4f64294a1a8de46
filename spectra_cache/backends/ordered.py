"""
Sorted-key filter-guarded cache.

Entries live in a dict; a parallel list keeps the keys in ascending
order so iteration, range scans and first/last lookups are ordered.
Key search is a binary search over that list.
"""

import bisect
import logging
from typing import Iterator, List, Optional, Tuple

from spectra_cache.backends.base import FilteredCache
from spectra_cache.entry import TimestampedEntry

logger = logging.getLogger(__name__)


class OrderedCache(FilteredCache):
    """Filter-guarded cache with key-ascending iteration.

    Adds :meth:`range`, :meth:`first` and :meth:`last` to the shared
    cache surface.  None of them evict expired entries.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._sorted_keys: List[str] = []

    # ------------------------------------------------------------------
    # Index hooks
    # ------------------------------------------------------------------

    def _put(self, entry: TimestampedEntry) -> None:
        if entry.key not in self._store:
            bisect.insort(self._sorted_keys, entry.key)
        self._store[entry.key] = entry

    def _pop(self, key: str) -> Optional[TimestampedEntry]:
        entry = self._store.pop(key, None)
        if entry is not None:
            index = bisect.bisect_left(self._sorted_keys, key)
            del self._sorted_keys[index]
        return entry

    def _clear_index(self) -> None:
        self._store.clear()
        self._sorted_keys.clear()

    def _iter_entries(self) -> Iterator[TimestampedEntry]:
        for key in self._sorted_keys:
            yield self._store[key]

    # ------------------------------------------------------------------
    # Ordered queries
    # ------------------------------------------------------------------

    def range(self, start: str, end: str) -> Iterator[Tuple[str, str]]:
        """Lazily yield ``(key, value)`` for ``start <= key <= end``, ascending.

        An inverted range (``start > end``) yields nothing.
        """
        low = bisect.bisect_left(self._sorted_keys, start)
        high = bisect.bisect_right(self._sorted_keys, end)
        logger.debug(
            "Range scan",
            extra={"start": start, "end": end, "matches": max(0, high - low)},
        )
        for index in range(low, high):
            key = self._sorted_keys[index]
            yield key, self._store[key].value

    def first(self) -> Optional[Tuple[str, str]]:
        """Smallest key and its value, or ``None`` when empty."""
        if not self._sorted_keys:
            return None
        key = self._sorted_keys[0]
        return key, self._store[key].value

    def last(self) -> Optional[Tuple[str, str]]:
        """Largest key and its value, or ``None`` when empty."""
        if not self._sorted_keys:
            return None
        key = self._sorted_keys[-1]
        return key, self._store[key].value


BTreeCache = OrderedCache
