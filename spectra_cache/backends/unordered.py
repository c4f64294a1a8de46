"""
Hash-indexed filter-guarded cache.

Average O(1) index operations.  Iteration follows dict order, which is
insertion order of the first write for each key; callers should treat
it as unordered.
"""

from typing import Iterator, Optional

from spectra_cache.backends.base import FilteredCache
from spectra_cache.entry import TimestampedEntry


class UnorderedCache(FilteredCache):
    """Process-local key/value cache backed by a dict.

    Despite the ``DistributedHashTable`` alias, all state lives in this
    process.
    """

    def _put(self, entry: TimestampedEntry) -> None:
        self._store[entry.key] = entry

    def _pop(self, key: str) -> Optional[TimestampedEntry]:
        return self._store.pop(key, None)

    def _clear_index(self) -> None:
        self._store.clear()

    def _iter_entries(self) -> Iterator[TimestampedEntry]:
        return iter(self._store.values())


DistributedHashTable = UnorderedCache
