"""Filter-guarded TTL cache backends (unordered and ordered)."""

from spectra_cache.backends.base import CacheStats, FilteredCache
from spectra_cache.backends.ordered import BTreeCache, OrderedCache
from spectra_cache.backends.unordered import DistributedHashTable, UnorderedCache

__all__ = [
    "BTreeCache",
    "CacheStats",
    "DistributedHashTable",
    "FilteredCache",
    "OrderedCache",
    "UnorderedCache",
]
