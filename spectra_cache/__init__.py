"""In-process TTL caching with a Bloom-filter fast-reject guard."""

from spectra_cache.backends import (
    BTreeCache,
    CacheStats,
    DistributedHashTable,
    FilteredCache,
    OrderedCache,
    UnorderedCache,
)
from spectra_cache.entry import CacheEntry, TimestampedEntry
from spectra_cache.exceptions import (
    ConfigurationError,
    FilterMismatchError,
    SpectraCacheError,
)
from spectra_cache.filter import BloomFilter, MembershipFilter

__all__ = [
    "BTreeCache",
    "BloomFilter",
    "CacheEntry",
    "CacheStats",
    "ConfigurationError",
    "DistributedHashTable",
    "FilterMismatchError",
    "FilteredCache",
    "MembershipFilter",
    "OrderedCache",
    "SpectraCacheError",
    "TimestampedEntry",
    "UnorderedCache",
]
