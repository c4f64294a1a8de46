"""
Probabilistic membership filter (Bloom filter) for spectra-cache.

A fixed-size bit array sized from a target capacity and false-positive
rate.  Keys are hashed once to a 64-bit base value; the ``k`` bit
positions are derived from it by repeated multiplication with a fixed
odd constant, so no extra hash functions are computed per probe.

The filter never clears individual bits.  That keeps the
no-false-negative guarantee and makes it a superset oracle for the
caches built on top of it: removed or expired keys may still probe as
present.
"""

import hashlib
import logging
import math
from typing import Iterator

from spectra_cache.exceptions import ConfigurationError, FilterMismatchError

logger = logging.getLogger(__name__)

_MASK_64 = (1 << 64) - 1
# 2^64 / golden ratio, odd.
_POSITION_MULTIPLIER = 0x9E3779B97F4A7C15


def optimal_bit_size(capacity: int, false_positive_rate: float) -> int:
    """Number of bits ``m`` for ``capacity`` keys at ``false_positive_rate``.

    ``m = ceil(-n * ln(p) / ln(2)^2)``
    """
    return int(math.ceil(-capacity * math.log(false_positive_rate) / (math.log(2) ** 2)))


def optimal_hash_count(bit_size: int, capacity: int) -> int:
    """Number of hash positions ``k = round((m / n) * ln(2))``, at least 1."""
    return max(1, int(round((bit_size / capacity) * math.log(2))))


def base_hash(key: str) -> int:
    """Deterministic 64-bit hash of ``key`` (first 8 bytes of its MD5 digest)."""
    return int.from_bytes(hashlib.md5(key.encode("utf-8")).digest()[:8], "big")


class MembershipFilter:
    """Bloom filter over string keys.

    Args:
        capacity: Expected number of distinct keys (``n``), must be > 0.
        false_positive_rate: Target false-positive probability (``p``),
            strictly between 0 and 1.

    Raises:
        ConfigurationError: If either argument is out of range.
    """

    def __init__(self, capacity: int, false_positive_rate: float) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ConfigurationError(
                f"Filter capacity must be a positive integer, got {capacity!r}"
            )
        if not 0.0 < false_positive_rate < 1.0:
            raise ConfigurationError(
                f"False-positive rate must be in (0, 1), got {false_positive_rate!r}"
            )

        self._capacity = capacity
        self._false_positive_rate = float(false_positive_rate)
        self._bit_size = optimal_bit_size(capacity, self._false_positive_rate)
        self._hash_count = optimal_hash_count(self._bit_size, capacity)
        self._bits = bytearray((self._bit_size + 7) // 8)
        self._size = 0

        logger.debug(
            "Membership filter created",
            extra={
                "capacity": capacity,
                "false_positive_rate": self._false_positive_rate,
                "bit_size": self._bit_size,
                "hash_count": self._hash_count,
            },
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def false_positive_rate(self) -> float:
        return self._false_positive_rate

    @property
    def bit_size(self) -> int:
        """Length of the bit array (``m``)."""
        return self._bit_size

    @property
    def hash_count(self) -> int:
        """Bit positions probed per key (``k``)."""
        return self._hash_count

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    def _positions(self, key: str) -> Iterator[int]:
        h = base_hash(key)
        for _ in range(self._hash_count):
            yield h % self._bit_size
            h = (h * _POSITION_MULTIPLIER) & _MASK_64

    def _is_set(self, position: int) -> bool:
        return bool(self._bits[position >> 3] & (1 << (position & 7)))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def insert(self, key: str) -> None:
        """Record ``key``.

        The size counter is incremented on every call, so inserting the
        same key twice counts it twice.
        """
        for position in self._positions(key):
            self._bits[position >> 3] |= 1 << (position & 7)
        self._size += 1

    def contains(self, key: str) -> bool:
        """Return ``True`` if ``key`` may have been inserted.

        ``False`` is definitive; ``True`` may be a false positive.
        """
        return all(self._is_set(position) for position in self._positions(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains(key)

    def clear(self) -> None:
        """Reset every bit and the size counter."""
        self._bits = bytearray(len(self._bits))
        self._size = 0

    def merge(self, other: "MembershipFilter") -> None:
        """OR ``other``'s bits into this filter.

        Both filters must share ``bit_size`` and ``hash_count``.  After
        the merge the size counter is re-estimated from bit density
        (``round(m * density / k)``) because the two filters may share
        keys; the estimate is approximate and can drift from the true
        union cardinality.

        Raises:
            FilterMismatchError: If the configurations differ.  Neither
                filter is modified.
        """
        if other.bit_size != self._bit_size or other.hash_count != self._hash_count:
            logger.warning(
                "Refusing to merge mismatched filters",
                extra={
                    "bit_size": self._bit_size,
                    "hash_count": self._hash_count,
                    "other_bit_size": other.bit_size,
                    "other_hash_count": other.hash_count,
                },
            )
            raise FilterMismatchError(
                f"Cannot merge filter (m={other.bit_size}, k={other.hash_count}) "
                f"into filter (m={self._bit_size}, k={self._hash_count})"
            )

        merged = int.from_bytes(self._bits, "little") | int.from_bytes(other._bits, "little")
        self._bits = bytearray(merged.to_bytes(len(self._bits), "little"))
        self._size = int(round(self._bit_size * self.density() / self._hash_count))
        logger.info(
            "Membership filters merged",
            extra={"bits_set": self.bits_set(), "estimated_size": self._size},
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Insert count (or post-merge estimate)."""
        return self._size

    def __len__(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    def bits_set(self) -> int:
        """Number of set bits in the array."""
        return sum(bin(byte).count("1") for byte in self._bits)

    def density(self) -> float:
        """Fraction of bits set, between 0.0 and 1.0."""
        return self.bits_set() / self._bit_size

    def estimated_false_positive_rate(self) -> float:
        """Probability that a never-inserted key probes as present right now."""
        return self.density() ** self._hash_count

    def __repr__(self) -> str:
        return (
            f"MembershipFilter(capacity={self._capacity}, "
            f"false_positive_rate={self._false_positive_rate}, "
            f"bit_size={self._bit_size}, hash_count={self._hash_count}, size={self._size})"
        )


BloomFilter = MembershipFilter
