"""
Timestamped cache entry.

Holds a value with an optional time-to-live and the two timestamps the
caches need: when the entry was created and when it was last read or
updated.  Timestamps come from the monotonic clock so wall-clock jumps
cannot expire or revive entries.
"""

import time
from datetime import timedelta
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

TTL = Union[timedelta, int, float]


class TimestampedEntry(BaseModel):
    """A single cached value.

    Attributes:
        key: Key the entry is stored under.
        value: Cached text.
        ttl: Lifetime measured from ``created_at``; ``None`` never expires.
            Numbers are read as seconds.
        created_at: Monotonic clock reading at creation.
        accessed_at: Monotonic clock reading at the last touch.
    """

    key: str
    value: str
    ttl: Optional[timedelta] = None
    created_at: float = Field(default_factory=time.monotonic)
    accessed_at: float = Field(default_factory=time.monotonic)

    @field_validator("ttl")
    @classmethod
    def _non_negative_ttl(cls, ttl: Optional[timedelta]) -> Optional[timedelta]:
        if ttl is not None and ttl < timedelta(0):
            raise ValueError("ttl must not be negative")
        return ttl

    @classmethod
    def new(cls, key: str, value: str) -> "TimestampedEntry":
        """Create an entry that never expires."""
        now = time.monotonic()
        return cls(key=key, value=value, created_at=now, accessed_at=now)

    @classmethod
    def with_ttl(cls, key: str, value: str, ttl: TTL) -> "TimestampedEntry":
        """Create an entry that expires ``ttl`` after now."""
        now = time.monotonic()
        return cls(key=key, value=value, ttl=ttl, created_at=now, accessed_at=now)

    def is_expired(self) -> bool:
        if self.ttl is None:
            return False
        return self.age() > self.ttl

    def touch(self) -> None:
        """Mark the entry as accessed now."""
        self.accessed_at = time.monotonic()

    def update_value(self, new_value: str) -> None:
        self.value = new_value
        self.touch()

    def age(self) -> timedelta:
        """Time since creation."""
        return timedelta(seconds=time.monotonic() - self.created_at)

    def idle_time(self) -> timedelta:
        """Time since the last touch."""
        return timedelta(seconds=time.monotonic() - self.accessed_at)

    def last_accessed_at(self) -> timedelta:
        """Same as :meth:`idle_time`: elapsed time since the last touch."""
        return self.idle_time()


CacheEntry = TimestampedEntry
