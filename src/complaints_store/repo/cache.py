"""Bounded in-memory index of complaints with pluggable eviction."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from enum import Enum

from ..errors import InvalidConfigurationError
from ..models import CacheStats, Complaint

logger = logging.getLogger(__name__)

MIN_CACHE_SIZE = 1
MAX_CACHE_SIZE = 100_000
DEFAULT_CACHE_SIZE = 1000


class EvictionPolicy(str, Enum):
    """Which entry to drop when the cache is full."""

    LRU = "lru"  # least recently read or written
    FIFO = "fifo"  # oldest inserted
    NONE = "none"  # never evict, grow past max_size

    @classmethod
    def parse(cls, value: str | EvictionPolicy) -> EvictionPolicy:
        """Parse a policy name.

        Raises:
            InvalidConfigurationError: If the name is not a known policy.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise InvalidConfigurationError(
                f"invalid cache eviction policy '{value}' (expected one of: {valid})"
            ) from None


def validate_cache_size(size: int) -> int:
    """Check a cache size is within [MIN_CACHE_SIZE, MAX_CACHE_SIZE]."""
    if isinstance(size, bool) or not isinstance(size, int):
        raise InvalidConfigurationError(f"cache size must be an integer, got {size!r}")
    if size < MIN_CACHE_SIZE:
        raise InvalidConfigurationError(f"cache size must be >= {MIN_CACHE_SIZE}")
    if size > MAX_CACHE_SIZE:
        raise InvalidConfigurationError(f"cache size must be <= {MAX_CACHE_SIZE}")
    return size


class CacheMetrics:
    """Hit/miss/eviction counters.

    Not locked on its own; RecordCache mutates and reads it under its lock.
    """

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def snapshot(self, current_size: int) -> CacheStats:
        return CacheStats(
            hits=self.hits,
            misses=self.misses,
            evictions=self.evictions,
            current_size=current_size,
            max_size=self.max_size,
        )


class RecordCache:
    """Thread-safe complaint cache keyed by complaint id.

    Entries are kept in an OrderedDict whose order is the eviction order:
    the first entry is the next victim. LRU moves entries to the end on
    every access, FIFO only appends new keys, and NONE never evicts.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_CACHE_SIZE,
        policy: EvictionPolicy | str = EvictionPolicy.LRU,
    ) -> None:
        self.max_size = validate_cache_size(max_size)
        self.policy = EvictionPolicy.parse(policy)
        self._entries: OrderedDict[str, Complaint] = OrderedDict()
        self._metrics = CacheMetrics(self.max_size)
        self._lock = threading.Lock()
        self._over_capacity = False

    def get(self, complaint_id: str) -> Complaint | None:
        """Return the cached complaint, or None on a miss."""
        with self._lock:
            complaint = self._entries.get(complaint_id)
            if complaint is None:
                self._metrics.misses += 1
                return None
            self._metrics.hits += 1
            if self.policy is EvictionPolicy.LRU:
                self._entries.move_to_end(complaint_id)
            return complaint

    def peek(self, complaint_id: str) -> Complaint | None:
        """Look up without touching counters or recency."""
        with self._lock:
            return self._entries.get(complaint_id)

    def put(self, complaint: Complaint) -> list[str]:
        """Insert or overwrite a complaint.

        Returns:
            Ids evicted to make room (empty for most calls).
        """
        with self._lock:
            key = complaint.id
            if key in self._entries:
                self._entries[key] = complaint
                if self.policy is EvictionPolicy.LRU:
                    self._entries.move_to_end(key)
                return []

            self._entries[key] = complaint
            return self._enforce_capacity()

    def discard(self, complaint_id: str) -> bool:
        """Drop one entry without counting it as an eviction."""
        with self._lock:
            removed = self._entries.pop(complaint_id, None) is not None
            self._over_capacity = len(self._entries) > self.max_size
            return removed

    def values(self) -> list[Complaint]:
        """All cached complaints, in no particular order."""
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> None:
        """Remove every entry. Counters are cumulative and are kept."""
        with self._lock:
            self._entries.clear()
            self._over_capacity = False

    def stats(self) -> CacheStats:
        with self._lock:
            return self._metrics.snapshot(len(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, complaint_id: object) -> bool:
        with self._lock:
            return complaint_id in self._entries

    def _enforce_capacity(self) -> list[str]:
        """Evict until within max_size. Caller holds the lock."""
        if self.policy is EvictionPolicy.NONE:
            over = len(self._entries) > self.max_size
            if over and not self._over_capacity:
                logger.warning(
                    "Cache grew past max_size=%d with eviction disabled (size=%d)",
                    self.max_size,
                    len(self._entries),
                )
            self._over_capacity = over
            return []

        evicted: list[str] = []
        while len(self._entries) > self.max_size:
            victim, _ = self._entries.popitem(last=False)
            self._metrics.evictions += 1
            evicted.append(victim)
        if evicted:
            logger.debug("Evicted %d cache entries (%s)", len(evicted), self.policy.value)
        return evicted
