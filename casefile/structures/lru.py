"""
Bounded LRU Cache for the Casefile Retrieval Engine.

A dict gives O(1) lookup; an intrusive doubly linked list keeps recency
order with the most recently used entry at the head and the least
recently used entry at the tail.

Invariant: len(map) == length of the linked list, at all times.

get/put mutate shared state (map + list), so every public operation
holds a single lock. Reads of snapshots are taken under the same lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Generic, Hashable, Optional, TypeVar


logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheStats:
    """
    Hit/miss accounting snapshot.

    hit_rate is a percentage with two decimals, 0 when nothing was read.
    """
    hits: int
    misses: int
    hit_rate: float
    size: int
    capacity: int


def compute_hit_rate(hits: int, misses: int) -> float:
    """round(hits / (hits + misses) * 10000) / 100, or 0 with no accesses."""
    total = hits + misses
    if total == 0:
        return 0
    return round(hits / total * 10000) / 100


class CacheEntry(Generic[K, V]):
    __slots__ = ("key", "value", "prev", "next")

    def __init__(self, key: K, value: V):
        self.key = key
        self.value = value
        self.prev: Optional[CacheEntry[K, V]] = None
        self.next: Optional[CacheEntry[K, V]] = None


class BoundedCache(Generic[K, V]):
    """Fixed-capacity cache that evicts the least recently used entry."""

    def __init__(self, capacity: int):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")

        self._capacity = capacity
        self._map: dict[K, CacheEntry[K, V]] = {}
        self._head: Optional[CacheEntry[K, V]] = None  # Most recently used
        self._tail: Optional[CacheEntry[K, V]] = None  # Least recently used
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get(self, key: K, default: Any = None) -> Any:
        """Return the cached value and mark it most recently used."""
        with self._lock:
            entry = self._map.get(key)
            if entry is None:
                self._misses += 1
                return default

            self._hits += 1
            self._move_to_head(entry)
            return entry.value

    def put(self, key: K, value: V) -> None:
        """Insert or update; evicts the LRU entry when over capacity."""
        with self._lock:
            entry = self._map.get(key)
            if entry is not None:
                entry.value = value
                self._move_to_head(entry)
                return

            entry = CacheEntry(key, value)
            self._map[key] = entry
            self._add_to_head(entry)

            if len(self._map) > self._capacity:
                self._evict_tail()

    def has(self, key: K) -> bool:
        """Membership test. Does not touch recency or counters."""
        with self._lock:
            return key in self._map

    def delete(self, key: K) -> bool:
        with self._lock:
            entry = self._map.pop(key, None)
            if entry is None:
                return False
            self._unlink(entry)
            return True

    def clear(self) -> None:
        """Drop all entries and reset hit/miss counters."""
        with self._lock:
            self._map.clear()
            self._head = None
            self._tail = None
            self._hits = 0
            self._misses = 0

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                hit_rate=compute_hit_rate(self._hits, self._misses),
                size=len(self._map),
                capacity=self._capacity,
            )

    @property
    def capacity(self) -> int:
        return self._capacity

    def keys(self) -> list[K]:
        """Keys from most to least recently used."""
        return [key for key, _ in self.entries()]

    def values(self) -> list[V]:
        return [value for _, value in self.entries()]

    def entries(self) -> list[tuple[K, V]]:
        with self._lock:
            snapshot = []
            entry = self._head
            while entry is not None:
                snapshot.append((entry.key, entry.value))
                entry = entry.next
            return snapshot

    def __len__(self) -> int:
        with self._lock:
            return len(self._map)

    def __contains__(self, key: object) -> bool:
        return self.has(key)  # type: ignore[arg-type]

    # -------------------------------------------------------------------------
    # Linked list internals (caller holds the lock)
    # -------------------------------------------------------------------------

    def _move_to_head(self, entry: CacheEntry[K, V]) -> None:
        if entry is self._head:
            return
        self._unlink(entry)
        self._add_to_head(entry)

    def _add_to_head(self, entry: CacheEntry[K, V]) -> None:
        entry.prev = None
        entry.next = self._head
        if self._head is not None:
            self._head.prev = entry
        self._head = entry
        if self._tail is None:
            self._tail = entry

    def _unlink(self, entry: CacheEntry[K, V]) -> None:
        if entry.prev is not None:
            entry.prev.next = entry.next
        else:
            self._head = entry.next

        if entry.next is not None:
            entry.next.prev = entry.prev
        else:
            self._tail = entry.prev

        entry.prev = None
        entry.next = None

    def _evict_tail(self) -> None:
        tail = self._tail
        if tail is None:
            return
        self._unlink(tail)
        del self._map[tail.key]
        logger.debug("Evicted cache key %r (capacity %d)", tail.key, self._capacity)
