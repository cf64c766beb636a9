"""
Visitor State Store
===================

Bounded, time-expiring map from visitor fingerprint to next frame index.

Design Rules:
    - get_and_advance is O(1) and atomic per key
    - Size is capped; overflow evicts the EARLIEST-INSERTED entries (FIFO)
    - Updating an entry does not change its eviction position
    - Idle entries are removed by sweep(), which works in small batches so
      request handlers are never blocked for a full scan
    - Nothing here raises during normal operation

The ordering index is an OrderedDict: a hash table threaded with a doubly
linked list, giving O(1) lookup, append and pop-oldest.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class VisitorEntry:
    """
    Per-visitor animation state.

    Attributes:
        next_index: Frame index to serve on the visitor's next request
        last_access: Clock reading (seconds) of the last request
    """

    next_index: int
    last_access: float


class VisitorStateStore:
    """
    Thread-safe visitor state store with FIFO capacity eviction and TTL sweep.

    Attributes:
        max_visitors: Maximum entries kept (0 = unlimited)
        ttl_seconds: Idle time before an entry is swept (0 = never)
        sweep_batch_size: Entries examined per lock acquisition in sweep()

    Example:
        store = VisitorStateStore(max_visitors=10_000, ttl_seconds=3600)

        # Request path
        index = store.get_and_advance(fingerprint, frame_count)

        # Background
        removed = store.sweep()
    """

    def __init__(
        self,
        max_visitors: int = 10_000,
        ttl_seconds: float = 3600.0,
        sweep_batch_size: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize visitor store.

        Args:
            max_visitors: Capacity (0 = unlimited). Must be >= 0.
            ttl_seconds: Entry TTL in seconds (0 = never expires)
            sweep_batch_size: Sweep batch size. Must be >= 1.
            clock: Returns the current time in seconds
        """
        if max_visitors < 0:
            raise ValueError("max_visitors must be >= 0")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        if sweep_batch_size < 1:
            raise ValueError("sweep_batch_size must be >= 1")

        self.max_visitors = max_visitors
        self.ttl_seconds = ttl_seconds
        self.sweep_batch_size = sweep_batch_size
        self._clock = clock

        self._entries: "OrderedDict[str, VisitorEntry]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits: int = 0
        self._misses: int = 0
        self._evicted: int = 0
        self._expired: int = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get_and_advance(self, key: str, frame_count: int) -> int:
        """
        Return the frame index to serve now and advance the visitor.

        The first request from a fingerprint returns 0. Each following
        request returns the next index, wrapping at ``frame_count``. A stored
        index is reduced modulo ``frame_count``, so a shrunken animation
        never yields an out-of-range index.

        Args:
            key: Visitor fingerprint (already length-bounded)
            frame_count: Frames in the animation being served

        Returns:
            Index in [0, frame_count), or 0 without any state change when
            frame_count <= 0
        """
        if frame_count <= 0:
            return 0

        now = self._clock()

        with self._lock:
            entry = self._entries.get(key)

            if entry is None:
                self._misses += 1
                current = 0
                self._entries[key] = VisitorEntry(
                    next_index=1 % frame_count,
                    last_access=now,
                )
                if self.max_visitors and len(self._entries) > self.max_visitors:
                    self._evict_overflow()
            else:
                self._hits += 1
                current = entry.next_index % frame_count
                entry.next_index = (current + 1) % frame_count
                entry.last_access = now

        return current

    async def advance(self, key: str, frame_count: int) -> int:
        """Async form of get_and_advance for the request handler."""
        return self.get_and_advance(key, frame_count)

    def peek(self, key: str) -> Optional[int]:
        """Return the stored next index without touching the entry."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.next_index if entry else None

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Remove entries idle for longer than the TTL.

        Keys are snapshotted first, then checked and deleted in batches of
        ``sweep_batch_size``, taking the lock once per batch. Entries
        refreshed after the snapshot are re-checked and kept.

        Args:
            now: Sweep time in clock seconds (default: clock())

        Returns:
            Number of entries removed
        """
        if self.ttl_seconds <= 0:
            return 0

        if now is None:
            now = self._clock()
        cutoff = now - self.ttl_seconds

        with self._lock:
            keys = list(self._entries)

        removed = 0
        for start in range(0, len(keys), self.sweep_batch_size):
            batch = keys[start:start + self.sweep_batch_size]
            with self._lock:
                batch_removed = 0
                for key in batch:
                    entry = self._entries.get(key)
                    if entry is not None and entry.last_access < cutoff:
                        del self._entries[key]
                        batch_removed += 1
                self._expired += batch_removed
            removed += batch_removed

        if removed:
            logger.info(f"Swept {removed} idle visitors, {len(self._entries)} remaining")
        return removed

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries cleared.
        """
        with self._lock:
            cleared = len(self._entries)
            self._entries.clear()
        return cleared

    def metrics(self) -> dict:
        """
        Get store metrics for observability.

        Returns:
            Dict with size, limits and hit/miss/eviction counters
        """
        return {
            "size": len(self._entries),
            "max_visitors": self.max_visitors,
            "ttl_seconds": self.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "evicted": self._evicted,
            "expired": self._expired,
        }

    def _evict_overflow(self) -> None:
        # Caller holds the lock
        evicted = 0
        while len(self._entries) > self.max_visitors:
            self._entries.popitem(last=False)
            evicted += 1
        self._evicted += evicted
        logger.debug(f"Visitor store at capacity, evicted {evicted} oldest entries")
