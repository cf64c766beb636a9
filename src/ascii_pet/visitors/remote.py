"""
Key-Value Visitor State
=======================

Visitor state kept in an external key-value service with per-key TTL.

The KV service is an opaque collaborator reached through the
KeyValueBackend protocol (get / put-with-TTL). The read of the current
index is awaited before responding; the write-back of the next index is
dispatched as a background task so it never delays the response. A crash
between the two at most re-serves the same frame once.

Stored value format:
    {"idx": <next index>, "at": <epoch milliseconds>}
"""

import asyncio
import json
import logging
import time
from typing import Callable, Dict, Optional, Protocol, Set, Tuple


logger = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    """
    Protocol for key-value services with expiring keys.

    Implementations:
        - InMemoryKeyValue (process-local, tests and single-node runs)
    """

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if missing or expired."""
        ...

    async def put(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        """Store a value, expiring after ttl_seconds (None = never)."""
        ...


class InMemoryKeyValue:
    """
    Process-local KeyValueBackend with lazy expiry and sweep().

    Attributes:
        max_items: Capacity (0 = unlimited); overflow drops oldest keys
    """

    def __init__(
        self,
        max_items: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_items = max_items
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def __len__(self) -> int:
        return len(self._data)

    async def get(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self._clock():
            self._data.pop(key, None)
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._data[key] = (value, expires_at)
        if self.max_items:
            while len(self._data) > self.max_items:
                # dicts iterate in insertion order; first key is the oldest
                self._data.pop(next(iter(self._data)))

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop expired keys. Returns the number removed."""
        if now is None:
            now = self._clock()
        # Runs in a worker thread: iterate a snapshot, re-check before dropping
        removed = 0
        for key, (_, expires_at) in list(self._data.items()):
            if expires_at is None or expires_at > now:
                continue
            current = self._data.get(key)
            if current is not None and current[1] is not None and current[1] <= now:
                self._data.pop(key, None)
                removed += 1
        return removed


class RemoteVisitorStateStore:
    """
    Visitor state store backed by a KeyValueBackend.

    Backend failures are logged and degrade to "fresh visitor" (index 0);
    they never propagate into the request handler.

    Example:
        store = RemoteVisitorStateStore(InMemoryKeyValue(), ttl_seconds=3600)
        index = await store.advance(fingerprint, frame_count)
        ...
        await store.flush()
    """

    def __init__(self, backend: KeyValueBackend, ttl_seconds: float = 3600.0) -> None:
        self.backend = backend
        self.ttl_seconds = ttl_seconds

        self._pending: Set[asyncio.Task] = set()

        self.reads: int = 0
        self.writes: int = 0
        self.read_errors: int = 0
        self.write_errors: int = 0

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def advance(self, key: str, frame_count: int) -> int:
        """
        Return the frame index to serve now and schedule the write-back.

        Args:
            key: Visitor fingerprint
            frame_count: Frames in the animation being served

        Returns:
            Index in [0, frame_count), or 0 without any write when
            frame_count <= 0
        """
        if frame_count <= 0:
            return 0

        prior = await self._read_index(key)
        current = prior % frame_count
        next_index = (current + 1) % frame_count

        value = json.dumps({"idx": next_index, "at": int(time.time() * 1000)})
        task = asyncio.create_task(self._write(key, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        return current

    async def flush(self) -> None:
        """Wait for all dispatched write-backs to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def sweep(self, now: Optional[float] = None) -> int:
        """Sweep the backend if it supports it; remote services expire keys themselves."""
        sweep = getattr(self.backend, "sweep", None)
        if sweep is None:
            return 0
        return sweep(now)

    def metrics(self) -> dict:
        return {
            "backend": type(self.backend).__name__,
            "ttl_seconds": self.ttl_seconds,
            "reads": self.reads,
            "writes": self.writes,
            "read_errors": self.read_errors,
            "write_errors": self.write_errors,
            "pending_writes": self.pending_writes,
        }

    async def _read_index(self, key: str) -> int:
        self.reads += 1
        try:
            raw = await self.backend.get(key)
        except Exception as e:
            self.read_errors += 1
            logger.warning(f"Visitor state read failed: {e}")
            return 0

        if raw is None:
            return 0

        try:
            index = int(json.loads(raw)["idx"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding malformed visitor state: {e}")
            return 0

        return max(index, 0)

    async def _write(self, key: str, value: str) -> None:
        try:
            await self.backend.put(key, value, self.ttl_seconds or None)
            self.writes += 1
        except Exception as e:
            self.write_errors += 1
            logger.warning(f"Visitor state write-back failed: {e}")
