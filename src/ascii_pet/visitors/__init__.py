"""
Visitors Module
===============

Per-visitor animation state.

    - make_fingerprint: Bounded, hashed visitor key
    - VisitorStateStore: In-process store (FIFO cap + TTL sweep)
    - RemoteVisitorStateStore: Store backed by a key-value service
    - TTLSweeper: Background expiry task

Both stores expose ``async advance(key, frame_count) -> index``, which is
the only call the request handler makes.

Example:
    from ascii_pet.visitors import VisitorStateStore, make_fingerprint

    store = VisitorStateStore(max_visitors=10_000, ttl_seconds=3600)
    key = make_fingerprint("203.0.113.7", "Mozilla/5.0")
    index = store.get_and_advance(key, frame_count=12)
"""

from typing import Protocol

from ascii_pet.visitors.fingerprint import make_fingerprint
from ascii_pet.visitors.store import VisitorEntry, VisitorStateStore
from ascii_pet.visitors.remote import (
    InMemoryKeyValue,
    KeyValueBackend,
    RemoteVisitorStateStore,
)
from ascii_pet.visitors.sweeper import TTLSweeper


class VisitorStore(Protocol):
    """What the request handler needs from a visitor store."""

    async def advance(self, key: str, frame_count: int) -> int:
        ...

    def sweep(self) -> int:
        ...

    def metrics(self) -> dict:
        ...


__all__ = [
    "make_fingerprint",
    "VisitorEntry",
    "VisitorStateStore",
    "VisitorStore",
    "InMemoryKeyValue",
    "KeyValueBackend",
    "RemoteVisitorStateStore",
    "TTLSweeper",
]
