"""
TTL Sweeper
===========

Background task that periodically expires idle visitor state.

A missed or delayed sweep only costs memory; index computation never
depends on it. Errors are logged and the loop keeps going.
"""

import asyncio
import logging
import time
from typing import Optional, Protocol


logger = logging.getLogger(__name__)


class Sweepable(Protocol):
    """Anything with a sweep() that removes expired entries."""

    def sweep(self, now: Optional[float] = None) -> int:
        ...


class TTLSweeper:
    """
    Runs ``target.sweep()`` every ``interval`` seconds.

    The interval is configured independently of the entry TTL.

    Example:
        sweeper = TTLSweeper(store, interval=3600)
        task = asyncio.create_task(sweeper.run())
        ...
        await sweeper.stop()
        await task
    """

    def __init__(self, target: Sweepable, interval: float = 3600.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self.target = target
        self.interval = interval

        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()

        self.sweeps: int = 0
        self.removed_total: int = 0
        self.errors: int = 0
        self.last_sweep_at: float = 0.0

    @property
    def running(self) -> bool:
        return self._running

    def sweep_once(self) -> int:
        """Run a single sweep and record its outcome."""
        removed = self.target.sweep()
        self.sweeps += 1
        self.removed_total += removed
        self.last_sweep_at = time.time()
        return removed

    async def run(self) -> None:
        """Sweep on the interval until stop() is called."""
        self._running = True
        self._stop_event.clear()

        logger.info(f"TTLSweeper started, interval={self.interval}s")

        while self._running:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                # Off the event loop; the store locks per batch, not per scan
                await asyncio.to_thread(self.sweep_once)
            except Exception as e:
                self.errors += 1
                logger.error(f"Sweep failed: {e}")

        self._running = False
        logger.info("TTLSweeper stopped")

    async def stop(self) -> None:
        """Signal the run loop to exit."""
        self._running = False
        self._stop_event.set()

    def metrics(self) -> dict:
        return {
            "interval_seconds": self.interval,
            "sweeps": self.sweeps,
            "removed_total": self.removed_total,
            "errors": self.errors,
            "last_sweep_at": self.last_sweep_at,
        }
