"""
Animation Rotator
=================

Background task that swaps in a new animation when the day changes.

Design Rules:
    - Checks the selection on a fixed interval
    - Loads off the event loop (file I/O runs in a worker thread)
    - A failed reload keeps the previous animation serving
    - Stops promptly when stop() is called
"""

import asyncio
import logging
from typing import Callable, Optional

from ascii_pet.errors import AssetError, ConfigError
from ascii_pet.frames.selector import AnimationSelector, epoch_days
from ascii_pet.frames.store import FrameStore


logger = logging.getLogger(__name__)


class AnimationRotator:
    """
    Periodically re-runs selection and reloads the Frame Store.

    Example:
        rotator = AnimationRotator(selector, store, check_interval=60)
        task = asyncio.create_task(rotator.run())
        ...
        await rotator.stop()
        await task
    """

    def __init__(
        self,
        selector: AnimationSelector,
        store: FrameStore,
        check_interval: float = 60.0,
        day_source: Callable[[], int] = epoch_days,
    ) -> None:
        """
        Initialize rotator.

        Args:
            selector: Animation selector
            store: Frame store to reload
            check_interval: Seconds between checks
            day_source: Returns the current epoch day
        """
        self.selector = selector
        self.store = store
        self.check_interval = check_interval
        self.day_source = day_source

        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()
        self.rotations: int = 0
        self.failures: int = 0

    async def check_once(self) -> Optional[str]:
        """
        Reload the store if today's selection differs from what is loaded.

        Returns:
            The newly loaded animation id, or None if nothing changed
        """
        try:
            selected = self.selector.select(self.day_source())
        except ConfigError as e:
            self.failures += 1
            logger.error(f"Animation discovery failed: {e}")
            return None

        if selected == self.store.animation_id:
            return None

        try:
            count = await asyncio.to_thread(self.store.load, selected)
        except AssetError as e:
            self.failures += 1
            logger.error(
                f"Reload of animation {selected!r} failed, "
                f"keeping {self.store.animation_id!r}: {e}"
            )
            return None

        self.rotations += 1
        logger.info(f"Rotated to animation {selected!r} ({count} frames)")
        return selected

    async def run(self) -> None:
        """Check for rotation until stop() is called."""
        self._running = True
        self._stop_event.clear()

        logger.info(f"AnimationRotator started, checking every {self.check_interval}s")

        while self._running:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.check_interval,
                )
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.check_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failures += 1
                logger.error(f"Rotation check error: {e}")

        logger.info("AnimationRotator stopped")

    async def stop(self) -> None:
        """Signal the run loop to exit."""
        self._running = False
        self._stop_event.set()
