"""
Animation Selector
==================

Deterministic daily choice of which animation to serve.

    selected = sorted_ids[(epoch_days + offset_days) % len(sorted_ids)]

``select_for_today`` is a pure function: tests inject ``epoch_days``
directly instead of mocking the clock.
"""

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from ascii_pet.errors import ConfigError


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400


def epoch_days(timestamp: Optional[float] = None) -> int:
    """Whole UTC days since the Unix epoch."""
    if timestamp is None:
        timestamp = time.time()
    return int(timestamp // SECONDS_PER_DAY)


def _id_sort_key(animation_id: str) -> Tuple[int, int, str]:
    # Numeric ids first, in numeric order; then named ids lexically
    if animation_id.isdigit():
        return (0, int(animation_id), animation_id)
    return (1, 0, animation_id)


def sort_animation_ids(ids: Iterable[str]) -> List[str]:
    return sorted({str(i) for i in ids}, key=_id_sort_key)


def select_for_today(ids: Iterable[str], epoch_days: int, offset_days: int = 0) -> str:
    """
    Pick the animation for a given day.

    Args:
        ids: Available animation ids (any order)
        epoch_days: Whole days since the Unix epoch
        offset_days: Shift applied to the day (testing / staging)

    Returns:
        Selected animation id

    Raises:
        ConfigError: If no ids are available
    """
    sorted_ids = sort_animation_ids(ids)
    if not sorted_ids:
        raise ConfigError("No animations available")
    return sorted_ids[(epoch_days + offset_days) % len(sorted_ids)]


class AnimationSelector:
    """
    Discovers animation ids under an asset root and selects today's.

    Attributes:
        root: Asset root directory (one subdirectory per animation)
        offset_days: Day offset applied to every selection
    """

    def __init__(self, root: Union[str, Path], offset_days: int = 0) -> None:
        self.root = Path(root)
        self.offset_days = offset_days

    def discover(self) -> List[str]:
        """
        List available animation ids.

        Raises:
            ConfigError: If the root cannot be read or holds no animations
        """
        try:
            ids = [p.name for p in self.root.iterdir() if p.is_dir()]
        except OSError as e:
            raise ConfigError(f"Cannot read asset root {self.root}: {e}") from e

        if not ids:
            raise ConfigError(f"No animations found under {self.root}")

        return sort_animation_ids(ids)

    def select(self, days: Optional[int] = None) -> str:
        """Select the animation for ``days`` (default: today)."""
        if days is None:
            days = epoch_days()
        selected = select_for_today(self.discover(), days, self.offset_days)
        logger.debug(f"Selected animation {selected!r} for day {days}+{self.offset_days}")
        return selected
