"""
Frame Store
===========

Holds the frames of the currently selected animation in memory.

The store is populated by ``load()`` (at startup and on rotation) and is
read-only from the request path. Each load builds a complete new
LoadedAnimation and swaps it in with a single reference assignment, so
readers see either the old sequence or the new one, never a mix.

Asset layout:
    <root>/<animation_id>/frame1.svg.gz
    <root>/<animation_id>/frame2.svg.gz
    ...
    <root>/<animation_id>/frame10.svg.gz
"""

import logging
import re
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ascii_pet.errors import AssetError
from ascii_pet.frames.frame import Frame, LoadedAnimation, guess_headers


logger = logging.getLogger(__name__)

FRAME_NAME_PATTERN = re.compile(r"frame(\d+)")


def list_frame_files(directory: Path) -> List[Tuple[int, Path]]:
    """
    List frame files in a directory ordered by sequence number.

    Files are matched on ``frame<N>`` anywhere in the name and sorted by the
    integer ``N`` so that frame2 comes before frame10. Files without a
    sequence number are ignored.

    Raises:
        AssetError: If the directory cannot be listed.
    """
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise AssetError(f"Cannot list frames in {directory}: {e}") from e

    numbered = []
    for path in entries:
        if not path.is_file():
            continue
        match = FRAME_NAME_PATTERN.search(path.name)
        if match is None:
            continue
        numbered.append((int(match.group(1)), path))

    numbered.sort(key=lambda item: (item[0], item[1].name))
    return numbered


class FrameStore:
    """
    In-memory store of one animation's frames.

    Attributes:
        root: Asset root directory
        current: Currently loaded animation, or None

    Example:
        store = FrameStore("./ascii-compressed")
        count = store.load("3")
        frame = store.get(0)
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self._current: Optional[LoadedAnimation] = None
        # Serializes loaders only; readers never take this lock
        self._load_lock = threading.Lock()
        self._load_count: int = 0
        self._failed_loads: int = 0

    @property
    def current(self) -> Optional[LoadedAnimation]:
        """Currently loaded animation, or None before the first load."""
        return self._current

    def snapshot(self) -> Optional[LoadedAnimation]:
        """Return the current animation reference for consistent reads."""
        return self._current

    @property
    def is_loaded(self) -> bool:
        return self._current is not None

    @property
    def animation_id(self) -> Optional[str]:
        current = self._current
        return current.animation_id if current else None

    @property
    def frame_count(self) -> int:
        """Frames in the current animation, 0 if nothing is loaded."""
        current = self._current
        return len(current) if current else 0

    def load(self, animation_id: str) -> int:
        """
        Load every frame of an animation and swap it in.

        Args:
            animation_id: Name of the animation subdirectory

        Returns:
            Number of frames loaded

        Raises:
            AssetError: If the directory cannot be read or holds no frames.
                The previously loaded animation is kept in that case.
        """
        directory = self.root / str(animation_id)

        with self._load_lock:
            try:
                animation = self._read_animation(str(animation_id), directory)
            except AssetError:
                self._failed_loads += 1
                raise

            self._current = animation
            self._load_count += 1

        logger.info(
            f"Loaded animation {animation.animation_id!r}: "
            f"{animation.frame_count} frames, "
            f"{sum(f.length for f in animation.frames)} bytes"
        )
        return animation.frame_count

    def get(self, index: int) -> Frame:
        """
        Get a frame of the current animation.

        Args:
            index: Frame index, expected in [0, frame_count)

        Raises:
            AssetError: If no animation has been loaded
            IndexError: If index is out of range
        """
        current = self._current
        if current is None:
            raise AssetError("No animation loaded")
        return current.get(index)

    def metrics(self) -> dict:
        """
        Get store metrics for observability.

        Returns:
            Dict with animation_id, frame_count, total_bytes, load counts
        """
        current = self._current
        return {
            "animation_id": current.animation_id if current else None,
            "frame_count": len(current) if current else 0,
            "total_bytes": sum(f.length for f in current.frames) if current else 0,
            "loads": self._load_count,
            "failed_loads": self._failed_loads,
        }

    def _read_animation(self, animation_id: str, directory: Path) -> LoadedAnimation:
        if not directory.is_dir():
            raise AssetError(f"Animation directory not found: {directory}")

        files = list_frame_files(directory)
        if not files:
            raise AssetError(f"No frames found for animation {animation_id!r}")

        frames = []
        for sequence, path in files:
            try:
                payload = path.read_bytes()
            except OSError as e:
                raise AssetError(f"Cannot read frame {path}: {e}") from e

            frames.append(
                Frame(
                    sequence=sequence,
                    name=path.name,
                    payload=payload,
                    headers=guess_headers(path.name, len(payload)),
                )
            )

        return LoadedAnimation(
            animation_id=animation_id,
            frames=tuple(frames),
            loaded_at=time.time(),
        )
