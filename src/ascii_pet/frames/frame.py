"""
Frame Data Model
=================

Immutable frame and animation representations served by the request path.

Design Rules:
    - Payloads are opaque bytes (usually gzip-compressed SVG)
    - Response headers are computed ONCE at load time
    - A LoadedAnimation is swapped as a whole, never mutated
"""

import mimetypes
from dataclasses import dataclass, field
from typing import Dict, Tuple


_CONTENT_TYPE_OVERRIDES = {
    ".svg": "image/svg+xml; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
}


def guess_headers(name: str, length: int) -> Dict[str, str]:
    """
    Compute response headers for a frame file.

    A trailing ``.gz`` marks the payload as gzip content-encoded; the
    content type is guessed from the remaining suffix.
    """
    headers = {"Content-Length": str(length)}

    base = name
    if name.endswith(".gz"):
        base = name[:-3]
        headers["Content-Encoding"] = "gzip"

    suffix = "." + base.rsplit(".", 1)[-1] if "." in base else ""
    content_type = _CONTENT_TYPE_OVERRIDES.get(suffix.lower())
    if content_type is None:
        content_type = mimetypes.guess_type(base)[0] or "application/octet-stream"
    headers["Content-Type"] = content_type

    return headers


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One rendered animation step.

    Attributes:
        sequence: Sequence number parsed from the file name (frame<N>)
        name: Original file name
        payload: Raw bytes, passed through to the client unchanged
        headers: Precomputed response headers (length, type, encoding)
    """

    sequence: int
    name: str
    payload: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def length(self) -> int:
        return len(self.payload)

    @property
    def is_gzipped(self) -> bool:
        return self.headers.get("Content-Encoding") == "gzip"

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the payload."""
        return (
            f"Frame(sequence={self.sequence}, "
            f"name={self.name!r}, "
            f"length={self.length})"
        )


@dataclass(frozen=True, slots=True)
class LoadedAnimation:
    """
    The full ordered frame sequence for one animation.

    Readers take a reference to a LoadedAnimation and index into it, so a
    concurrent reload never exposes a partially populated sequence.
    """

    animation_id: str
    frames: Tuple[Frame, ...]
    loaded_at: float

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def get(self, index: int) -> Frame:
        """
        Return the frame at ``index``.

        Raises:
            IndexError: If index is outside [0, frame_count). Negative
                indices are rejected rather than wrapped.
        """
        if not 0 <= index < len(self.frames):
            raise IndexError(
                f"Frame index {index} out of range for animation "
                f"{self.animation_id!r} ({len(self.frames)} frames)"
            )
        return self.frames[index]
