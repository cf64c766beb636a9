"""
Frames Module
=============

Animation assets: loading, daily selection, rotation and rendering.

    - Frame / LoadedAnimation: Immutable payloads with precomputed headers
    - FrameStore: In-memory frames of the current animation (atomic swap)
    - AnimationSelector: Deterministic "today's animation" choice
    - AnimationRotator: Background reload on day change
    - render: ASCII text -> gzip SVG build step

Example:
    from ascii_pet.frames import AnimationSelector, FrameStore

    selector = AnimationSelector("./ascii-compressed", offset_days=0)
    store = FrameStore("./ascii-compressed")
    store.load(selector.select())
"""

from ascii_pet.frames.frame import Frame, LoadedAnimation
from ascii_pet.frames.store import FrameStore, list_frame_files
from ascii_pet.frames.selector import (
    AnimationSelector,
    epoch_days,
    select_for_today,
)
from ascii_pet.frames.rotation import AnimationRotator


__all__ = [
    "Frame",
    "LoadedAnimation",
    "FrameStore",
    "list_frame_files",
    "AnimationSelector",
    "epoch_days",
    "select_for_today",
    "AnimationRotator",
]
