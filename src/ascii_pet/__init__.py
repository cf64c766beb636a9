"""
ascii-pet-server
================

Single-endpoint novelty image server.

Every visitor is identified by a fingerprint of their network address and
User-Agent and is served the next frame of a looping animation on every
request, so an embedded image behaves like a "pet" that moves each time
its page is reloaded.

Components:
    - frames: Frame Store, daily Animation Selector, rotation, SVG rendering
    - visitors: Visitor State Store, fingerprinting, TTL sweep, KV variant
    - config: YAML + environment configuration
    - main: FastAPI application (request handler)

Example:
    from ascii_pet.frames import FrameStore
    from ascii_pet.visitors import VisitorStateStore

    frames = FrameStore("./ascii-compressed")
    frames.load("0")

    visitors = VisitorStateStore(max_visitors=10_000, ttl_seconds=3600)
    index = visitors.get_and_advance(fingerprint, frames.frame_count)
    payload = frames.get(index).payload
"""

__version__ = "0.1.0"
__author__ = "ascii-pet contributors"

__all__ = [
    "__version__",
]
