"""
Test Configuration
==================

Pytest fixtures and test configuration for ascii-pet-server.
"""

import gzip
from pathlib import Path

import pytest


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def write_animation(root: Path, animation_id: str, names, compress: bool = False) -> Path:
    """Create ``root/animation_id`` with one file per name; payload = name."""
    directory = root / animation_id
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        data = f"<svg>{name}</svg>".encode("utf-8")
        if compress:
            (directory / f"{name}.svg.gz").write_bytes(gzip.compress(data))
        else:
            (directory / f"{name}.svg").write_bytes(data)
    return directory


@pytest.fixture
def clock():
    """Provide a fake clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def asset_root(tmp_path):
    """Provide an asset root with two animations: "0" (3 frames), "1" (2 frames)."""
    root = tmp_path / "ascii-compressed"
    write_animation(root, "0", ["frame1", "frame2", "frame3"])
    write_animation(root, "1", ["frame1", "frame2"])
    return root


@pytest.fixture
def gz_asset_root(tmp_path):
    """Provide an asset root with one gzip-compressed animation."""
    root = tmp_path / "gz-assets"
    write_animation(root, "cat", ["frame1", "frame2"], compress=True)
    return root
