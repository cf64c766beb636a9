"""
Background Task Tests
=====================

TTL sweeper and animation rotator, driven with asyncio.run.
"""

import asyncio
import threading

import pytest

from ascii_pet.frames import AnimationRotator, AnimationSelector, FrameStore
from ascii_pet.visitors import TTLSweeper, VisitorStateStore


class TestTTLSweeper:
    """Tests for the periodic sweep task."""

    def test_sweep_once(self, clock):
        store = VisitorStateStore(ttl_seconds=1, clock=clock)
        store.get_and_advance("A", 3)
        clock.advance(5)

        sweeper = TTLSweeper(store, interval=60)
        assert sweeper.sweep_once() == 1
        assert sweeper.metrics()["removed_total"] == 1

    def test_run_sweeps_until_stopped(self, clock):
        store = VisitorStateStore(ttl_seconds=1, clock=clock)
        store.get_and_advance("A", 3)
        clock.advance(5)

        async def scenario():
            sweeper = TTLSweeper(store, interval=0.01)
            task = asyncio.create_task(sweeper.run())
            await asyncio.sleep(0.1)
            await sweeper.stop()
            await asyncio.wait_for(task, timeout=1.0)
            return sweeper

        sweeper = asyncio.run(scenario())
        assert sweeper.sweeps >= 1
        assert not sweeper.running
        assert len(store) == 0

    def test_errors_do_not_stop_loop(self):
        class Broken:
            calls = 0

            def sweep(self, now=None):
                Broken.calls += 1
                raise RuntimeError("boom")

        async def scenario():
            sweeper = TTLSweeper(Broken(), interval=0.01)
            task = asyncio.create_task(sweeper.run())
            await asyncio.sleep(0.1)
            await sweeper.stop()
            await asyncio.wait_for(task, timeout=1.0)
            return sweeper

        sweeper = asyncio.run(scenario())
        assert Broken.calls >= 2
        assert sweeper.errors == Broken.calls

    def test_event_loop_runs_during_sweep(self):
        """Coroutines keep running while a sweep is in progress."""

        class SlowTarget:
            def __init__(self):
                self.started = threading.Event()
                self.released = threading.Event()
                self.saw_release = None

            def sweep(self, now=None):
                self.started.set()
                # Only the event loop can set this; it times out if the loop is stuck
                self.saw_release = self.released.wait(timeout=2.0)
                return 0

        target = SlowTarget()

        async def scenario():
            sweeper = TTLSweeper(target, interval=0.01)
            task = asyncio.create_task(sweeper.run())
            while not target.started.is_set():
                await asyncio.sleep(0.005)
            target.released.set()
            while sweeper.sweeps < 1:
                await asyncio.sleep(0.005)
            await sweeper.stop()
            await asyncio.wait_for(task, timeout=3.0)

        asyncio.run(scenario())
        assert target.saw_release is True

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            TTLSweeper(VisitorStateStore(), interval=0)


class TestAnimationRotator:
    """Tests for day-boundary reloads."""

    def test_rotates_on_day_change(self, asset_root):
        day = {"value": 0}
        selector = AnimationSelector(asset_root)
        store = FrameStore(asset_root)
        store.load(selector.select(0))

        rotator = AnimationRotator(selector, store, day_source=lambda: day["value"])

        assert asyncio.run(rotator.check_once()) is None
        assert store.animation_id == "0"

        day["value"] = 1
        assert asyncio.run(rotator.check_once()) == "1"
        assert store.animation_id == "1"
        assert store.frame_count == 2
        assert rotator.rotations == 1

    def test_failed_reload_keeps_serving(self, asset_root):
        # "2" sorts after "0" and "1" and has no frames
        (asset_root / "2").mkdir()
        selector = AnimationSelector(asset_root)
        store = FrameStore(asset_root)
        store.load("0")

        rotator = AnimationRotator(selector, store, day_source=lambda: 2)

        assert asyncio.run(rotator.check_once()) is None
        assert store.animation_id == "0"
        assert rotator.failures == 1

    def test_discovery_failure_is_logged(self, tmp_path):
        selector = AnimationSelector(tmp_path / "gone")
        store = FrameStore(tmp_path / "gone")
        rotator = AnimationRotator(selector, store, day_source=lambda: 0)

        assert asyncio.run(rotator.check_once()) is None
        assert rotator.failures == 1

    def test_run_loop(self, asset_root):
        selector = AnimationSelector(asset_root)
        store = FrameStore(asset_root)

        async def scenario():
            rotator = AnimationRotator(
                selector, store, check_interval=0.01, day_source=lambda: 1
            )
            task = asyncio.create_task(rotator.run())
            await asyncio.sleep(0.1)
            await rotator.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())
        assert store.animation_id == "1"
