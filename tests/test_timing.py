"""
Tests for timer schedulers
"""

import asyncio

import pytest

from conftest import START, at


class TestManualScheduler:
    """Tests for the virtual clock"""

    def test_timers_fire_in_due_order(self, scheduler):
        fired = []

        scheduler.call_later(3, lambda: fired.append(("b", scheduler.now())))
        scheduler.call_later(1, lambda: fired.append(("a", scheduler.now())))
        scheduler.advance(5)

        assert fired == [("a", at(1)), ("b", at(3))]
        assert scheduler.now() == at(5)

    def test_cancelled_timer_does_not_fire(self, scheduler):
        fired = []

        timer = scheduler.call_later(1, fired.append, "x")
        timer.cancel()
        scheduler.advance(2)

        assert fired == []
        assert scheduler.pending == 0

    def test_timer_due_exactly_at_target_fires(self, scheduler):
        fired = []
        scheduler.call_later(2, fired.append, "x")

        scheduler.advance_to(at(2))

        assert fired == ["x"]

    def test_clock_never_moves_backwards(self, scheduler):
        scheduler.advance_to(at(10))
        scheduler.advance_to(at(4))

        assert scheduler.now() == at(10)

    def test_default_start(self):
        from proctorcore.proctor.timing import ManualScheduler

        assert ManualScheduler(start=START).now() == START
        assert ManualScheduler().now().tzinfo is not None


class TestAsyncioScheduler:
    """Tests for the event loop scheduler"""

    @pytest.mark.asyncio
    async def test_call_later(self):
        from proctorcore.proctor.timing import AsyncioScheduler

        scheduler = AsyncioScheduler()
        fired = asyncio.Event()

        scheduler.call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1.0)

        assert fired.is_set()

    @pytest.mark.asyncio
    async def test_cancel(self):
        from proctorcore.proctor.timing import AsyncioScheduler

        scheduler = AsyncioScheduler()
        fired = []

        handle = scheduler.call_later(0.01, fired.append, 1)
        handle.cancel()
        await asyncio.sleep(0.05)

        assert fired == []
