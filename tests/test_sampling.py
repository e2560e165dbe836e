"""
Tests for the Observation Pump

Async tests: the in-flight guard, failing sources and pumps driving a
live session on the event loop.
"""

import asyncio

import pytest


class TestObservationPumpTick:
    """Tests for single pump ticks"""

    @pytest.mark.asyncio
    async def test_tick_skipped_while_in_flight(self):
        """A tick that starts while the previous one runs is skipped"""
        from proctorcore.proctor.sampling import ObservationPump

        release = asyncio.Event()
        handled = []

        async def slow_source():
            await release.wait()
            return "observation"

        pump = ObservationPump("face", slow_source, handled.append, interval=1.0)

        first = asyncio.create_task(pump.tick())
        await asyncio.sleep(0)
        assert pump.in_flight is True

        assert await pump.tick() is False
        assert pump.skipped_ticks == 1

        release.set()
        assert await first is True
        assert handled == ["observation"]
        assert pump.in_flight is False

    @pytest.mark.asyncio
    async def test_none_means_not_ready(self):
        from proctorcore.proctor.sampling import ObservationPump

        handled = []
        pump = ObservationPump("object", lambda: None, handled.append, interval=1.0)

        assert await pump.tick() is True
        assert handled == []
        assert pump.empty_ticks == 1

    @pytest.mark.asyncio
    async def test_source_error_is_contained(self):
        """A failing source is logged and counted; the pump keeps going"""
        from proctorcore.proctor.sampling import ObservationPump

        calls = []

        def flaky_source():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("camera unavailable")
            return "observation"

        handled = []
        pump = ObservationPump("face", flaky_source, handled.append, interval=1.0)

        await pump.tick()
        await pump.tick()

        assert pump.failed_ticks == 1
        assert pump.completed_ticks == 1
        assert handled == ["observation"]
        assert pump.in_flight is False


class TestObservationPumpLoop:
    """Tests for the periodic loop"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        from proctorcore.proctor.sampling import ObservationPump

        handled = []
        pump = ObservationPump("face", lambda: "observation", handled.append, interval=0.01)

        pump.start()
        await asyncio.sleep(0.1)
        await pump.stop()

        ticks = len(handled)
        assert ticks >= 2
        assert pump.running is False

        await asyncio.sleep(0.05)
        assert len(handled) == ticks

    @pytest.mark.asyncio
    async def test_failed_setup_disables_pump(self):
        """If the source cannot be initialized the pump never ticks"""
        from proctorcore.proctor.sampling import ObservationPump

        calls = []

        async def broken_setup():
            raise RuntimeError("model failed to load")

        pump = ObservationPump(
            "object",
            lambda: calls.append(1),
            lambda observation: None,
            interval=0.01,
            setup=broken_setup,
        )

        pump.start()
        await asyncio.sleep(0.05)
        await pump.stop()

        assert pump.available is False
        assert calls == []
        assert pump.get_metrics()["available"] is False


class TestSessionPumps:
    """Tests for pumps attached to a live session"""

    @pytest.mark.asyncio
    async def test_pumps_feed_session(self):
        from proctorcore.proctor.models import EventKind, FaceObservation, ObjectObservation
        from proctorcore.proctor.session import ProctorSession

        session = ProctorSession("student-1", "Jane Doe")
        session.attach_sources(
            face_source=lambda: FaceObservation(count=2),
            object_source=lambda: ObjectObservation.from_pairs([("phone", 0.9)]),
            face_interval=0.01,
            object_interval=0.02,
        )

        session.start()
        await asyncio.sleep(0.1)
        report = await session.shutdown()

        kinds = [event.kind for event in session.events()]
        assert kinds.count(EventKind.MULTIPLE_SUBJECTS) == 1
        assert kinds.count(EventKind.PROHIBITED_ITEM) >= 1
        assert report.final_score == session.scorer.compute(session.events())
        assert all(not pump.running for pump in session.pumps)

    @pytest.mark.asyncio
    async def test_unavailable_object_source_keeps_session(self):
        """Face events are still recorded when the object source fails to start"""
        from proctorcore.proctor.models import EventKind, FaceObservation
        from proctorcore.proctor.session import ProctorSession

        async def broken_setup():
            raise RuntimeError("detector missing")

        session = ProctorSession("student-1", "Jane Doe")
        session.attach_sources(
            face_source=lambda: FaceObservation(count=3),
            object_source=lambda: None,
            object_setup=broken_setup,
            face_interval=0.01,
        )

        session.start()
        await asyncio.sleep(0.05)
        await session.shutdown()

        face_pump, object_pump = session.pumps
        assert face_pump.available is True
        assert object_pump.available is False
        assert [e.kind for e in session.events()] == [EventKind.MULTIPLE_SUBJECTS]
