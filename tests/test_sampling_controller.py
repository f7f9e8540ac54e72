"""
Sampling controller tests.

Cycles run against fake collaborators; detector calls can be held open with
asyncio.Event gates to exercise in-flight and overlapping cycles.
"""
import asyncio

import pytest

from attention_backend.layers import SamplingController
from attention_backend.services.detector.base import DetectorError
from attention_backend.services.frame_source.base import FrameSourceError
from attention_backend.types import (
    CycleOutcome,
    DomainEventType,
    TrackingConfig,
    TrackingMode,
)

from tests.fakes import FakeDetector, FakeFrameSource, NO_FACE, one_face, settle

SLOW = 60_000  # interval long enough that the timer never fires in a test


def _controller(detector=None, source=None, **config):
    config.setdefault("interval_ms", SLOW)
    controller = SamplingController(
        frame_source=source or FakeFrameSource(),
        detector=detector or FakeDetector(),
        config=TrackingConfig(**config),
    )
    events = []
    controller.register_event_handler(events.append)
    return controller, events


def _event_types(events):
    return [e.event_type for e in events]


# ── Lifecycle ─────────────────────────────────────────────────

def test_start_runs_one_cycle_immediately():
    async def scenario():
        detector = FakeDetector()
        controller, events = _controller(detector)

        assert await controller.start() is True
        await controller.drain()

        assert controller.get_state().mode == TrackingMode.RUNNING
        assert detector.calls == 1
        assert len(controller.sample_store) == 1
        assert _event_types(events) == [
            DomainEventType.TRACKING_STARTED,
            DomainEventType.GAZE_JUDGED,
        ]
        await controller.dispose()

    asyncio.run(scenario())


def test_start_twice_is_a_no_op():
    async def scenario():
        detector = FakeDetector()
        controller, _ = _controller(detector)

        await controller.start()
        assert await controller.start() is False
        await controller.drain()

        assert detector.calls == 1
        await controller.dispose()

    asyncio.run(scenario())


def test_stop_when_idle_is_a_no_op():
    async def scenario():
        controller, events = _controller()
        assert await controller.stop() is False
        assert events == []

    asyncio.run(scenario())


def test_timer_repeats_until_stopped():
    async def scenario():
        detector = FakeDetector()
        controller, _ = _controller(detector, interval_ms=20)

        await controller.start()
        await asyncio.sleep(0.15)
        assert detector.calls >= 3

        await controller.stop()
        await controller.drain()
        calls_after_stop = detector.calls
        await asyncio.sleep(0.1)

        assert detector.calls == calls_after_stop
        assert controller.is_running() is False
        await controller.dispose()

    asyncio.run(scenario())


def test_initialize_reports_unavailable_frame_source(quiet_logger):
    class BrokenSource(FakeFrameSource):
        async def open(self):
            raise FrameSourceError("no camera")

    async def scenario():
        controller, _ = _controller(source=BrokenSource())
        assert await controller.initialize() is False

    asyncio.run(scenario())
    assert quiet_logger.get_system_logs("frame_source_open_failed")


def test_dispose_releases_collaborators():
    async def scenario():
        source, detector = FakeFrameSource(), FakeDetector()
        controller, _ = _controller(detector, source)
        await controller.initialize()
        assert source.is_open()

        await controller.start()
        await controller.dispose()

        assert controller.is_running() is False
        assert detector.closed is True
        assert source.is_open() is False

    asyncio.run(scenario())


# ── Cycle outcomes ────────────────────────────────────────────

def test_no_face_records_nothing():
    async def scenario():
        controller, events = _controller(FakeDetector([NO_FACE]))

        result = await controller.capture_once()

        assert result.outcome == CycleOutcome.NO_FACE
        assert len(controller.sample_store) == 0
        assert _event_types(events) == [DomainEventType.NO_FACE_DETECTED]

    asyncio.run(scenario())


def test_unready_frame_source_skips_cycle():
    async def scenario():
        detector = FakeDetector()
        controller, events = _controller(detector, FakeFrameSource(ready=False))

        result = await controller.capture_once()

        assert result.outcome == CycleOutcome.SKIPPED
        assert detector.calls == 0
        assert _event_types(events) == [DomainEventType.CAPTURE_UNAVAILABLE]
        assert controller.get_statistics()["cycles_skipped"] == 1

    asyncio.run(scenario())


def test_capture_once_records_judged_sample():
    async def scenario():
        controller, events = _controller(FakeDetector([one_face(yaw=40)]))

        result = await controller.capture_once()

        assert result.outcome == CycleOutcome.JUDGED
        assert result.recorded is True
        assert result.judgment.is_looking_at_screen is False
        exported = controller.export_samples()
        assert len(exported) == 1
        assert exported[0]["isLookingAtScreen"] is False
        assert exported[0]["headPose"]["yaw"] == 40
        assert events[-1].payload is result

    asyncio.run(scenario())


def test_capture_once_propagates_detector_error():
    async def scenario():
        controller, _ = _controller(FakeDetector([DetectorError("provider down", status=500)]))

        with pytest.raises(DetectorError):
            await controller.capture_once()
        assert controller.get_statistics()["cycles_failed"] == 1

    asyncio.run(scenario())


def test_failed_cycle_does_not_stop_tracking():
    async def scenario():
        detector = FakeDetector([DetectorError("timeout")])
        controller, events = _controller(detector, interval_ms=20)

        await controller.start()
        await asyncio.sleep(0.1)

        assert controller.is_running() is True
        assert DomainEventType.CYCLE_FAILED in _event_types(events)
        assert len(controller.sample_store) >= 1
        await controller.dispose()

    asyncio.run(scenario())


@pytest.mark.parametrize(
    "error",
    [FrameSourceError("camera unplugged"), RuntimeError("driver crashed")],
)
def test_capture_failures_are_counted(error):
    async def scenario():
        controller, _ = _controller(source=FakeFrameSource(error=error))

        with pytest.raises(type(error)):
            await controller.capture_once()
        assert controller.get_statistics()["cycles_failed"] == 1

    asyncio.run(scenario())


def test_scheduled_cycle_failure_logged_once(quiet_logger):
    async def scenario():
        controller, events = _controller(FakeDetector([DetectorError("timeout")]))

        await controller.start()
        await controller.drain()
        await controller.dispose()
        return controller, events

    controller, events = asyncio.run(scenario())

    errors = quiet_logger.get_system_logs(level="ERROR")
    assert [e.event_type for e in errors] == ["tracking_cycle_failed"]
    assert errors[0].data["error_type"] == "DetectorError"
    assert controller.get_statistics()["cycles_failed"] == 1
    assert DomainEventType.CYCLE_FAILED in _event_types(events)


def test_recording_disabled_still_judges():
    async def scenario():
        controller, events = _controller()
        controller.set_recording(False)

        result = await controller.capture_once()

        assert result.outcome == CycleOutcome.JUDGED
        assert result.recorded is False
        assert len(controller.sample_store) == 0
        assert events[-1].event_type == DomainEventType.GAZE_JUDGED

    asyncio.run(scenario())


def test_sample_progress_logged_every_tenth_sample(quiet_logger):
    async def scenario():
        controller, _ = _controller()
        for _ in range(10):
            await controller.capture_once()

    asyncio.run(scenario())
    progress = quiet_logger.get_session_logs("samples_saved")
    assert [entry.data["count"] for entry in progress] == [10]


# ── Configuration ─────────────────────────────────────────────

def test_set_interval_reschedules_running_timer():
    async def scenario():
        detector = FakeDetector()
        controller, events = _controller(detector)

        await controller.start()
        await controller.drain()
        assert detector.calls == 1

        controller.set_interval(20)
        await asyncio.sleep(0.15)

        assert controller.get_state().interval_ms == 20
        assert detector.calls >= 3
        assert DomainEventType.CONFIG_UPDATED in _event_types(events)
        await controller.dispose()

    asyncio.run(scenario())


def test_set_interval_while_idle_does_not_start():
    async def scenario():
        detector = FakeDetector()
        controller, _ = _controller(detector)

        controller.set_interval(10)
        await asyncio.sleep(0.05)

        assert detector.calls == 0
        assert controller.get_state().mode == TrackingMode.IDLE

    asyncio.run(scenario())


@pytest.mark.parametrize("value", [0, -5, True, 2.5])
def test_invalid_interval_rejected(value):
    controller, _ = _controller()
    with pytest.raises(ValueError):
        controller.set_interval(value)
    assert controller.get_state().interval_ms == SLOW


@pytest.mark.parametrize("value", [-1, 100.5, "70"])
def test_invalid_threshold_rejected(value):
    controller, _ = _controller()
    with pytest.raises(ValueError):
        controller.set_confidence_threshold(value)


@pytest.mark.parametrize("value", ["false", 0, None])
def test_recording_flag_must_be_boolean(value):
    controller, _ = _controller()
    with pytest.raises(ValueError):
        controller.set_recording(value)
    assert controller.get_state().recording_enabled is True


def test_threshold_applies_to_later_cycles():
    async def scenario():
        face = one_face(eye_yaw=18, eye_confidence=65)
        controller, _ = _controller(FakeDetector(default=face))

        before = await controller.capture_once()
        controller.set_confidence_threshold(60)
        after = await controller.capture_once()

        assert before.judgment.is_looking_at_screen is True
        assert after.judgment.is_looking_at_screen is False

    asyncio.run(scenario())


def test_state_is_a_copy():
    controller, _ = _controller()
    state = controller.get_state()
    state.interval_ms = 1
    assert controller.get_state().interval_ms == SLOW


# ── In-flight cycles ──────────────────────────────────────────

def test_in_flight_result_recorded_after_stop():
    async def scenario():
        gate = asyncio.Event()
        controller, _ = _controller(FakeDetector([(gate, one_face())]))

        await controller.start()
        await settle()
        await controller.stop()
        gate.set()
        await controller.drain()

        assert len(controller.sample_store) == 1

    asyncio.run(scenario())


def test_stale_result_discarded_when_enabled():
    async def scenario():
        gate = asyncio.Event()
        controller, events = _controller(
            FakeDetector([(gate, one_face())]),
            discard_stale_cycles=True,
        )

        await controller.start()
        await settle()
        await controller.stop()
        gate.set()
        await controller.drain()

        assert len(controller.sample_store) == 0
        assert controller.get_statistics()["cycles_discarded"] == 1
        assert events[-1].event_type == DomainEventType.CYCLE_DISCARDED

    asyncio.run(scenario())


def test_overlapping_cycles_append_in_completion_order():
    async def scenario():
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        detector = FakeDetector([
            (first_gate, one_face(yaw=1)),
            (second_gate, one_face(yaw=2)),
        ])
        controller, _ = _controller(detector)

        first = asyncio.create_task(controller.capture_once())
        second = asyncio.create_task(controller.capture_once())
        await settle()
        assert detector.calls == 2

        second_gate.set()
        await second
        first_gate.set()
        await first

        yaws = [s.head_pose.yaw for s in controller.export_sample_objects()]
        assert yaws == [2, 1]

    asyncio.run(scenario())


def test_timer_cycles_overlap_a_slow_detector():
    async def scenario():
        gate = asyncio.Event()
        detector = FakeDetector([(gate, one_face(yaw=1))], default=one_face(yaw=2))
        controller, _ = _controller(detector, interval_ms=20)

        await controller.start()
        await asyncio.sleep(0.1)

        # the first cycle is still waiting while later ticks complete
        assert detector.calls >= 3
        finished = [s.head_pose.yaw for s in controller.export_sample_objects()]
        assert finished and set(finished) == {2}

        await controller.stop()
        await settle()
        gate.set()
        await controller.drain()

        yaws = [s.head_pose.yaw for s in controller.export_sample_objects()]
        assert yaws[-1] == 1
        assert yaws.count(1) == 1
        assert len(yaws) == detector.calls
        await controller.dispose()

    asyncio.run(scenario())


def test_clear_samples_reports_dropped_count():
    async def scenario():
        controller, _ = _controller()
        await controller.capture_once()
        await controller.capture_once()
        return controller

    controller = asyncio.run(scenario())
    assert controller.clear_samples() == 2
    assert controller.export_samples() == []
