"""
Sampling Controller

Drives the capture -> detect -> interpret -> record cycle, either once on
demand or continuously on a timer, and publishes the outcome of every cycle
as a domain event for presentation layers.

Responsibilities:
- Owning the tracking state (idle/running, interval, eye-confidence threshold)
- Scheduling cycles at the configured cadence and rescheduling on change
- Recording judged samples in the bounded SampleStore
- Reporting failures without ever stopping itself

Scheduled cycles are fire-and-forget: when a detector round-trip takes
longer than the interval, the next cycle starts anyway and the two overlap.
Samples are therefore appended in completion order, not trigger order.
``stop()`` cancels future cycles only; a detector call already in flight
still completes and its sample is still recorded, unless
``discard_stale_cycles`` is enabled, in which case results belonging to an
earlier generation (the counter is bumped on each stop) are dropped.
"""
import asyncio
import contextlib
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Callable, Set, Tuple

from attention_backend.layers.interpretation import interpret
from attention_backend.layers.sample_store import SampleStore
from attention_backend.layers.scheduler import RepeatingTask
from attention_backend.services.detector.base import FaceDetector
from attention_backend.services.frame_source.base import FrameSource, FrameSourceError
from attention_backend.services.logger_service import get_logger
from attention_backend.services.session_storage import SessionStorage
from attention_backend.types import (
    ControllerState,
    ControllerStatusMessage,
    CycleOutcome,
    CycleResult,
    DomainEvent,
    DomainEventType,
    TrackingConfig,
    TrackingMode,
    TrackingSample,
)

SAMPLE_LOG_EVERY = 10


def _validate_interval(interval_ms: int) -> int:
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, int) or interval_ms <= 0:
        raise ValueError(f"interval_ms must be a positive integer, got {interval_ms!r}")
    return interval_ms


def _validate_threshold(threshold: float) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise ValueError(f"confidence_threshold must be a number, got {threshold!r}")
    if not 0.0 <= threshold <= 100.0:
        raise ValueError(f"confidence_threshold must be within 0-100, got {threshold}")
    return float(threshold)


class SamplingController:
    """
    Owns the tracking state and runs capture cycles.
    """

    def __init__(
        self,
        frame_source: FrameSource,
        detector: FaceDetector,
        config: Optional[TrackingConfig] = None,
        sample_store: Optional[SampleStore] = None,
        session_storage: Optional[SessionStorage] = None,
        save_images: bool = False,
    ):
        """
        Initialize the Sampling Controller.

        Args:
            frame_source: Source of encoded still frames.
            detector: Face detector the frames are submitted to.
            config: Tracking configuration.
            sample_store: Store for judged samples; created from config if omitted.
            session_storage: Storage used to keep analyzed frames when save_images is set.
            save_images: Keep every analyzed frame on disk for debugging.
        """
        self._config = config or TrackingConfig()
        self._frame_source = frame_source
        self._detector = detector
        self._store = sample_store or SampleStore(self._config.max_samples)
        self._session_storage = session_storage
        self._save_images = save_images and session_storage is not None

        self._state = ControllerState(
            mode=TrackingMode.IDLE,
            interval_ms=_validate_interval(self._config.interval_ms),
            confidence_threshold=_validate_threshold(self._config.confidence_threshold),
            recording_enabled=self._config.record_samples,
        )

        self._timer: Optional[RepeatingTask] = None
        self._inflight: Set[asyncio.Task] = set()
        self._event_handlers: List[Callable[[DomainEvent], None]] = []

        # Statistics
        self._stats: Dict[str, Any] = {
            "cycles_started": 0,
            "cycles_completed": 0,
            "cycles_skipped": 0,
            "cycles_failed": 0,
            "cycles_discarded": 0,
            "no_face_cycles": 0,
            "samples_recorded": 0,
        }

        self._logger = get_logger()
        self._logger.system(
            "sampling_controller_initialized",
            {
                "interval_ms": self._state.interval_ms,
                "confidence_threshold": self._state.confidence_threshold,
                "recording_enabled": self._state.recording_enabled,
                "capacity": self._store.capacity,
            },
            level="DEBUG",
        )

    # --- Lifecycle ---

    async def initialize(self) -> bool:
        """
        Open the frame source.

        Returns:
            True if the frame source is ready. A failure is logged and leaves
            the controller usable; cycles are skipped until frames arrive.
        """
        try:
            await self._frame_source.open()
        except FrameSourceError as e:
            self._logger.system(
                "frame_source_open_failed",
                {"error": str(e)},
                level="ERROR",
            )
            return False

        self._logger.system(
            "frame_source_ready",
            self._frame_source.get_source_info(),
            level="INFO",
        )
        return True

    async def dispose(self) -> None:
        """Stop tracking, cancel in-flight cycles and release collaborators."""
        await self.stop()

        for task in list(self._inflight):
            task.cancel()
        for task in list(self._inflight):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._inflight.clear()

        await self._detector.close()
        await self._frame_source.close()
        self._logger.system("sampling_controller_disposed", {"stats": self._stats}, level="INFO")

    # --- Tracking Control ---

    async def start(self) -> bool:
        """
        Start continuous tracking.

        Runs one cycle immediately and then one every ``interval_ms``.

        Returns:
            False if tracking was already running.
        """
        if self._state.mode == TrackingMode.RUNNING:
            return False

        self._state.mode = TrackingMode.RUNNING
        self._trigger_cycle()
        self._timer = self._make_timer()
        self._timer.start()

        self._logger.system(
            "tracking_started",
            {"interval_ms": self._state.interval_ms},
            level="INFO",
        )
        self._logger.session("tracking_started", {"interval_ms": self._state.interval_ms})
        self._publish(DomainEvent(
            event_type=DomainEventType.TRACKING_STARTED,
            payload=self.get_status_message(),
        ))
        return True

    async def stop(self) -> bool:
        """
        Stop continuous tracking.

        In-flight cycles are not cancelled.

        Returns:
            False if tracking was already idle.
        """
        if self._state.mode == TrackingMode.IDLE:
            return False

        timer = self._timer
        self._timer = None
        self._state.mode = TrackingMode.IDLE
        self._state.generation += 1
        if timer is not None:
            await timer.stop()

        self._logger.system(
            "tracking_stopped",
            {"inflight_cycles": len(self._inflight)},
            level="INFO",
        )
        self._logger.session("tracking_stopped", {"samples_stored": len(self._store)})
        self._publish(DomainEvent(
            event_type=DomainEventType.TRACKING_STOPPED,
            payload=self.get_status_message(),
        ))
        return True

    def set_interval(self, interval_ms: int) -> None:
        """
        Change the tracking cadence.

        Takes effect immediately; a running timer is rescheduled at the new
        cadence. In-flight cycles are unaffected.

        Args:
            interval_ms: Milliseconds between cycles (positive).
        """
        self._state.interval_ms = _validate_interval(interval_ms)

        if self._state.mode == TrackingMode.RUNNING:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._make_timer()
            self._timer.start()

        self._logger.session(
            "interval_updated",
            {"interval_ms": interval_ms, "seconds": round(interval_ms / 1000.0, 1)},
        )
        self._publish_config_update()

    def set_confidence_threshold(self, threshold: float) -> None:
        """
        Change the minimum eye-direction confidence used by later cycles.

        Args:
            threshold: Percentage, 0-100.
        """
        self._state.confidence_threshold = _validate_threshold(threshold)
        self._logger.session("confidence_threshold_updated", {"confidence_threshold": threshold})
        self._publish_config_update()

    def set_recording(self, enabled: bool) -> None:
        """
        Enable or disable writing judged samples to the store.

        Raises:
            ValueError: If enabled is not a bool (e.g. the string "false").
        """
        if not isinstance(enabled, bool):
            raise ValueError(f"enabled must be true or false, got {enabled!r}")
        self._state.recording_enabled = enabled
        self._logger.session("recording_updated", {"enabled": self._state.recording_enabled})
        self._publish_config_update()

    async def capture_once(self) -> CycleResult:
        """
        Run a single cycle now, in either mode.

        Returns:
            Outcome of the cycle.

        Raises:
            DetectorError: If the detector call fails.
        """
        return await self._run_cycle(self._state.generation)

    async def drain(self) -> None:
        """Wait for all cycles currently in flight to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # --- Queries ---

    def get_state(self) -> ControllerState:
        """Return a copy of the current controller state."""
        return replace(self._state)

    def is_running(self) -> bool:
        return self._state.mode == TrackingMode.RUNNING

    @property
    def sample_store(self) -> SampleStore:
        return self._store

    def export_samples(self) -> List[Dict[str, Any]]:
        """Snapshot of stored samples in the exported session-data format."""
        return self._store.to_json_list()

    def export_sample_objects(self) -> Tuple[TrackingSample, ...]:
        return self._store.export_all()

    def clear_samples(self) -> int:
        """Empty the sample store. Returns how many samples were dropped."""
        dropped = len(self._store)
        self._store.clear()
        self._logger.session("samples_cleared", {"count": dropped})
        return dropped

    def get_statistics(self) -> Dict[str, Any]:
        return dict(self._stats, inflight_cycles=len(self._inflight))

    def get_status_message(self) -> ControllerStatusMessage:
        """
        Get detailed controller status.

        Returns:
            ControllerStatusMessage with the current state and counters.
        """
        return ControllerStatusMessage(
            mode=self._state.mode.value,
            timestamp=datetime.now(timezone.utc).timestamp(),
            interval_ms=self._state.interval_ms,
            confidence_threshold=self._state.confidence_threshold,
            recording_enabled=self._state.recording_enabled,
            samples_stored=len(self._store),
            sample_capacity=self._store.capacity,
            cycles_started=self._stats["cycles_started"],
            cycles_completed=self._stats["cycles_completed"],
            cycles_failed=self._stats["cycles_failed"],
            frame_source=self._frame_source.get_source_info().get("type"),
            detector=self._detector.get_provider_name(),
        )

    def register_event_handler(
        self, handler: Callable[[DomainEvent], None]
    ) -> None:
        """
        Register a handler for domain events.

        Args:
            handler: Function to call with domain events.
        """
        self._event_handlers.append(handler)

    # --- Cycle Execution ---

    def _make_timer(self) -> RepeatingTask:
        return RepeatingTask(self._trigger_cycle, self._state.interval_ms, name="sampling_timer")

    def _trigger_cycle(self) -> None:
        """Spawn a scheduled cycle without waiting for it."""
        task = asyncio.create_task(self._scheduled_cycle(self._state.generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _scheduled_cycle(self, generation: int) -> None:
        """Run a timer-driven cycle; failures are published, never raised."""
        try:
            await self._run_cycle(generation)
        except Exception as e:
            self._publish(DomainEvent(
                event_type=DomainEventType.CYCLE_FAILED,
                payload={"error": str(e), "error_type": type(e).__name__},
                metadata={"generation": generation},
            ))

    async def _run_cycle(self, generation: int) -> CycleResult:
        """Run one cycle; a failure at any step is counted and logged here, then raised."""
        self._stats["cycles_started"] += 1
        try:
            return await self._execute_cycle(generation)
        except Exception as e:
            self._stats["cycles_failed"] += 1
            self._logger.system(
                "tracking_cycle_failed",
                {"error": str(e), "error_type": type(e).__name__, "generation": generation},
                level="ERROR",
            )
            raise

    async def _execute_cycle(self, generation: int) -> CycleResult:
        """Capture, detect, interpret and record once."""
        threshold = self._state.confidence_threshold
        image = await self._frame_source.capture_frame()

        if image is None:
            self._stats["cycles_skipped"] += 1
            self._logger.system("capture_unavailable", {}, level="WARNING")
            result = CycleResult(outcome=CycleOutcome.SKIPPED, generation=generation)
            self._publish(DomainEvent(
                event_type=DomainEventType.CAPTURE_UNAVAILABLE,
                payload=result,
            ))
            return result

        detection = await self._detector.detect(image)

        if self._save_images:
            try:
                self._session_storage.save_image(image)
            except OSError as e:
                self._logger.system("image_save_failed", {"error": str(e)}, level="WARNING")

        if self._config.discard_stale_cycles and generation != self._state.generation:
            self._stats["cycles_discarded"] += 1
            self._logger.system(
                "stale_cycle_discarded",
                {"cycle_generation": generation, "current_generation": self._state.generation},
                level="DEBUG",
            )
            result = CycleResult(
                outcome=CycleOutcome.DISCARDED,
                faces_detected=detection.faces_detected,
                generation=generation,
            )
            self._publish(DomainEvent(event_type=DomainEventType.CYCLE_DISCARDED, payload=result))
            return result

        self._stats["cycles_completed"] += 1

        face = detection.first_face
        if detection.faces_detected == 0 or face is None:
            self._stats["no_face_cycles"] += 1
            self._logger.session("no_face_detected", {}, level="INFO")
            result = CycleResult(outcome=CycleOutcome.NO_FACE, generation=generation)
            self._publish(DomainEvent(
                event_type=DomainEventType.NO_FACE_DETECTED,
                payload=result,
            ))
            return result

        judgment = interpret(face, threshold)
        sample = TrackingSample.from_judgment(face, judgment)

        recorded = False
        if self._state.recording_enabled:
            count = self._store.append(sample)
            recorded = True
            self._stats["samples_recorded"] += 1
            if count % SAMPLE_LOG_EVERY == 0:
                self._logger.session("samples_saved", {"count": count})

        result = CycleResult(
            outcome=CycleOutcome.JUDGED,
            timestamp=sample.timestamp,
            faces_detected=detection.faces_detected,
            face=face,
            judgment=judgment,
            sample=sample,
            recorded=recorded,
            generation=generation,
        )

        self._logger.session(
            "gaze_judged",
            {
                "looking": judgment.is_looking_at_screen,
                "confidence": judgment.confidence_level.value,
                "reasons": list(judgment.reasons),
                "recorded": recorded,
            },
        )
        self._publish(DomainEvent(
            event_type=DomainEventType.GAZE_JUDGED,
            payload=result,
        ))
        return result

    # --- Domain Event Publishing ---

    def _publish_config_update(self) -> None:
        self._publish(DomainEvent(
            event_type=DomainEventType.CONFIG_UPDATED,
            payload=self.get_status_message(),
        ))

    def _publish(self, event: DomainEvent) -> None:
        """
        Publish a domain event to all registered handlers.

        Args:
            event: Domain event to publish.
        """
        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.system(
                    "event_handler_error",
                    {"error": str(e), "event_type": event.event_type.value},
                    level="ERROR",
                )
