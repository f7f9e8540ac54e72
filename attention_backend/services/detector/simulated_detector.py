"""
Simulated Face Detector

Provides a stub implementation of the face detector for testing and
development without a remote analysis service.
"""
import asyncio
import random
from typing import List, Optional

from attention_backend.services.detector.base import FaceDetector
from attention_backend.services.logger_service import get_logger
from attention_backend.types.face_detection import (
    BoundingBox,
    DetectionResult,
    EncodedImage,
    EyeDirection,
    HeadPose,
    RawFaceMeasurement,
)


class SimulatedFaceDetector(FaceDetector):
    """
    Simulated detector producing plausible single-face measurements.

    Most frames show a user facing the screen; now and then the head turns,
    the eyes drift or no face is found, mimicking a real session.
    """

    def __init__(
        self,
        no_face_ratio: float = 0.1,
        latency_ms: int = 200,
        seed: Optional[int] = None,
        scripted: Optional[List[DetectionResult]] = None,
    ):
        """
        Initialize simulated detector.

        Args:
            no_face_ratio: Fraction of frames returned with no face (0-1).
            latency_ms: Simulated round-trip time in milliseconds.
            seed: Random seed for reproducible output.
            scripted: Fixed results returned in order (cycled) instead of random ones.
        """
        if not 0.0 <= no_face_ratio <= 1.0:
            raise ValueError(f"no_face_ratio must be within 0-1, got {no_face_ratio}")
        self._no_face_ratio = no_face_ratio
        self._latency_ms = latency_ms
        self._rng = random.Random(seed)
        self._scripted = list(scripted or [])
        self._calls = 0
        self._logger = get_logger()

    def get_provider_name(self) -> str:
        return "simulated"

    @property
    def calls(self) -> int:
        return self._calls

    async def detect(self, image: EncodedImage) -> DetectionResult:
        """Return a simulated detection after the configured latency."""
        index = self._calls
        self._calls += 1

        if self._latency_ms > 0:
            await asyncio.sleep(self._latency_ms / 1000.0)

        if self._scripted:
            return self._scripted[index % len(self._scripted)]

        if self._rng.random() < self._no_face_ratio:
            return DetectionResult(faces_detected=0, faces=[], raw={"source": "simulated"})

        face = self._generate_face()
        return DetectionResult(faces_detected=1, faces=[face], raw={"source": "simulated"})

    async def close(self) -> None:
        self._logger.system(
            "simulated_detector_closed",
            {"calls": self._calls},
            level="DEBUG",
        )

    def _generate_face(self) -> RawFaceMeasurement:
        """
        Generate a synthetic face measurement.

        Returns:
            Simulated RawFaceMeasurement.
        """
        rng = self._rng

        # Occasional glance away
        distracted = rng.random() < 0.2
        head_yaw = rng.uniform(-45.0, 45.0) if distracted else rng.gauss(0.0, 8.0)
        head_pitch = rng.gauss(0.0, 7.0)

        eye_confidence = rng.uniform(40.0, 99.0)

        return RawFaceMeasurement(
            confidence=rng.uniform(85.0, 99.99),
            bounding_box=BoundingBox(
                left=rng.uniform(0.3, 0.4),
                top=rng.uniform(0.2, 0.3),
                width=rng.uniform(0.25, 0.3),
                height=rng.uniform(0.35, 0.4),
            ),
            head_pose=HeadPose(yaw=head_yaw, pitch=head_pitch, roll=rng.gauss(0.0, 3.0)),
            eye_direction=EyeDirection(
                yaw=rng.gauss(0.0, 9.0),
                pitch=rng.gauss(0.0, 7.0),
                confidence=eye_confidence,
            ),
        )
