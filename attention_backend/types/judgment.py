"""
Type definitions for gaze judgments, tracking samples and controller state.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Tuple

from .face_detection import EyeDirection, HeadPose, RawFaceMeasurement


class ConfidenceLevel(Enum):
    """How much trust to place in a judgment."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ReasonCode(Enum):
    """Conditions that degrade or disqualify a judgment."""
    FACE_CONFIDENCE_LOW = "face_confidence_low"
    HEAD_YAW_EXCEEDED = "head_yaw_exceeded"
    HEAD_PITCH_EXCEEDED = "head_pitch_exceeded"
    EYE_YAW_EXCEEDED = "eye_yaw_exceeded"
    EYE_PITCH_EXCEEDED = "eye_pitch_exceeded"
    EYE_CONFIDENCE_LOW = "eye_confidence_low"


def format_two_decimals(value: float) -> str:
    """
    Render a measurement with two decimals, ties rounded away from zero.

    Works on the exact binary value of the float, so 40.125 gives "40.13"
    where format(40.125, ".2f") gives "40.12".
    """
    exact = Decimal(value)
    if not exact.is_finite():
        return str(value)
    return str(exact.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


_REASON_TEMPLATES: Dict[ReasonCode, str] = {
    ReasonCode.FACE_CONFIDENCE_LOW: "Face detection confidence is low ({value}%)",
    ReasonCode.HEAD_YAW_EXCEEDED: "Head turned too far horizontally ({value}°)",
    ReasonCode.HEAD_PITCH_EXCEEDED: "Head tilted too far vertically ({value}°)",
    ReasonCode.EYE_YAW_EXCEEDED: "Eyes looking too far left/right ({value}°)",
    ReasonCode.EYE_PITCH_EXCEEDED: "Eyes looking too far up/down ({value}°)",
    ReasonCode.EYE_CONFIDENCE_LOW: "Eye direction confidence is low ({value}%)",
}


@dataclass(frozen=True)
class GazeFinding:
    """A single condition raised while interpreting a face."""
    code: ReasonCode
    value: float  # exact measured value, never rounded
    disqualifying: bool

    @property
    def message(self) -> str:
        return _REASON_TEMPLATES[self.code].format(value=format_two_decimals(self.value))


@dataclass(frozen=True)
class GazeJudgment:
    """
    Structured decision on whether the user is looking at the screen.

    Findings are kept in evaluation order: face confidence, head pose,
    eye direction.
    """
    is_looking_at_screen: bool = True
    confidence_level: ConfidenceLevel = ConfidenceLevel.HIGH
    findings: Tuple[GazeFinding, ...] = ()

    @property
    def reasons(self) -> Tuple[str, ...]:
        return tuple(f.message for f in self.findings)

    @property
    def has_disqualifying_finding(self) -> bool:
        return any(f.disqualifying for f in self.findings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isLookingAtScreen": self.is_looking_at_screen,
            "confidence": self.confidence_level.value,
            "reasons": list(self.reasons),
        }


def _iso_timestamp(ts: float) -> str:
    """Format a unix timestamp like ``2024-05-01T12:00:00.000Z``."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class TrackingSample:
    """A judged capture, as stored for later export."""
    timestamp: float  # Unix timestamp in seconds
    head_pose: Optional[HeadPose] = None
    eye_direction: Optional[EyeDirection] = None
    is_looking_at_screen: Optional[bool] = None

    @classmethod
    def from_judgment(
        cls,
        face: RawFaceMeasurement,
        judgment: Optional[GazeJudgment],
        timestamp: Optional[float] = None,
    ) -> "TrackingSample":
        return cls(
            timestamp=timestamp if timestamp is not None else datetime.now(timezone.utc).timestamp(),
            head_pose=face.head_pose,
            eye_direction=face.eye_direction,
            is_looking_at_screen=judgment.is_looking_at_screen if judgment else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the exported session-data format."""
        return {
            "timestamp": _iso_timestamp(self.timestamp),
            "headPose": self.head_pose.to_dict() if self.head_pose else None,
            "eyeDirection": self.eye_direction.to_dict() if self.eye_direction else None,
            "isLookingAtScreen": self.is_looking_at_screen,
        }


class TrackingMode(Enum):
    """Sampling controller modes."""
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class ControllerState:
    """Mutable state owned by the sampling controller."""
    mode: TrackingMode = TrackingMode.IDLE
    interval_ms: int = 3000
    confidence_threshold: float = 70.0
    recording_enabled: bool = True
    generation: int = 0  # bumped on every stop()


class CycleOutcome(Enum):
    """How a capture cycle ended."""
    JUDGED = "judged"
    NO_FACE = "no_face"
    SKIPPED = "skipped"  # frame source not ready
    DISCARDED = "discarded"  # completed after a stop, dropped


@dataclass
class CycleResult:
    """Result of one capture -> detect -> interpret -> record cycle."""
    outcome: CycleOutcome
    timestamp: float = field(default_factory=lambda: datetime.now(timezone.utc).timestamp())
    faces_detected: int = 0
    face: Optional[RawFaceMeasurement] = None
    judgment: Optional[GazeJudgment] = None
    sample: Optional[TrackingSample] = None
    recorded: bool = False
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "timestamp": self.timestamp,
            "facesDetected": self.faces_detected,
            "interpretation": self.judgment.to_dict() if self.judgment else None,
            "sample": self.sample.to_dict() if self.sample else None,
            "recorded": self.recorded,
        }
