"""
Type definitions for face-detection data structures.

Measurements arrive from the remote face-analysis service either in the
provider's own shape (capitalised keys such as ``Pose`` and ``EyeDirection``)
or in the processed camelCase shape returned by the analysis endpoint.
Both are accepted by the ``from_dict`` constructors below.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    """Return the first present key from ``keys``."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


@dataclass(frozen=True)
class BoundingBox:
    """Normalized face rectangle (fractions of the frame, 0-1)."""
    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoundingBox":
        if not isinstance(data, dict):
            raise TypeError(f"BoundingBox.from_dict expected dict, got {type(data).__name__}")
        return cls(
            left=float(_pick(data, "Left", "left") or 0.0),
            top=float(_pick(data, "Top", "top") or 0.0),
            width=float(_pick(data, "Width", "width") or 0.0),
            height=float(_pick(data, "Height", "height") or 0.0),
        )


@dataclass(frozen=True)
class HeadPose:
    """Head orientation in degrees."""
    yaw: float
    pitch: float
    roll: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HeadPose":
        if not isinstance(data, dict):
            raise TypeError(f"HeadPose.from_dict expected dict, got {type(data).__name__}")
        return cls(
            yaw=float(_pick(data, "Yaw", "yaw") or 0.0),
            pitch=float(_pick(data, "Pitch", "pitch") or 0.0),
            roll=float(_pick(data, "Roll", "roll") or 0.0),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"yaw": self.yaw, "pitch": self.pitch, "roll": self.roll}


@dataclass(frozen=True)
class EyeDirection:
    """Eye gaze direction in degrees plus the detector's confidence (0-100)."""
    yaw: float
    pitch: float
    confidence: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EyeDirection":
        if not isinstance(data, dict):
            raise TypeError(f"EyeDirection.from_dict expected dict, got {type(data).__name__}")
        return cls(
            yaw=float(_pick(data, "Yaw", "yaw") or 0.0),
            pitch=float(_pick(data, "Pitch", "pitch") or 0.0),
            confidence=float(_pick(data, "Confidence", "confidence") or 0.0),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"yaw": self.yaw, "pitch": self.pitch, "confidence": self.confidence}


@dataclass(frozen=True)
class RawFaceMeasurement:
    """Measurements for a single detected face."""
    confidence: float  # 0-100
    bounding_box: Optional[BoundingBox] = None
    head_pose: Optional[HeadPose] = None
    eye_direction: Optional[EyeDirection] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawFaceMeasurement":
        """Create a measurement from a provider or processed face payload."""
        if not isinstance(data, dict):
            raise TypeError(
                f"RawFaceMeasurement.from_dict expected dict, got {type(data).__name__}"
            )

        confidence = _pick(data, "Confidence", "confidence")
        if confidence is None:
            raise KeyError("RawFaceMeasurement missing required field: confidence")

        box = _pick(data, "BoundingBox", "boundingBox", "bounding_box")
        pose = _pick(data, "Pose", "headPose", "head_pose")
        eyes = _pick(data, "EyeDirection", "eyeDirection", "eye_direction")

        return cls(
            confidence=float(confidence),
            bounding_box=BoundingBox.from_dict(box) if box else None,
            head_pose=HeadPose.from_dict(pose) if pose else None,
            eye_direction=EyeDirection.from_dict(eyes) if eyes else None,
        )


@dataclass
class DetectionResult:
    """Detector response for one image."""
    faces_detected: int
    faces: List[RawFaceMeasurement] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def first_face(self) -> Optional[RawFaceMeasurement]:
        return self.faces[0] if self.faces else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionResult":
        """
        Parse an analysis-endpoint response.

        Accepts ``{"processed": {"facesDetected": n, "faces": [...]}, "raw": {...}}``
        as well as a bare provider response carrying ``FaceDetails``.
        """
        if not isinstance(data, dict):
            raise TypeError(f"DetectionResult.from_dict expected dict, got {type(data).__name__}")

        processed = data.get("processed")
        if isinstance(processed, dict):
            face_dicts = processed.get("faces") or []
            count = processed.get("facesDetected", len(face_dicts))
            raw = data.get("raw") or {}
        else:
            face_dicts = data.get("FaceDetails") or data.get("faces") or []
            count = len(face_dicts)
            raw = data

        faces = [RawFaceMeasurement.from_dict(f) for f in face_dicts]
        return cls(faces_detected=int(count), faces=faces, raw=raw)


@dataclass
class EncodedImage:
    """An encoded still frame ready for upload."""
    data: bytes
    content_type: str = "image/jpeg"
    width: Optional[int] = None
    height: Optional[int] = None
    timestamp: float = field(default_factory=lambda: datetime.now(timezone.utc).timestamp())

    def __len__(self) -> int:
        return len(self.data)
