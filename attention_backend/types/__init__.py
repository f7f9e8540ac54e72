# Type definitions for the screen-attention backend
from .face_detection import (
    BoundingBox,
    HeadPose,
    EyeDirection,
    RawFaceMeasurement,
    DetectionResult,
    EncodedImage,
)
from .judgment import (
    ConfidenceLevel,
    ReasonCode,
    GazeFinding,
    GazeJudgment,
    TrackingSample,
    TrackingMode,
    ControllerState,
    CycleOutcome,
    CycleResult,
)
from .config import (
    TrackingConfig,
    FrameSourceConfig,
    FrameSourceMode,
    DetectorConfig,
    DetectorMode,
    StorageConfig,
    ServerConfig,
    SystemConfig,
)
from .messages import (
    MessageType,
    WebSocketMessage,
    ControllerStatusMessage,
)
from .domain_events import (
    DomainEvent,
    DomainEventType,
)

__all__ = [
    # Face detection types
    "BoundingBox",
    "HeadPose",
    "EyeDirection",
    "RawFaceMeasurement",
    "DetectionResult",
    "EncodedImage",
    # Judgment types
    "ConfidenceLevel",
    "ReasonCode",
    "GazeFinding",
    "GazeJudgment",
    "TrackingSample",
    "TrackingMode",
    "ControllerState",
    "CycleOutcome",
    "CycleResult",
    # Config types
    "TrackingConfig",
    "FrameSourceConfig",
    "FrameSourceMode",
    "DetectorConfig",
    "DetectorMode",
    "StorageConfig",
    "ServerConfig",
    "SystemConfig",
    # Message types
    "MessageType",
    "WebSocketMessage",
    "ControllerStatusMessage",
    # Domain events
    "DomainEvent",
    "DomainEventType",
]
