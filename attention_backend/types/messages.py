"""
Type definitions for WebSocket and API messages.
"""
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from enum import Enum


class MessageType(Enum):
    """Types of WebSocket messages."""
    # From client to backend
    START_TRACKING = "start_tracking"
    STOP_TRACKING = "stop_tracking"
    CAPTURE = "capture"

    # From backend to client
    GAZE_JUDGMENT = "gaze_judgment"
    NO_FACE = "no_face"
    CAPTURE_UNAVAILABLE = "capture_unavailable"
    CYCLE_FAILED = "cycle_failed"
    STATUS_UPDATE = "status_update"
    ERROR = "error"

    # Bidirectional
    PING = "ping"
    PONG = "pong"


@dataclass
class WebSocketMessage:
    """Base WebSocket message structure."""
    type: MessageType
    timestamp: float
    payload: Dict[str, Any] = field(default_factory=dict)
    message_id: Optional[str] = None
    target_client_id: Optional[str] = None  # For targeted messages

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "message_id": self.message_id,
            "target_client_id": self.target_client_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WebSocketMessage":
        """Create message from dictionary."""
        return cls(
            type=MessageType(data.get("type")),
            timestamp=data.get("timestamp", 0),
            payload=data.get("payload") or {},
            message_id=data.get("message_id"),
        )


@dataclass
class ControllerStatusMessage:
    """Snapshot of the sampling controller for status queries."""
    mode: str
    timestamp: float
    interval_ms: int
    confidence_threshold: float
    recording_enabled: bool
    samples_stored: int
    sample_capacity: int
    cycles_started: int = 0
    cycles_completed: int = 0
    cycles_failed: int = 0
    frame_source: Optional[str] = None
    detector: Optional[str] = None
