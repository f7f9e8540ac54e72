"""
Domain-level event types for the SamplingController.

These events are transport-agnostic and represent domain state changes
that external systems (e.g., WebSocket adapters) can subscribe to.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class DomainEventType(Enum):
    """Types of domain events emitted by the SamplingController."""

    # Cycle outcomes
    GAZE_JUDGED = "gaze_judged"
    NO_FACE_DETECTED = "no_face_detected"
    CAPTURE_UNAVAILABLE = "capture_unavailable"
    CYCLE_FAILED = "cycle_failed"
    CYCLE_DISCARDED = "cycle_discarded"

    # Lifecycle and configuration
    TRACKING_STARTED = "tracking_started"
    TRACKING_STOPPED = "tracking_stopped"
    CONFIG_UPDATED = "config_updated"


@dataclass
class DomainEvent:
    """
    A domain-level event emitted by the SamplingController.

    Attributes:
        event_type: The type of domain event.
        timestamp: Unix timestamp when the event was created.
        payload: Event-specific domain object (e.g., CycleResult, ControllerStatus).
        metadata: Optional metadata about the event context.
    """
    event_type: DomainEventType
    timestamp: float = field(default_factory=lambda: datetime.now(timezone.utc).timestamp())
    payload: Any = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "metadata": self.metadata,
        }
