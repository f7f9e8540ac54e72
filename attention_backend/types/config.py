"""
Configuration type definitions for all system components.
"""
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Optional, List, Dict, Any, Type, TypeVar, get_origin, get_args, Union
from enum import Enum
import yaml

T = TypeVar("T")

# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------

def _is_optional(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union and type(None) in get_args(tp)


def _strip_optional(tp: Any) -> Any:
    return next(t for t in get_args(tp) if t is not type(None))


def _coerce_value(value: Any, target_type: Any) -> Any:
    """Convert YAML value into the target field type."""
    if value is None:
        return None

    # Optional[T]
    if _is_optional(target_type):
        return _coerce_value(value, _strip_optional(target_type))

    # Enum
    if isinstance(target_type, type) and issubclass(target_type, Enum):
        return target_type(value)

    # Nested dataclass
    if isinstance(target_type, type) and is_dataclass(target_type):
        return _dict_to_dataclass(value, target_type)

    origin = get_origin(target_type)

    # List[T]
    if origin in (list, List):
        (item_type,) = get_args(target_type)
        return [_coerce_value(v, item_type) for v in value]

    # Dict[K, V]
    if origin in (dict, Dict):
        key_type, val_type = get_args(target_type)
        return {
            _coerce_value(k, key_type): _coerce_value(v, val_type)
            for k, v in value.items()
        }

    # YAML gives ints for whole floats
    if target_type is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)

    return value


def _dict_to_dataclass(data: Dict[str, Any], cls: Type[T]) -> T:
    """Create dataclass instance from dict (ignores unknown keys)."""
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping for {cls.__name__}, got {type(data).__name__}")

    field_map = {f.name: f for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_map:
            continue  # ignore unknown config keys
        field_type = field_map[key].type
        kwargs[key] = _coerce_value(value, field_type)

    return cls(**kwargs)


def _dataclass_to_dict(obj: Any) -> Any:
    """Convert dataclass to YAML-safe dict."""
    if is_dataclass(obj):
        return {f.name: _dataclass_to_dict(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _dataclass_to_dict(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_dataclass_to_dict(v) for v in obj]
    return obj

#------------------------------------------------------------------
# Configuration Data Classes
#------------------------------------------------------------------


class FrameSourceMode(Enum):
    """Where frames come from."""
    CAMERA = "camera"
    STATIC = "static"  # a fixed image file, for development


class DetectorMode(Enum):
    """Which face detector to use."""
    HTTP = "http"
    SIMULATED = "simulated"


@dataclass
class TrackingConfig:
    """Configuration for the sampling controller."""
    # Cadence of continuous tracking
    interval_ms: int = 3000

    # Minimum eye-direction confidence (0-100) before eye angles are trusted
    confidence_threshold: float = 70.0

    # Sample store
    record_samples: bool = True
    max_samples: int = 1000

    # Drop results of cycles that complete after stop()
    discard_stale_cycles: bool = False

    # Take one capture shortly after startup
    auto_start: bool = False
    auto_start_delay_ms: int = 1000


@dataclass
class FrameSourceConfig:
    """Configuration for frame capture."""
    mode: FrameSourceMode = FrameSourceMode.CAMERA

    # Camera settings
    camera_index: int = 0
    width: int = 640
    height: int = 480
    jpeg_quality: int = 90

    # Static mode
    image_path: Optional[str] = None


@dataclass
class DetectorConfig:
    """Configuration for the face detector."""
    mode: DetectorMode = DetectorMode.HTTP

    # HTTP detector
    endpoint: str = "http://localhost:3000/api/analyze"
    timeout_seconds: float = 30.0
    max_image_bytes: int = 5 * 1024 * 1024

    # Simulated detector
    simulated_no_face_ratio: float = 0.1
    simulated_latency_ms: int = 200
    seed: Optional[int] = None


@dataclass
class StorageConfig:
    """Configuration for session-data persistence."""
    data_dir: str = "data"
    save_images: bool = False  # keep analyzed frames for debugging


@dataclass
class ServerConfig:
    """Configuration for the REST and WebSocket servers."""
    host: str = "localhost"
    websocket_port: int = 8765
    api_port: int = 8080

    # Logging
    log_level: str = "INFO"
    session_log_level: str = "INFO"


@dataclass
class SystemConfig:
    """Complete system configuration."""
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    frame_source: FrameSourceConfig = field(default_factory=FrameSourceConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_file(cls, path: str) -> "SystemConfig":
        """Load configuration from YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError("Top-level YAML must be a mapping")

        return _dict_to_dataclass(data, cls)

    def to_dict(self) -> Dict[str, Any]:
        return _dataclass_to_dict(self)

    def to_file(self, path: str) -> None:
        """Save configuration to YAML file."""
        data = _dataclass_to_dict(self)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                data,
                f,
                sort_keys=False,
                default_flow_style=False,
            )
