"""
JSON conversion for domain objects leaving the process (REST bodies,
WebSocket payloads, log data).
"""
from dataclasses import is_dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


def json_safe(x: Any) -> Any:
    # Objects with their own wire format win over the generic dataclass dump
    if hasattr(x, "to_dict") and callable(x.to_dict) and not isinstance(x, type):
        return json_safe(x.to_dict())
    if isinstance(x, datetime):
        return x.isoformat()
    if isinstance(x, Path):
        return str(x)
    if isinstance(x, bytes):
        return f"<{len(x)} bytes>"
    if is_dataclass(x) and not isinstance(x, type):
        return {k: json_safe(v) for k, v in asdict(x).items()}
    if isinstance(x, Enum):
        return x.value
    if isinstance(x, dict):
        return {k: json_safe(v) for k, v in x.items()}
    if isinstance(x, (list, tuple, set)):
        return [json_safe(v) for v in x]
    return x
