"""
Session Storage

Persists exported tracking data as JSON files and, when enabled, keeps the
analyzed frames on disk for debugging.
"""
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from attention_backend.services.logger_service import get_logger
from attention_backend.types.face_detection import EncodedImage

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")
_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


def _file_timestamp(ts: Optional[float] = None) -> str:
    """ISO-8601 timestamp with ':' and '.' replaced, safe for file names."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc) if ts is not None else datetime.now(timezone.utc)
    iso = dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


class SessionStorage:
    """
    File-backed store for tracking sessions.

    Sessions are written to ``<data_dir>/tracking-data-<session_id>.json`` as
    an indented JSON array of tracking samples.
    """

    def __init__(self, data_dir: str = "data"):
        self._data_dir = Path(data_dir)
        self._logger = get_logger()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def save_session(self, data: Sequence[Dict[str, Any]], session_id: Optional[str] = None) -> Path:
        """
        Write tracking data for a session.

        Args:
            data: Tracking samples in export format.
            session_id: Identifier for the file name; defaults to a timestamp.

        Returns:
            Path of the written file.

        Raises:
            ValueError: If data is not a list or session_id is unsafe.
        """
        if not isinstance(data, (list, tuple)):
            raise ValueError("Data must be an array of tracking points")

        if session_id is None or session_id == "":
            session_id = _file_timestamp()
        path = self._session_path(session_id)
        self._data_dir.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(list(data), f, indent=2)

        self._logger.system(
            "session_data_saved",
            {"session_id": session_id, "path": path, "count": len(data)},
            level="INFO",
        )
        return path

    def load_session(self, session_id: str) -> List[Dict[str, Any]]:
        """
        Read tracking data for a session.

        Raises:
            FileNotFoundError: If no data exists for the session.
            ValueError: If session_id is unsafe.
        """
        path = self._session_path(session_id)
        if not path.exists():
            raise FileNotFoundError(f"No tracking data found for session {session_id}")

        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_sessions(self) -> List[str]:
        if not self._data_dir.exists():
            return []
        prefix, suffix = "tracking-data-", ".json"
        return sorted(
            p.name[len(prefix):-len(suffix)]
            for p in self._data_dir.glob(f"{prefix}*{suffix}")
        )

    def save_image(self, image: EncodedImage) -> Path:
        """Keep an analyzed frame for debugging."""
        extension = _EXTENSIONS.get(image.content_type, ".jpg")
        self._data_dir.mkdir(parents=True, exist_ok=True)
        path = self._data_dir / f"image-{_file_timestamp(image.timestamp)}{extension}"
        path.write_bytes(image.data)

        self._logger.system("image_saved", {"path": path}, level="DEBUG")
        return path

    def _session_path(self, session_id: str) -> Path:
        if not isinstance(session_id, str):
            raise ValueError(f"Session id must be a string, got {type(session_id).__name__}")
        if not _SESSION_ID_PATTERN.match(session_id) or session_id in (".", ".."):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self._data_dir / f"tracking-data-{session_id}.json"
