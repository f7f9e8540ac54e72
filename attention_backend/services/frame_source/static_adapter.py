"""
Static Frame Source

Serves the same image file for every capture. Useful for development and
for exercising the pipeline without a camera.
"""
import mimetypes
from pathlib import Path
from typing import Optional, Dict, Any

from attention_backend.services.frame_source.base import FrameSource, FrameSourceError
from attention_backend.services.logger_service import get_logger
from attention_backend.types.face_detection import EncodedImage


class StaticImageFrameSource(FrameSource):
    """Frame source backed by an image on disk (or raw bytes)."""

    def __init__(self, image_path: Optional[str] = None, data: Optional[bytes] = None, content_type: Optional[str] = None):
        if image_path is None and data is None:
            raise ValueError("StaticImageFrameSource needs an image_path or data")
        self._image_path = Path(image_path) if image_path else None
        self._data = data
        self._content_type = content_type or self._guess_content_type()
        self._open = False
        self._logger = get_logger()

    async def open(self) -> None:
        if self._image_path is not None:
            try:
                self._data = self._image_path.read_bytes()
            except OSError as e:
                raise FrameSourceError(f"Unable to read image {self._image_path}: {e}") from e
        self._open = True
        self._logger.system(
            "static_frame_source_opened",
            {"path": self._image_path, "bytes": len(self._data or b"")},
            level="DEBUG",
        )

    async def close(self) -> None:
        self._open = False

    def is_open(self) -> bool:
        return self._open

    async def capture_frame(self) -> Optional[EncodedImage]:
        if not self._open or not self._data:
            return None
        return EncodedImage(data=self._data, content_type=self._content_type)

    def get_source_info(self) -> Dict[str, Any]:
        return {
            "type": "static",
            "path": str(self._image_path) if self._image_path else None,
            "content_type": self._content_type,
        }

    def _guess_content_type(self) -> str:
        if self._image_path is not None:
            guessed, _ = mimetypes.guess_type(str(self._image_path))
            if guessed:
                return guessed
        return "image/jpeg"
