"""
Camera Frame Source

Captures still frames from a local camera with OpenCV and encodes them as
JPEG for upload to the face detector.
"""
import asyncio
from typing import Optional, Dict, Any

from attention_backend.services.frame_source.base import FrameSource, FrameSourceError
from attention_backend.services.logger_service import get_logger
from attention_backend.types.face_detection import EncodedImage


class CameraFrameSource(FrameSource):
    """
    User-facing camera read through ``cv2.VideoCapture``.

    Blocking reads run in a worker thread so the event loop stays free for
    detector round-trips.
    """

    def __init__(
        self,
        camera_index: int = 0,
        width: int = 640,
        height: int = 480,
        jpeg_quality: int = 90,
    ):
        """
        Initialize the camera frame source.

        Args:
            camera_index: System camera index (0 = primary).
            width: Requested frame width in pixels.
            height: Requested frame height in pixels.
            jpeg_quality: JPEG encode quality (0-100).
        """
        self._camera_index = camera_index
        self._width = width
        self._height = height
        self._jpeg_quality = jpeg_quality
        self._cap: Optional[Any] = None  # cv2.VideoCapture
        self._resolution: Optional[tuple] = None
        self._logger = get_logger()

    async def open(self) -> None:
        """Open the camera."""
        if self.is_open():
            return
        await asyncio.to_thread(self._open_blocking)
        self._logger.system(
            "camera_opened",
            {"camera_index": self._camera_index, "resolution": self._resolution},
            level="INFO",
        )

    async def close(self) -> None:
        """Release the camera."""
        if self._cap is not None:
            cap = self._cap
            self._cap = None
            await asyncio.to_thread(cap.release)
            self._logger.system("camera_closed", {"camera_index": self._camera_index}, level="INFO")

    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    async def capture_frame(self) -> Optional[EncodedImage]:
        """Grab and JPEG-encode the current frame; None if the camera is not ready."""
        if not self.is_open():
            self._logger.system(
                "camera_not_ready",
                {"camera_index": self._camera_index},
                level="WARNING",
            )
            return None
        return await asyncio.to_thread(self._capture_blocking)

    def get_source_info(self) -> Dict[str, Any]:
        return {
            "type": "camera",
            "camera_index": self._camera_index,
            "resolution": self._resolution,
            "jpeg_quality": self._jpeg_quality,
        }

    # --- Internal Methods ---

    def _open_blocking(self) -> None:
        import cv2

        cap = cv2.VideoCapture(self._camera_index)
        if not cap.isOpened():
            cap.release()
            raise FrameSourceError(f"Unable to access camera {self._camera_index}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._resolution = (
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        self._cap = cap

    def _capture_blocking(self) -> Optional[EncodedImage]:
        import cv2

        cap = self._cap
        if cap is None:
            return None

        ok, frame = cap.read()
        if not ok or frame is None or frame.size == 0:
            return None

        ok, buffer = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self._jpeg_quality]
        )
        if not ok:
            return None

        height, width = frame.shape[:2]
        return EncodedImage(
            data=buffer.tobytes(),
            content_type="image/jpeg",
            width=int(width),
            height=int(height),
        )
