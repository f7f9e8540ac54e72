"""
Base Frame Source Protocol

Defines the interface that all frame sources must implement.
This allows the SamplingController to work with a real camera or a
fixed image without depending on a specific capture library.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

from attention_backend.types.face_detection import EncodedImage


class FrameSourceError(RuntimeError):
    """Raised when a frame source cannot be opened or has failed permanently."""


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    A frame source hands out encoded still images on demand. Returning
    ``None`` from ``capture_frame`` means "not ready yet" and is not an
    error; the caller simply skips that capture.
    """

    @abstractmethod
    async def open(self) -> None:
        """
        Acquire the underlying device or file.

        Raises:
            FrameSourceError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying device or file."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the source is ready to capture.

        Returns:
            True if open, False otherwise.
        """
        pass

    @abstractmethod
    async def capture_frame(self) -> Optional[EncodedImage]:
        """
        Capture one encoded still frame.

        Returns:
            The encoded image, or None if no frame is available yet.
        """
        pass

    @abstractmethod
    def get_source_info(self) -> Dict[str, Any]:
        """
        Get information about the source.

        Returns:
            Dictionary with at least a ``type`` key.
        """
        pass
