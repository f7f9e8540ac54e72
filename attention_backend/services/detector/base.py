"""
Base Face Detector Protocol

Defines the interface that all face detectors must implement.
Detection is always delegated to an external provider; adapters only
translate between the provider's wire format and DetectionResult.
"""
from abc import ABC, abstractmethod
from typing import Optional

from attention_backend.types.face_detection import DetectionResult, EncodedImage


class DetectorError(RuntimeError):
    """Transport or provider failure while analysing an image."""

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.details = details


class FaceDetector(ABC):
    """
    Abstract base class for face detectors.

    All detectors must implement this interface so the SamplingController
    can run against a remote service or a simulation interchangeably.
    """

    @abstractmethod
    async def detect(self, image: EncodedImage) -> DetectionResult:
        """
        Analyse an encoded image.

        Args:
            image: Encoded still frame.

        Returns:
            DetectionResult with one measurement per detected face.

        Raises:
            DetectorError: On transport or provider failure.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release any open connections."""
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """
        Return a short identifier of the provider.

        Returns:
            String such as "http" or "simulated".
        """
        pass
