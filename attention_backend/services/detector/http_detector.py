"""
HTTP Face Detector Adapter

Uploads frames to a remote face-analysis endpoint and parses the measured
faces out of its JSON response.
"""
import asyncio
import time
from typing import Optional, Any

import aiohttp

from attention_backend.services.detector.base import FaceDetector, DetectorError
from attention_backend.services.logger_service import get_logger
from attention_backend.types.face_detection import DetectionResult, EncodedImage

MAX_IMAGE_BYTES = 5 * 1024 * 1024


class HttpFaceDetector(FaceDetector):
    """
    Face-analysis client over HTTP.

    The endpoint receives a multipart upload with the frame in the ``image``
    field and answers with ``{"processed": {"facesDetected": n, "faces": [...]}}``.
    Error responses carry ``{"error": ..., "details": ...}``.
    """

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: Optional[float] = 30.0,
        max_image_bytes: int = MAX_IMAGE_BYTES,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the HTTP detector.

        Args:
            endpoint: Full URL of the analysis endpoint.
            timeout_seconds: Total request timeout; None or 0 disables it.
            max_image_bytes: Largest image accepted for upload.
            session: Optional shared client session (not closed by this adapter).
        """
        self._endpoint = endpoint
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds or None)
        self._max_image_bytes = max_image_bytes
        self._session = session
        self._owns_session = session is None
        self._logger = get_logger()

    def get_provider_name(self) -> str:
        return "http"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def detect(self, image: EncodedImage) -> DetectionResult:
        """Upload the image and parse the detected faces."""
        if len(image.data) > self._max_image_bytes:
            raise DetectorError(
                "Image too large",
                status=400,
                details=f"Maximum image size is {self._max_image_bytes} bytes",
            )

        form = aiohttp.FormData()
        form.add_field(
            "image",
            image.data,
            filename="capture.jpg",
            content_type=image.content_type,
        )

        session = self._get_session()
        start = time.time()
        try:
            async with session.post(self._endpoint, data=form) as response:
                body = await self._read_json(response)
                latency_ms = (time.time() - start) * 1000

                if response.status >= 400:
                    error = body.get("error") if isinstance(body, dict) else None
                    details = body.get("details") if isinstance(body, dict) else None
                    self._logger.system(
                        "http_detector_error_response",
                        {"status": response.status, "error": error, "details": details},
                        level="ERROR",
                    )
                    raise DetectorError(
                        error or f"HTTP error! status: {response.status}",
                        status=response.status,
                        details=details,
                    )
        except aiohttp.ClientError as e:
            raise DetectorError(f"Detector request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise DetectorError("Detector request timed out") from e

        try:
            result = DetectionResult.from_dict(body)
        except (TypeError, KeyError, ValueError) as e:
            raise DetectorError(f"Malformed detector response: {e}") from e

        self._logger.system(
            "http_detector_analysis_complete",
            {"faces_detected": result.faces_detected, "latency_ms": round(latency_ms, 1)},
            level="DEBUG",
        )
        return result

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    # --- Internal Methods ---

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def _read_json(self, response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            text = await response.text()
            if response.status >= 400:
                return {"error": f"HTTP error! status: {response.status}", "details": text}
            raise DetectorError("Detector returned a non-JSON response", status=response.status, details=text)
