"""
Face Detector Factory

Creates and configures face detectors based on system configuration.
"""
from attention_backend.services.detector.base import FaceDetector
from attention_backend.services.detector.http_detector import HttpFaceDetector
from attention_backend.services.detector.simulated_detector import SimulatedFaceDetector
from attention_backend.services.logger_service import get_logger
from attention_backend.types.config import DetectorConfig, DetectorMode


def create_face_detector(config: DetectorConfig) -> FaceDetector:
    """
    Create a face detector based on configuration.

    Args:
        config: Detector configuration.

    Returns:
        Configured FaceDetector instance.

    Raises:
        ValueError: If detector mode is invalid.
    """
    logger = get_logger()

    logger.system(
        "face_detector_factory",
        {
            "mode": config.mode,
            "endpoint": config.endpoint,
            "timeout_seconds": config.timeout_seconds,
        },
        level="DEBUG",
    )

    if config.mode == DetectorMode.HTTP:
        detector: FaceDetector = HttpFaceDetector(
            endpoint=config.endpoint,
            timeout_seconds=config.timeout_seconds,
            max_image_bytes=config.max_image_bytes,
        )
    elif config.mode == DetectorMode.SIMULATED:
        detector = SimulatedFaceDetector(
            no_face_ratio=config.simulated_no_face_ratio,
            latency_ms=config.simulated_latency_ms,
            seed=config.seed,
        )
    else:
        logger.system(
            "face_detector_invalid_mode",
            {"mode": config.mode},
            level="ERROR",
        )
        raise ValueError(
            f"Invalid detector mode: {config.mode}. Valid modes are: http, simulated"
        )

    logger.system(
        "face_detector_created",
        {"type": detector.get_provider_name()},
        level="INFO",
    )
    return detector
