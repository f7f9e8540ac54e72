"""
Frame Source Factory

Creates and configures frame sources based on system configuration.
"""
from attention_backend.services.frame_source.base import FrameSource
from attention_backend.services.frame_source.camera_adapter import CameraFrameSource
from attention_backend.services.frame_source.static_adapter import StaticImageFrameSource
from attention_backend.services.logger_service import get_logger
from attention_backend.types.config import FrameSourceConfig, FrameSourceMode


def create_frame_source(config: FrameSourceConfig) -> FrameSource:
    """
    Create a frame source based on configuration.

    Args:
        config: Frame source configuration.

    Returns:
        Configured FrameSource instance (not yet opened).

    Raises:
        ValueError: If the mode is invalid or static mode has no image path.
    """
    logger = get_logger()

    if config.mode == FrameSourceMode.CAMERA:
        source: FrameSource = CameraFrameSource(
            camera_index=config.camera_index,
            width=config.width,
            height=config.height,
            jpeg_quality=config.jpeg_quality,
        )
    elif config.mode == FrameSourceMode.STATIC:
        if not config.image_path:
            logger.system("frame_source_missing_image_path", {}, level="ERROR")
            raise ValueError("Static frame source requires frame_source.image_path")
        source = StaticImageFrameSource(image_path=config.image_path)
    else:
        logger.system("frame_source_invalid_mode", {"mode": config.mode}, level="ERROR")
        raise ValueError(
            f"Invalid frame source mode: {config.mode}. Valid modes are: camera, static"
        )

    logger.system("frame_source_created", {"type": config.mode.value}, level="INFO")
    return source
