"""
Frame Source Service

Provides the frame source interface and implementations for still-frame capture.
"""
from attention_backend.services.frame_source.base import FrameSource, FrameSourceError
from attention_backend.services.frame_source.camera_adapter import CameraFrameSource
from attention_backend.services.frame_source.static_adapter import StaticImageFrameSource
from attention_backend.services.frame_source.factory import create_frame_source

__all__ = [
    "FrameSource",
    "FrameSourceError",
    "CameraFrameSource",
    "StaticImageFrameSource",
    "create_frame_source",
]
