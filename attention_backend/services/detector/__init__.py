"""
Face Detector Service

Provides detector interfaces and implementations for remote face analysis.
"""
from attention_backend.services.detector.base import FaceDetector, DetectorError
from attention_backend.services.detector.http_detector import HttpFaceDetector
from attention_backend.services.detector.simulated_detector import SimulatedFaceDetector
from attention_backend.services.detector.factory import create_face_detector

__all__ = [
    "FaceDetector",
    "DetectorError",
    "HttpFaceDetector",
    "SimulatedFaceDetector",
    "create_face_detector",
]
