"""Parsing of detector responses into face measurements."""
import pytest

from attention_backend.types import DetectionResult, RawFaceMeasurement


PROVIDER_FACE = {
    "Confidence": 99.87,
    "BoundingBox": {"Width": 0.3, "Height": 0.4, "Left": 0.35, "Top": 0.2},
    "Pose": {"Roll": 1.2, "Yaw": -12.5, "Pitch": 4.0},
    "EyeDirection": {"Yaw": 3.1, "Pitch": -2.2, "Confidence": 88.0},
}


def test_processed_response():
    data = {
        "raw": {"FaceDetails": [PROVIDER_FACE]},
        "processed": {
            "facesDetected": 1,
            "faces": [{
                "confidence": 99.87,
                "boundingBox": PROVIDER_FACE["BoundingBox"],
                "headPose": {"roll": 1.2, "yaw": -12.5, "pitch": 4.0},
                "eyeDirection": {"yaw": 3.1, "pitch": -2.2, "confidence": 88.0},
            }],
        },
    }

    result = DetectionResult.from_dict(data)

    assert result.faces_detected == 1
    face = result.first_face
    assert face.confidence == pytest.approx(99.87)
    assert face.head_pose.yaw == pytest.approx(-12.5)
    assert face.eye_direction.confidence == pytest.approx(88.0)
    assert face.bounding_box.left == pytest.approx(0.35)
    assert result.raw == {"FaceDetails": [PROVIDER_FACE]}


def test_bare_provider_response():
    result = DetectionResult.from_dict({"FaceDetails": [PROVIDER_FACE, PROVIDER_FACE]})

    assert result.faces_detected == 2
    assert result.first_face.head_pose.roll == pytest.approx(1.2)


def test_no_faces():
    result = DetectionResult.from_dict({"processed": {"facesDetected": 0, "faces": []}})

    assert result.faces_detected == 0
    assert result.first_face is None


def test_face_without_pose_or_eyes():
    face = RawFaceMeasurement.from_dict({"confidence": 91})

    assert face.head_pose is None
    assert face.eye_direction is None
    assert face.bounding_box is None


def test_face_without_confidence_is_rejected():
    with pytest.raises(KeyError):
        RawFaceMeasurement.from_dict({"Pose": {"Yaw": 1}})


def test_non_mapping_response_is_rejected():
    with pytest.raises(TypeError):
        DetectionResult.from_dict(["not", "a", "dict"])
