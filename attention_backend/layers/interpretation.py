"""
Interpretation Engine

Input: measurements for one detected face
Output: GazeJudgment (looking at screen or not, confidence level, reasons)

Checks run in a fixed order and are cumulative, so several reasons may be
reported for the same face:
1. face-detection confidence (degrades confidence only)
2. head pose yaw / pitch
3. eye direction yaw / pitch, or a low eye-confidence notice
"""
from typing import List

from attention_backend.types import (
    ConfidenceLevel,
    GazeFinding,
    GazeJudgment,
    RawFaceMeasurement,
    ReasonCode,
)

FACE_CONFIDENCE_THRESHOLD = 90.0

YAW_THRESHOLD = 25.0
PITCH_THRESHOLD = 20.0

EYE_YAW_THRESHOLD = 15.0
EYE_PITCH_THRESHOLD = 15.0

DEFAULT_EYE_CONFIDENCE_THRESHOLD = 70.0


def interpret(
    face: RawFaceMeasurement,
    eye_confidence_threshold: float = DEFAULT_EYE_CONFIDENCE_THRESHOLD,
) -> GazeJudgment:
    """
    Decide whether a face is looking at the screen.

    Args:
        face: Measurements for the detected face.
        eye_confidence_threshold: Minimum eye-direction confidence (0-100)
            required before eye angles are evaluated.

    Returns:
        An immutable GazeJudgment. Missing head pose or eye direction simply
        skips the corresponding check.
    """
    looking = True
    level = ConfidenceLevel.HIGH
    findings: List[GazeFinding] = []

    if face.confidence < FACE_CONFIDENCE_THRESHOLD:
        level = ConfidenceLevel.LOW
        findings.append(GazeFinding(ReasonCode.FACE_CONFIDENCE_LOW, face.confidence, False))

    pose = face.head_pose
    if pose is not None:
        if abs(pose.yaw) > YAW_THRESHOLD:
            looking = False
            findings.append(GazeFinding(ReasonCode.HEAD_YAW_EXCEEDED, pose.yaw, True))

        if abs(pose.pitch) > PITCH_THRESHOLD:
            looking = False
            findings.append(GazeFinding(ReasonCode.HEAD_PITCH_EXCEEDED, pose.pitch, True))

    eyes = face.eye_direction
    if eyes is not None:
        if eyes.confidence >= eye_confidence_threshold:
            if abs(eyes.yaw) > EYE_YAW_THRESHOLD:
                looking = False
                findings.append(GazeFinding(ReasonCode.EYE_YAW_EXCEEDED, eyes.yaw, True))

            if abs(eyes.pitch) > EYE_PITCH_THRESHOLD:
                looking = False
                findings.append(GazeFinding(ReasonCode.EYE_PITCH_EXCEEDED, eyes.pitch, True))
        else:
            # Overwrites LOW from the face check as well
            level = ConfidenceLevel.MEDIUM
            findings.append(GazeFinding(ReasonCode.EYE_CONFIDENCE_LOW, eyes.confidence, False))

    return GazeJudgment(
        is_looking_at_screen=looking,
        confidence_level=level,
        findings=tuple(findings),
    )
