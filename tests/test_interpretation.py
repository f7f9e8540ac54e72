"""
Interpretation engine tests.

Covers the worked examples, cumulative reasons, the threshold boundaries and
the confidence-level precedence between the face and eye checks.
"""
import pytest

from attention_backend.layers.interpretation import (
    EYE_YAW_THRESHOLD,
    PITCH_THRESHOLD,
    YAW_THRESHOLD,
    interpret,
)
from attention_backend.types import (
    ConfidenceLevel,
    EyeDirection,
    HeadPose,
    RawFaceMeasurement,
    ReasonCode,
)

from tests.fakes import make_face


# ── Worked examples ───────────────────────────────────────────

def test_frontal_face_is_looking_with_high_confidence():
    face = RawFaceMeasurement(
        confidence=95,
        head_pose=HeadPose(yaw=5, pitch=0, roll=0),
        eye_direction=EyeDirection(yaw=2, pitch=1, confidence=85),
    )

    judgment = interpret(face, 70)

    assert judgment.is_looking_at_screen is True
    assert judgment.confidence_level == ConfidenceLevel.HIGH
    assert judgment.reasons == ()


def test_head_turned_away_without_eye_data():
    face = RawFaceMeasurement(confidence=95, head_pose=HeadPose(yaw=40, pitch=0, roll=0))

    judgment = interpret(face, 70)

    assert judgment.is_looking_at_screen is False
    assert judgment.reasons == ("Head turned too far horizontally (40.00°)",)


def test_low_face_confidence_only_degrades_confidence():
    face = RawFaceMeasurement(confidence=60)

    judgment = interpret(face, 70)

    assert judgment.confidence_level == ConfidenceLevel.LOW
    assert judgment.is_looking_at_screen is True
    assert "Face detection confidence is low (60.00%)" in judgment.reasons


def test_low_eye_confidence_skips_eye_angles():
    face = RawFaceMeasurement(
        confidence=95,
        eye_direction=EyeDirection(yaw=20, pitch=0, confidence=50),
    )

    judgment = interpret(face, 70)

    assert judgment.confidence_level == ConfidenceLevel.MEDIUM
    assert judgment.is_looking_at_screen is True
    assert judgment.reasons == ("Eye direction confidence is low (50.00%)",)
    assert all(f.code != ReasonCode.EYE_YAW_EXCEEDED for f in judgment.findings)


# ── Cumulative checks ─────────────────────────────────────────

def test_head_yaw_and_pitch_both_reported():
    judgment = interpret(make_face(yaw=-30.5, pitch=22.25), 70)

    assert judgment.is_looking_at_screen is False
    assert judgment.reasons == (
        "Head turned too far horizontally (-30.50°)",
        "Head tilted too far vertically (22.25°)",
    )


@pytest.mark.parametrize("yaw, shown", [(40.125, "40.13"), (-40.125, "-40.13")])
def test_reason_values_round_ties_away_from_zero(yaw, shown):
    judgment = interpret(make_face(yaw=yaw), 70)

    assert judgment.reasons == (f"Head turned too far horizontally ({shown}°)",)
    assert judgment.findings[0].value == yaw


def test_reason_values_round_the_stored_float():
    # 1.005 is stored just below the tie
    judgment = interpret(make_face(confidence=1.005), 70)

    assert judgment.reasons == ("Face detection confidence is low (1.00%)",)


def test_reasons_follow_evaluation_order():
    judgment = interpret(
        make_face(confidence=80, yaw=26, eye_yaw=16, eye_pitch=-16, eye_confidence=90),
        70,
    )

    assert [f.code for f in judgment.findings] == [
        ReasonCode.FACE_CONFIDENCE_LOW,
        ReasonCode.HEAD_YAW_EXCEEDED,
        ReasonCode.EYE_YAW_EXCEEDED,
        ReasonCode.EYE_PITCH_EXCEEDED,
    ]
    assert judgment.reasons[-1] == "Eyes looking too far up/down (-16.00°)"
    assert judgment.confidence_level == ConfidenceLevel.LOW


def test_eye_confidence_notice_overrides_low_face_confidence():
    judgment = interpret(make_face(confidence=50, eye_confidence=40), 70)

    assert judgment.confidence_level == ConfidenceLevel.MEDIUM
    assert [f.code for f in judgment.findings] == [
        ReasonCode.FACE_CONFIDENCE_LOW,
        ReasonCode.EYE_CONFIDENCE_LOW,
    ]


def test_missing_pose_and_eyes_skip_checks():
    judgment = interpret(RawFaceMeasurement(confidence=99), 70)

    assert judgment.is_looking_at_screen is True
    assert judgment.confidence_level == ConfidenceLevel.HIGH
    assert judgment.findings == ()


# ── Boundaries ────────────────────────────────────────────────

@pytest.mark.parametrize("yaw", [YAW_THRESHOLD, -YAW_THRESHOLD])
def test_head_yaw_at_threshold_is_allowed(yaw):
    assert interpret(make_face(yaw=yaw), 70).is_looking_at_screen is True


@pytest.mark.parametrize("pitch", [PITCH_THRESHOLD, -PITCH_THRESHOLD])
def test_head_pitch_at_threshold_is_allowed(pitch):
    assert interpret(make_face(pitch=pitch), 70).is_looking_at_screen is True


def test_eye_yaw_just_over_threshold_disqualifies():
    judgment = interpret(make_face(eye_yaw=EYE_YAW_THRESHOLD + 0.01), 70)
    assert judgment.is_looking_at_screen is False
    assert judgment.has_disqualifying_finding


def test_eye_confidence_equal_to_threshold_is_trusted():
    judgment = interpret(make_face(eye_yaw=20, eye_confidence=70), 70)

    assert judgment.is_looking_at_screen is False
    assert judgment.confidence_level == ConfidenceLevel.HIGH


def test_face_confidence_of_exactly_ninety_is_high():
    assert interpret(make_face(confidence=90), 70).confidence_level == ConfidenceLevel.HIGH


# ── Properties ────────────────────────────────────────────────

def test_interpret_is_deterministic():
    face = make_face(confidence=85, yaw=12, pitch=-24, eye_yaw=3, eye_confidence=60)
    assert interpret(face, 70) == interpret(face, 70)


def test_threshold_changes_only_eye_evaluation():
    face = make_face(eye_yaw=18, eye_confidence=65)

    strict = interpret(face, 70)
    lenient = interpret(face, 60)

    assert strict.is_looking_at_screen is True
    assert strict.confidence_level == ConfidenceLevel.MEDIUM
    assert lenient.is_looking_at_screen is False
    assert lenient.confidence_level == ConfidenceLevel.HIGH


def test_not_looking_implies_disqualifying_finding():
    faces = [
        make_face(yaw=40),
        make_face(pitch=-21),
        make_face(eye_pitch=30),
        make_face(confidence=10),
        make_face(eye_confidence=5, eye_yaw=50),
    ]
    for face in faces:
        judgment = interpret(face, 70)
        assert judgment.is_looking_at_screen == (not judgment.has_disqualifying_finding)


def test_judgment_serializes_for_clients():
    data = interpret(make_face(yaw=40), 70).to_dict()

    assert data == {
        "isLookingAtScreen": False,
        "confidence": "high",
        "reasons": ["Head turned too far horizontally (40.00°)"],
    }
