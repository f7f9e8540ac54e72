"""Configuration loading and saving."""
import pytest

from attention_backend.types import (
    DetectorMode,
    FrameSourceMode,
    SystemConfig,
)


def test_defaults():
    config = SystemConfig()

    assert config.tracking.interval_ms == 3000
    assert config.tracking.confidence_threshold == 70.0
    assert config.tracking.max_samples == 1000
    assert config.tracking.discard_stale_cycles is False
    assert config.detector.mode == DetectorMode.HTTP
    assert config.detector.max_image_bytes == 5 * 1024 * 1024
    assert config.frame_source.mode == FrameSourceMode.CAMERA


def test_partial_yaml_keeps_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "tracking:\n"
        "  interval_ms: 1500\n"
        "  confidence_threshold: 80\n"
        "detector:\n"
        "  mode: simulated\n"
        "  seed: 7\n"
        "unknown_section:\n"
        "  ignored: true\n",
        encoding="utf-8",
    )

    config = SystemConfig.from_file(str(path))

    assert config.tracking.interval_ms == 1500
    assert config.tracking.confidence_threshold == 80.0
    assert isinstance(config.tracking.confidence_threshold, float)
    assert config.tracking.record_samples is True
    assert config.detector.mode == DetectorMode.SIMULATED
    assert config.detector.seed == 7
    assert config.server.api_port == 8080


def test_round_trip(tmp_path):
    config = SystemConfig()
    config.frame_source.mode = FrameSourceMode.STATIC
    config.frame_source.image_path = "face.jpg"
    config.storage.save_images = True

    path = tmp_path / "saved.yaml"
    config.to_file(str(path))

    assert SystemConfig.from_file(str(path)) == config


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert SystemConfig.from_file(str(path)) == SystemConfig()


def test_non_mapping_yaml_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")

    with pytest.raises(ValueError):
        SystemConfig.from_file(str(path))


def test_invalid_enum_value_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("detector:\n  mode: rekognition\n", encoding="utf-8")

    with pytest.raises(ValueError):
        SystemConfig.from_file(str(path))
