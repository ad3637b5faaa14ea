"""Tests for the proximity policy."""

from __future__ import annotations

import pytest

from vision.detections import Detection
from vision.proximity import ProximityPolicy, ProximitySettings


def _det(label: str, confidence: float, width: float, height: float) -> Detection:
    return Detection(label=label, confidence=confidence, bbox=(10.0, 20.0, width, height))


@pytest.mark.parametrize("confidence", [0.0, 0.5, 0.66])
def test_low_confidence_never_alerts(confidence: float) -> None:
    policy = ProximityPolicy()

    assert policy.evaluate(_det("person", confidence, 400, 400)) is None


def test_person_near_message() -> None:
    policy = ProximityPolicy()

    assert policy.evaluate(_det("person", 0.9, 20, 10)) == "Warning: person is near"


def test_other_label_near_message() -> None:
    policy = ProximityPolicy()

    assert policy.evaluate(_det("chair", 0.67, 20, 10)) == "Warning: chair is near"


def test_area_at_threshold_is_not_near() -> None:
    policy = ProximityPolicy(ProximitySettings(warning_threshold=150))

    assert policy.evaluate(_det("dog", 0.9, 15, 10)) is None
    assert policy.evaluate(_det("dog", 0.9, 15.1, 10)) == "Warning: dog is near"


def test_threshold_comes_from_config() -> None:
    settings = ProximitySettings.from_config(
        {"alerts": {"warning_threshold": 5000}, "detection": {"min_confidence": 0.5}}
    )
    policy = ProximityPolicy(settings)

    assert policy.evaluate(_det("person", 0.6, 50, 50)) is None
    assert policy.evaluate(_det("person", 0.6, 100, 100)) == "Warning: person is near"


def test_select_last_writer_wins_by_default() -> None:
    policy = ProximityPolicy()
    detections = [
        _det("car", 0.9, 100, 100),
        _det("person", 0.9, 20, 10),
        _det("cup", 0.9, 2, 2),
    ]

    assert policy.select(detections) == "Warning: person is near"


def test_select_closest_prefers_largest_box() -> None:
    policy = ProximityPolicy(ProximitySettings(selection="closest"))
    detections = [
        _det("car", 0.9, 100, 100),
        _det("person", 0.9, 20, 10),
    ]

    assert policy.select(detections) == "Warning: car is near"


def test_unknown_selection_rejected() -> None:
    with pytest.raises(ValueError):
        ProximitySettings.from_config({"alerts": {"selection": "loudest"}})
