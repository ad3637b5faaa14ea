"""Proximity policy turning detections into spoken warnings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from vision.detections import Detection


SELECTION_LAST = "last"
SELECTION_CLOSEST = "closest"


@dataclass(frozen=True)
class ProximitySettings:
    """Thresholds for the proximity policy."""

    min_confidence: float = 0.66
    warning_threshold: float = 150.0
    selection: str = SELECTION_LAST

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> "ProximitySettings":
        detection_cfg = config.get("detection") if isinstance(config, Mapping) else None
        alerts_cfg = config.get("alerts") if isinstance(config, Mapping) else None
        detection_cfg = detection_cfg if isinstance(detection_cfg, Mapping) else {}
        alerts_cfg = alerts_cfg if isinstance(alerts_cfg, Mapping) else {}
        selection = str(alerts_cfg.get("selection", SELECTION_LAST)).lower()
        if selection not in {SELECTION_LAST, SELECTION_CLOSEST}:
            raise ValueError(f"Unknown alert selection policy: {selection}")
        return cls(
            min_confidence=float(detection_cfg.get("min_confidence", 0.66)),
            warning_threshold=float(alerts_cfg.get("warning_threshold", 150.0)),
            selection=selection,
        )


class ProximityPolicy:
    """Stateless mapping from a detection to an optional warning message."""

    def __init__(self, settings: ProximitySettings | None = None) -> None:
        self.settings = settings or ProximitySettings()

    def qualifies(self, detection: Detection) -> bool:
        return float(detection.confidence) > self.settings.min_confidence

    def evaluate(self, detection: Detection) -> str | None:
        if not self.qualifies(detection):
            return None
        if detection.proximity <= self.settings.warning_threshold:
            return None
        if detection.label == "person":
            return "Warning: person is near"
        return f"Warning: {detection.label} is near"

    def select(self, detections: Iterable[Detection]) -> str | None:
        """Pick the one message to consider for this frame.

        ``last`` keeps the latest detection that produced a message;
        ``closest`` keeps the one with the largest box.
        """

        chosen: str | None = None
        chosen_area = -1.0
        for detection in detections:
            message = self.evaluate(detection)
            if message is None:
                continue
            if self.settings.selection == SELECTION_CLOSEST:
                if detection.proximity > chosen_area:
                    chosen = message
                    chosen_area = detection.proximity
            else:
                chosen = message
        return chosen
