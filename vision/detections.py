"""Detection schemas shared by the inference backends and the detection loop.

Bounding boxes are in source-frame pixels and represented as
``(x, y, width, height)`` with ``(x, y)`` the top-left corner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Detection:
    """Single object detection result."""

    label: str
    confidence: float
    bbox: tuple[float, float, float, float]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def proximity(self) -> float:
        """Pixel area of the box, used as a stand-in for closeness."""

        return float(self.bbox[2]) * float(self.bbox[3])

    @property
    def estimated_distance(self) -> float:
        """Heuristic distance in arbitrary units; smaller boxes read as farther."""

        area = self.proximity
        if area <= 0:
            return float("inf")
        return 10000.0 / area


@dataclass(frozen=True)
class DetectionEvent:
    """Detection snapshot for one processed frame."""

    timestamp_ms: int
    detections: list[Detection]
    frame_id: int | None = None
    source: str = "camera"
