"""Vision package exports."""

from vision.detections import Detection, DetectionEvent
from vision.proximity import ProximityPolicy, ProximitySettings

__all__ = ["Detection", "DetectionEvent", "ProximityPolicy", "ProximitySettings"]
