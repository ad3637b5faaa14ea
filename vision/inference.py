"""Object-detection backends behind a small async contract."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import importlib
import importlib.util
import math
import threading
from typing import Any, Mapping, Protocol

from core.logging import logger
from vision.detections import Detection


class InferenceBackend(Protocol):
    """Opaque detector returning labelled pixel boxes."""

    @property
    def is_ready(self) -> bool:
        """Whether the model finished loading."""

    def load(self) -> None:
        """Load the model; blocking."""

    async def detect(self, frame: Any) -> list[Detection]:
        """Run inference on one frame."""


@dataclass(frozen=True)
class DetectorSettings:
    """Model selection for the YOLO backend."""

    model: str = "yolov8n.pt"
    device: str | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "DetectorSettings":
        detection_cfg = config.get("detection") or {}
        device = detection_cfg.get("device")
        return cls(
            model=str(detection_cfg.get("model", "yolov8n.pt")),
            device=str(device) if device else None,
        )


def _to_finite_float(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


class UltralyticsDetector:
    """YOLO detector from the ``ultralytics`` package (COCO labels)."""

    def __init__(self, settings: DetectorSettings | None = None) -> None:
        self.settings = settings or DetectorSettings()
        self._model: Any = None
        self._names: Mapping[int, str] = {}
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    def load(self) -> None:
        with self._lock:
            if self._model is not None:
                return
            if importlib.util.find_spec("ultralytics") is None:
                raise RuntimeError("ultralytics is required for UltralyticsDetector")
            ultralytics = importlib.import_module("ultralytics")
            logger.info("[DETECT] Loading model %s", self.settings.model)
            model = ultralytics.YOLO(self.settings.model)
            if self.settings.device:
                model.to(self.settings.device)
            self._names = dict(model.names)
            self._model = model
            logger.info("[DETECT] Model ready (%d classes)", len(self._names))

    async def detect(self, frame: Any) -> list[Detection]:
        if self._model is None:
            raise RuntimeError("Detector used before load() completed")
        results = await asyncio.to_thread(self._model, frame, verbose=False)
        if not results:
            return []
        return self._convert_rows(results[0].boxes.data.tolist())

    def _convert_rows(self, rows: list[list[float]]) -> list[Detection]:
        detections: list[Detection] = []
        for row in rows:
            detection = self._convert_row(row)
            if detection is not None:
                detections.append(detection)
        return detections

    def _convert_row(self, row: list[float]) -> Detection | None:
        if len(row) < 6:
            return None
        x1, y1, x2, y2, confidence = (_to_finite_float(value) for value in row[:5])
        if None in (x1, y1, x2, y2, confidence):
            return None
        width = x2 - x1
        height = y2 - y1
        if width <= 0 or height <= 0:
            return None
        class_id = int(row[5])
        label = str(self._names.get(class_id, class_id))
        return Detection(
            label=label,
            confidence=max(0.0, min(1.0, confidence)),
            bbox=(x1, y1, width, height),
            metadata={"class_id": class_id},
        )


@dataclass
class FakeDetector:
    """Scripted detector for offline runs and tests.

    Each call to ``detect`` pops the next batch from ``script``; once the script
    is exhausted the last batch repeats.
    """

    script: list[list[Detection]] = field(default_factory=list)
    ready: bool = True
    calls: int = 0

    @property
    def is_ready(self) -> bool:
        return self.ready

    def load(self) -> None:
        self.ready = True

    async def detect(self, frame: Any) -> list[Detection]:
        self.calls += 1
        if not self.script:
            return []
        if len(self.script) > 1:
            return list(self.script.pop(0))
        return list(self.script[0])
