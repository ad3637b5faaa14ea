"""Diagnostics routines for the detection model."""

from __future__ import annotations

import importlib.util
from pathlib import Path

from diagnostics.models import DiagnosticResult, DiagnosticStatus
from vision.inference import InferenceBackend


def probe(
    model: str = "yolov8n.pt",
    detector: InferenceBackend | None = None,
    available_modules: set[str] | None = None,
) -> DiagnosticResult:
    """Check that a detector can be built.

    A missing weights file is only a warning: ultralytics downloads the
    standard checkpoints on first load.
    """

    name = "detection"

    if detector is not None:
        try:
            detector.load()
        except Exception as exc:  # noqa: BLE001 - probe should not raise
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Detector failed to load: {exc}",
            )
        status = DiagnosticStatus.PASS if detector.is_ready else DiagnosticStatus.FAIL
        return DiagnosticResult(name=name, status=status, details=f"Detector ready={detector.is_ready}")

    if available_modules is not None:
        has_ultralytics = "ultralytics" in available_modules
    else:
        has_ultralytics = importlib.util.find_spec("ultralytics") is not None
    if not has_ultralytics:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="ultralytics is not installed",
        )

    if not Path(model).exists():
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Weights '{model}' not found locally; they will be downloaded on first run",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"ultralytics available, weights at {model}",
    )
