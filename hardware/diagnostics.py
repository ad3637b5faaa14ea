"""Diagnostics routines for camera capture."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass

from diagnostics.models import DiagnosticResult, DiagnosticStatus
from hardware.capture_hal import CaptureBackend, count_video_inputs


_BACKEND_MODULES = {
    "opencv": ["cv2", "numpy"],
    "picamera2": ["picamera2", "numpy"],
}


@dataclass(frozen=True)
class CaptureProbeConfig:
    """Configuration for capture dependency checks."""

    backend: str = "opencv"


def probe(
    config: CaptureProbeConfig | None = None,
    available_modules: set[str] | None = None,
    backend: CaptureBackend | None = None,
) -> DiagnosticResult:
    """Check capture dependencies, or enumerate cameras through a backend.

    Args:
        config: Optional configuration for probe behavior.
        available_modules: Optional override set for offline testing.
        backend: Optional capture backend to enumerate devices with.

    Returns:
        Diagnostic result indicating camera readiness.
    """

    name = "camera"
    settings = config or CaptureProbeConfig()

    if backend is not None:
        try:
            video_inputs = count_video_inputs(backend.enumerate_devices())
        except Exception as exc:  # noqa: BLE001 - probe should not raise
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Device enumeration failed: {exc}",
            )
        if video_inputs == 0:
            return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, details="No cameras found")
        if video_inputs == 1:
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.WARN,
                details="One camera found; switching cameras is unavailable",
            )
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.PASS,
            details=f"{video_inputs} cameras found",
        )

    required = _BACKEND_MODULES.get(settings.backend)
    if required is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Unknown camera backend '{settings.backend}'",
        )

    missing: list[str] = []
    for module_name in required:
        if available_modules is not None:
            is_available = module_name in available_modules
        else:
            is_available = importlib.util.find_spec(module_name) is not None
        if not is_available:
            missing.append(module_name)

    if missing:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Missing {settings.backend} capture deps: {', '.join(missing)}",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"{settings.backend} capture dependencies available",
    )
