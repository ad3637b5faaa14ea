"""Camera capture and session lifecycle."""

from hardware.capture_hal import (
    CaptureError,
    DeviceInfo,
    DeviceUnavailableError,
    FacingMode,
    FakeCaptureBackend,
    PermissionDeniedError,
)
from hardware.camera_session import CameraSessionManager, Session, SessionStatus

__all__ = [
    "CameraSessionManager",
    "CaptureError",
    "DeviceInfo",
    "DeviceUnavailableError",
    "FacingMode",
    "FakeCaptureBackend",
    "PermissionDeniedError",
    "Session",
    "SessionStatus",
]
