"""Thin capture HAL: camera contracts, errors, and an offline fake."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class FacingMode(str, Enum):
    """Which physical camera is in use."""

    FRONT = "front"
    BACK = "back"

    def flipped(self) -> "FacingMode":
        return FacingMode.BACK if self is FacingMode.FRONT else FacingMode.FRONT


class CaptureError(RuntimeError):
    """Base class for capture failures reported to the user."""


class PermissionDeniedError(CaptureError):
    """The platform refused access to the camera."""


class DeviceUnavailableError(CaptureError):
    """No camera (or no alternate camera) could be opened."""


@dataclass(frozen=True)
class DeviceInfo:
    """One enumerated media device."""

    kind: str
    device_id: str
    label: str = ""


class StreamHandle(Protocol):
    """Live capture stream."""

    facing_mode: FacingMode

    def read_frame(self) -> Any:
        """Return the most recent frame; blocking."""

    def stop_all_tracks(self) -> None:
        """Release the camera."""


class CaptureBackend(Protocol):
    """Camera access."""

    def enumerate_devices(self) -> list[DeviceInfo]:
        """List media devices; video cameras have ``kind == "videoinput"``."""

    def request_stream(self, facing_mode: FacingMode) -> StreamHandle:
        """Open a stream; raises PermissionDeniedError or DeviceUnavailableError."""


def count_video_inputs(devices: list[DeviceInfo]) -> int:
    return sum(1 for device in devices if device.kind == "videoinput")


@dataclass
class FakeStream:
    """In-memory stream returning a fixed frame."""

    facing_mode: FacingMode
    frame: Any = None
    stopped: bool = False
    reads: int = 0

    def read_frame(self) -> Any:
        if self.stopped:
            raise DeviceUnavailableError("Stream already stopped")
        self.reads += 1
        return self.frame

    def stop_all_tracks(self) -> None:
        self.stopped = True


@dataclass
class FakeCaptureBackend:
    """Fake capture backend for offline runs and tests."""

    video_devices: int = 2
    deny_permission: bool = False
    unavailable: set[FacingMode] = field(default_factory=set)
    frame: Any = "frame"
    opened: list[FakeStream] = field(default_factory=list)

    def enumerate_devices(self) -> list[DeviceInfo]:
        devices = [DeviceInfo(kind="audioinput", device_id="mic-0")]
        devices.extend(
            DeviceInfo(kind="videoinput", device_id=f"cam-{index}")
            for index in range(self.video_devices)
        )
        return devices

    def request_stream(self, facing_mode: FacingMode) -> FakeStream:
        if self.deny_permission:
            raise PermissionDeniedError("Permission denied by fake backend")
        if self.video_devices <= 0 or facing_mode in self.unavailable:
            raise DeviceUnavailableError(f"No {facing_mode.value} camera")
        stream = FakeStream(facing_mode=facing_mode, frame=self.frame)
        self.opened.append(stream)
        return stream
