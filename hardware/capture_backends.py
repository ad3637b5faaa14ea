"""Camera capture backends for Picamera2 and OpenCV devices."""

from __future__ import annotations

from dataclasses import dataclass, field
import importlib
import importlib.util
import threading
from typing import Any, Callable, Mapping

from core.logging import logger
from hardware.capture_hal import (
    CaptureBackend,
    DeviceInfo,
    DeviceUnavailableError,
    FacingMode,
    PermissionDeniedError,
)


@dataclass(frozen=True)
class CaptureSettings:
    """Runtime settings for camera capture."""

    backend: str = "opencv"
    facing_indices: dict[str, int] = field(default_factory=lambda: {"back": 0, "front": 1})
    frame_size: tuple[int, int] = (640, 480)
    rotate_quarter_turns: int = 0
    probe_max_devices: int = 4

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CaptureSettings":
        camera_cfg = config.get("camera") or {}
        frame_size = camera_cfg.get("frame_size") or (640, 480)
        return cls(
            backend=str(camera_cfg.get("backend", "opencv")).lower(),
            facing_indices=dict(camera_cfg.get("facing_indices") or {"back": 0, "front": 1}),
            frame_size=(int(frame_size[0]), int(frame_size[1])),
            rotate_quarter_turns=int(camera_cfg.get("rotate_quarter_turns", 0)),
            probe_max_devices=int(camera_cfg.get("probe_max_devices", 4)),
        )

    def index_for(self, facing_mode: FacingMode) -> int:
        return int(self.facing_indices.get(facing_mode.value, 0))


def _require_numpy() -> Any:
    if importlib.util.find_spec("numpy") is None:
        raise RuntimeError("numpy is required for camera capture")
    return importlib.import_module("numpy")


def _rotate(numpy: Any, frame: Any, quarter_turns: int) -> Any:
    if quarter_turns % 4 == 0:
        return frame
    return numpy.ascontiguousarray(numpy.rot90(frame, k=quarter_turns))


class Picamera2Stream:
    """Running Picamera2 instance bound to one camera module."""

    def __init__(self, camera: Any, facing_mode: FacingMode, settings: CaptureSettings, numpy: Any) -> None:
        self.facing_mode = facing_mode
        self._camera = camera
        self._settings = settings
        self._np = numpy
        self._lock = threading.Lock()
        self._stopped = False

    def read_frame(self) -> Any:
        with self._lock:
            if self._stopped:
                raise DeviceUnavailableError("Camera stream already stopped")
            frame = self._camera.capture_array("main")
        return _rotate(self._np, frame, self._settings.rotate_quarter_turns)

    def stop_all_tracks(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            try:
                self._camera.stop()
            finally:
                self._camera.close()
        logger.info("[CAMERA] Picamera2 stream (%s) stopped", self.facing_mode.value)


class Picamera2CaptureBackend:
    """Capture backend for Raspberry Pi camera modules."""

    def __init__(self, settings: CaptureSettings | None = None) -> None:
        if importlib.util.find_spec("picamera2") is None:
            raise RuntimeError("picamera2 is required for Picamera2CaptureBackend")
        self._picamera2 = importlib.import_module("picamera2")
        self._np = _require_numpy()
        self.settings = settings or CaptureSettings(backend="picamera2")

    def enumerate_devices(self) -> list[DeviceInfo]:
        cameras = self._picamera2.Picamera2.global_camera_info()
        return [
            DeviceInfo(
                kind="videoinput",
                device_id=str(info.get("Num", index)),
                label=str(info.get("Model", "")),
            )
            for index, info in enumerate(cameras)
        ]

    def request_stream(self, facing_mode: FacingMode) -> Picamera2Stream:
        index = self.settings.index_for(facing_mode)
        try:
            camera = self._picamera2.Picamera2(camera_num=index)
        except PermissionError as exc:
            raise PermissionDeniedError(str(exc)) from exc
        except (IndexError, RuntimeError) as exc:
            raise DeviceUnavailableError(f"Camera {index} could not be opened: {exc}") from exc

        try:
            configuration = camera.create_preview_configuration(
                main={"size": self.settings.frame_size, "format": "RGB888"},
                buffer_count=2,
            )
            camera.configure(configuration)
            camera.start()
        except Exception as exc:
            camera.close()
            raise DeviceUnavailableError(f"Camera {index} failed to start: {exc}") from exc

        logger.info("[CAMERA] Picamera2 camera %s started (%s)", index, facing_mode.value)
        return Picamera2Stream(camera, facing_mode, self.settings, self._np)


class OpenCVStream:
    """Open ``cv2.VideoCapture`` bound to one device index."""

    def __init__(
        self,
        capture: Any,
        facing_mode: FacingMode,
        settings: CaptureSettings,
        numpy: Any,
        on_release: Callable[[], None] | None = None,
    ) -> None:
        self.facing_mode = facing_mode
        self._capture = capture
        self._on_release = on_release
        self._settings = settings
        self._np = numpy
        self._lock = threading.Lock()
        self._stopped = False

    def read_frame(self) -> Any:
        with self._lock:
            if self._stopped:
                raise DeviceUnavailableError("Camera stream already stopped")
            ok, frame = self._capture.read()
        if not ok:
            raise DeviceUnavailableError("Failed to grab frame from camera")
        return _rotate(self._np, frame, self._settings.rotate_quarter_turns)

    def stop_all_tracks(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._capture.release()
        if self._on_release is not None:
            self._on_release()
        logger.info("[CAMERA] OpenCV stream (%s) released", self.facing_mode.value)


class OpenCVCaptureBackend:
    """Capture backend for USB and laptop webcams.

    Many capture drivers allow one open handle per device, so indices held by
    a live stream are reported as present without being reopened.
    """

    def __init__(self, settings: CaptureSettings | None = None) -> None:
        if importlib.util.find_spec("cv2") is None:
            raise RuntimeError("opencv-python is required for OpenCVCaptureBackend")
        self._cv2 = importlib.import_module("cv2")
        self._np = _require_numpy()
        self.settings = settings or CaptureSettings()
        self._held: set[int] = set()
        self._held_lock = threading.Lock()

    def enumerate_devices(self) -> list[DeviceInfo]:
        with self._held_lock:
            held = set(self._held)
        configured = set(self.settings.facing_indices.values())
        if held:
            # While streaming, only the configured cameras are checked.
            indices = configured | held
        else:
            indices = configured | set(range(max(self.settings.probe_max_devices, 1)))

        devices: list[DeviceInfo] = []
        for index in sorted(indices):
            if index in held:
                devices.append(DeviceInfo(kind="videoinput", device_id=str(index), label="in use"))
                continue
            capture = self._cv2.VideoCapture(index)
            try:
                if capture.isOpened():
                    devices.append(DeviceInfo(kind="videoinput", device_id=str(index)))
            finally:
                capture.release()
        return devices

    def request_stream(self, facing_mode: FacingMode) -> OpenCVStream:
        index = self.settings.index_for(facing_mode)
        capture = self._cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            raise DeviceUnavailableError(f"Cannot open local webcam {index}")

        width, height = self.settings.frame_size
        capture.set(self._cv2.CAP_PROP_BUFFERSIZE, 1)
        capture.set(self._cv2.CAP_PROP_FRAME_WIDTH, width)
        capture.set(self._cv2.CAP_PROP_FRAME_HEIGHT, height)
        with self._held_lock:
            self._held.add(index)
        logger.info("[CAMERA] OpenCV camera %s opened (%s)", index, facing_mode.value)
        return OpenCVStream(
            capture,
            facing_mode,
            self.settings,
            self._np,
            on_release=lambda: self._release_index(index),
        )

    def _release_index(self, index: int) -> None:
        with self._held_lock:
            self._held.discard(index)


def create_capture_backend(settings: CaptureSettings) -> CaptureBackend:
    """Build the backend named in ``camera.backend``."""

    if settings.backend == "picamera2":
        return Picamera2CaptureBackend(settings)
    if settings.backend == "opencv":
        return OpenCVCaptureBackend(settings)
    raise ValueError(f"Unknown camera backend: {settings.backend}")
