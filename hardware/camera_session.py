"""Camera session state machine: enable, switch and stop transitions."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from config.controller import DEFAULT_MESSAGES
from core.alert_policy import AlertDebouncer
from core.logging import log_error, logger
from hardware.capture_hal import (
    CaptureBackend,
    CaptureError,
    DeviceUnavailableError,
    FacingMode,
    PermissionDeniedError,
    StreamHandle,
    count_video_inputs,
)
from interaction.speech_hal import SpeechSynthesizer
from vision.detection_loop import DetectionLoop
from vision.inference import InferenceBackend
from vision.overlay import OverlayBoard, OverlaySurface


class SessionStatus(str, Enum):
    """Lifecycle of the single camera session."""

    IDLE = "idle"
    ACTIVE = "active"
    STOPPED = "stopped"


@dataclass
class Session:
    """The one camera session of the process.

    ``token`` changes on every successful enable so work started for an
    earlier session can recognise itself as stale.
    """

    status: SessionStatus = SessionStatus.IDLE
    facing_mode: FacingMode = FacingMode.BACK
    stream: StreamHandle | None = None
    token: int = 0

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def is_current(self, token: int) -> bool:
        return self.status is SessionStatus.ACTIVE and self.token == token


@dataclass(frozen=True)
class SessionSettings:
    """Settings for stream acquisition."""

    facing_mode: FacingMode = FacingMode.BACK
    request_timeout_s: float | None = None
    messages: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MESSAGES))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SessionSettings":
        camera_cfg = config.get("camera") or {}
        timeout = camera_cfg.get("request_timeout_s")
        messages = dict(DEFAULT_MESSAGES)
        messages.update(config.get("messages") or {})
        return cls(
            facing_mode=FacingMode(str(camera_cfg.get("facing_mode", "back")).lower()),
            request_timeout_s=float(timeout) if timeout is not None else None,
            messages=messages,
        )


class CameraSessionManager:
    """Owns the session and the transitions between its states.

    Voice commands and console controls both land here; the methods are the
    only code that mutates the session.
    """

    def __init__(
        self,
        capture: CaptureBackend,
        detector: InferenceBackend,
        speaker: SpeechSynthesizer,
        surface: OverlaySurface,
        board: OverlayBoard,
        debouncer: AlertDebouncer,
        detection_loop: DetectionLoop,
        settings: SessionSettings | None = None,
    ) -> None:
        self.settings = settings or SessionSettings()
        self.session = Session(facing_mode=self.settings.facing_mode)
        self._capture = capture
        self._detector = detector
        self._speaker = speaker
        self._surface = surface
        self._board = board
        self._debouncer = debouncer
        self._loop = detection_loop
        self._loop.bind(self.session, on_failure=self._handle_loop_failure)

    @property
    def status(self) -> SessionStatus:
        return self.session.status

    @property
    def facing_mode(self) -> FacingMode:
        return self.session.facing_mode

    async def enable(self) -> bool:
        """Open a stream for the current facing mode and start detecting."""

        if self.session.is_active:
            logger.debug("[CAMERA] enable ignored; session already active")
            return False
        if not self._detector.is_ready:
            logger.warning("[CAMERA] enable ignored; detection model is still loading")
            return False

        try:
            stream = await self._acquire(self.session.facing_mode)
        except CaptureError as exc:
            self._report_capture_error(exc)
            return False

        if self.session.is_active:
            # A concurrent enable won the race.
            self._release(stream)
            return False

        self.session.stream = stream
        self.session.token += 1
        self.session.status = SessionStatus.ACTIVE
        self._surface.attach(stream)
        self._loop.start(self.session.token)
        logger.info(
            "[CAMERA] Session active (facing=%s, token=%s)",
            self.session.facing_mode.value,
            self.session.token,
        )
        return True

    async def switch_camera(self) -> bool:
        """Swap to the other facing mode without interrupting detection."""

        if not self.session.is_active:
            logger.info("[CAMERA] switch ignored; no active session")
            self._speaker.speak(self.settings.messages["no_additional_camera"])
            return False

        devices = await asyncio.to_thread(self._capture.enumerate_devices)
        if count_video_inputs(devices) <= 1:
            logger.info("[CAMERA] switch ignored; only one video input available")
            self._speaker.speak(self.settings.messages["no_additional_camera"])
            return False

        token = self.session.token
        target = self.session.facing_mode.flipped()
        try:
            new_stream = await self._acquire(target)
        except CaptureError as exc:
            self._report_capture_error(exc)
            return False

        if not self.session.is_current(token):
            self._release(new_stream)
            return False

        old_stream = self.session.stream
        self.session.stream = new_stream
        self.session.facing_mode = target
        self._surface.attach(new_stream)
        if old_stream is not None:
            self._release(old_stream)
        logger.info("[CAMERA] Switched to %s camera", target.value)
        return True

    async def stop(self) -> bool:
        """Tear the session down; no-op unless active."""

        if not self.session.is_active:
            logger.debug("[CAMERA] stop ignored; session is %s", self.session.status.value)
            return False

        stream = self.session.stream
        self.session.status = SessionStatus.STOPPED
        self.session.stream = None
        if stream is not None:
            self._release(stream)
        self._surface.clear()
        self._speaker.cancel_all()
        self._board.clear()
        self._debouncer.reset()
        logger.info("[CAMERA] Session stopped")
        return True

    async def _acquire(self, facing_mode: FacingMode) -> StreamHandle:
        request = asyncio.ensure_future(
            asyncio.to_thread(self._capture.request_stream, facing_mode)
        )
        timeout = self.settings.request_timeout_s
        if timeout is None:
            return await request
        try:
            return await asyncio.wait_for(asyncio.shield(request), timeout)
        except asyncio.TimeoutError:
            request.add_done_callback(self._release_late_stream)
            raise DeviceUnavailableError(
                f"Timed out after {timeout:.1f}s waiting for the {facing_mode.value} camera"
            ) from None

    def _release_late_stream(self, request: "asyncio.Future[StreamHandle]") -> None:
        if request.cancelled() or request.exception() is not None:
            return
        logger.warning("[CAMERA] Releasing stream that arrived after its timeout")
        self._release(request.result())

    def _release(self, stream: StreamHandle) -> None:
        try:
            stream.stop_all_tracks()
        except Exception:
            logger.exception("[CAMERA] Failed to stop stream tracks")

    def _report_capture_error(self, exc: CaptureError) -> None:
        if isinstance(exc, PermissionDeniedError):
            message = self.settings.messages["permission_denied"]
        else:
            message = self.settings.messages["device_unavailable"]
        log_error(f"[CAMERA] Error accessing the camera: {exc}")
        self._speaker.speak(message)

    async def _handle_loop_failure(self, exc: BaseException) -> None:
        logger.error("[CAMERA] Detection loop gave up: %s", exc)
        await self.stop()
        self._speaker.speak(self.settings.messages["detection_failed"])
