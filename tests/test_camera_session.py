"""Tests for the camera session state machine."""

from __future__ import annotations

import asyncio
import time

from core.alert_policy import AlertDebouncer
from hardware.camera_session import CameraSessionManager, SessionSettings, SessionStatus
from hardware.capture_hal import FacingMode, FakeCaptureBackend, FakeStream
from interaction.speech_hal import FakeSpeaker
from interaction.voice_commands import VoiceCommandRouter
from vision.detection_loop import DetectionLoop
from vision.detections import Detection
from vision.inference import FakeDetector
from vision.overlay import LoggingOverlaySurface, OverlayBoard, build_overlay
from vision.proximity import ProximityPolicy


class _Harness:
    def __init__(
        self,
        capture: FakeCaptureBackend | None = None,
        detector: FakeDetector | None = None,
        settings: SessionSettings | None = None,
    ) -> None:
        self.capture = capture or FakeCaptureBackend()
        self.detector = detector or FakeDetector()
        self.speaker = FakeSpeaker()
        self.surface = LoggingOverlaySurface()
        self.board = OverlayBoard(self.surface)
        self.debouncer = AlertDebouncer()
        self.loop = DetectionLoop(
            self.detector,
            ProximityPolicy(),
            self.debouncer,
            self.board,
            self.speaker,
            clock=lambda: 0.0,
        )
        self.manager = CameraSessionManager(
            self.capture,
            self.detector,
            self.speaker,
            self.surface,
            self.board,
            self.debouncer,
            self.loop,
            settings=settings,
        )
        self.router = VoiceCommandRouter(self.manager, self.speaker)

    @property
    def messages(self) -> dict[str, str]:
        return self.manager.settings.messages

    async def close(self) -> None:
        await self.manager.stop()
        await self.loop.wait_stopped(timeout=2.0)


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def test_voice_enable_then_stop() -> None:
    async def scenario() -> None:
        h = _Harness()

        assert await h.router.route("please enable camera now") is not None
        assert h.manager.status is SessionStatus.ACTIVE
        assert h.manager.facing_mode is FacingMode.BACK
        assert h.loop.is_running()
        assert h.speaker.spoken[-1] == "Webcam enabled."
        stream = h.manager.session.stream
        assert h.surface.stream is stream

        await h.router.route("please stop the webcam")
        await h.loop.wait_stopped(timeout=2.0)

        assert h.manager.status is SessionStatus.STOPPED
        assert h.manager.session.stream is None
        assert stream.stopped is True
        assert h.surface.stream is None
        assert not h.loop.is_running()
        assert h.speaker.spoken[-1] == "Webcam stopped."

    asyncio.run(scenario())


def test_enable_is_noop_when_already_active() -> None:
    async def scenario() -> None:
        h = _Harness()

        assert await h.manager.enable() is True
        token = h.manager.session.token
        assert await h.manager.enable() is False

        assert h.manager.session.token == token
        assert len(h.capture.opened) == 1
        await h.close()

    asyncio.run(scenario())


def test_enable_ignored_until_model_ready() -> None:
    async def scenario() -> None:
        h = _Harness(detector=FakeDetector(ready=False))

        assert await h.manager.enable() is False
        assert h.manager.status is SessionStatus.IDLE
        assert h.capture.opened == []

        h.detector.load()
        assert await h.manager.enable() is True
        await h.close()

    asyncio.run(scenario())


def test_stop_is_noop_when_not_active() -> None:
    async def scenario() -> None:
        h = _Harness()

        assert await h.manager.stop() is False
        assert h.manager.status is SessionStatus.IDLE
        assert h.speaker.cancel_count == 0

        await h.manager.enable()
        assert await h.manager.stop() is True
        assert await h.manager.stop() is False
        assert h.speaker.cancel_count == 1
        await h.loop.wait_stopped(timeout=2.0)

    asyncio.run(scenario())


def test_permission_denied_is_spoken_and_state_unchanged() -> None:
    async def scenario() -> None:
        h = _Harness(capture=FakeCaptureBackend(deny_permission=True))

        assert await h.manager.enable() is False

        assert h.manager.status is SessionStatus.IDLE
        assert h.speaker.spoken == [h.messages["permission_denied"]]
        assert not h.loop.is_running()

    asyncio.run(scenario())


def test_missing_device_is_spoken() -> None:
    async def scenario() -> None:
        h = _Harness(capture=FakeCaptureBackend(video_devices=0))

        assert await h.manager.enable() is False
        assert h.speaker.spoken == [h.messages["device_unavailable"]]

    asyncio.run(scenario())


def test_switch_with_single_camera_speaks_message() -> None:
    async def scenario() -> None:
        h = _Harness(capture=FakeCaptureBackend(video_devices=1))
        await h.manager.enable()
        stream = h.manager.session.stream

        assert await h.manager.switch_camera() is False

        assert h.speaker.spoken[-1] == "No additional camera available for switching."
        assert h.manager.status is SessionStatus.ACTIVE
        assert h.manager.facing_mode is FacingMode.BACK
        assert h.manager.session.stream is stream
        assert stream.stopped is False
        await h.close()

    asyncio.run(scenario())


def test_switch_without_session_does_not_start_one() -> None:
    async def scenario() -> None:
        h = _Harness()

        assert await h.manager.switch_camera() is False

        assert h.manager.status is SessionStatus.IDLE
        assert h.capture.opened == []
        assert h.speaker.spoken == ["No additional camera available for switching."]

    asyncio.run(scenario())


def test_double_switch_returns_to_original_facing() -> None:
    async def scenario() -> None:
        h = _Harness()
        await h.manager.enable()
        first = h.manager.session.stream

        assert await h.manager.switch_camera() is True
        second = h.manager.session.stream
        assert h.manager.facing_mode is FacingMode.FRONT
        assert first.stopped is True
        assert h.surface.stream is second
        await _wait_for(lambda: second.reads > 0)
        reads_from_first = first.reads

        assert await h.manager.switch_camera() is True
        third = h.manager.session.stream
        assert h.manager.facing_mode is FacingMode.BACK
        assert second.stopped is True
        assert h.manager.status is SessionStatus.ACTIVE
        assert h.loop.is_running()
        await _wait_for(lambda: third.reads > 0)
        assert first.reads == reads_from_first
        await h.close()

    asyncio.run(scenario())


def test_failed_switch_keeps_current_stream() -> None:
    async def scenario() -> None:
        capture = FakeCaptureBackend(unavailable={FacingMode.FRONT})
        h = _Harness(capture=capture)
        await h.manager.enable()
        stream = h.manager.session.stream

        assert await h.manager.switch_camera() is False

        assert h.manager.session.stream is stream
        assert stream.stopped is False
        assert h.manager.facing_mode is FacingMode.BACK
        assert h.speaker.spoken[-1] == h.messages["device_unavailable"]
        await h.close()

    asyncio.run(scenario())


def test_stop_clears_overlay_and_alert_state() -> None:
    async def scenario() -> None:
        h = _Harness()
        await h.manager.enable()
        h.board.replace(
            build_overlay(Detection(label=f"obj{i}", confidence=0.9, bbox=(i, i, 30, 30)))
            for i in range(3)
        )
        h.debouncer.record("Warning: person is near", 100.0)
        assert len(h.surface.visible) == 3

        await h.manager.stop()
        await h.loop.wait_stopped(timeout=2.0)

        assert h.surface.visible == {}
        assert h.board.elements == []
        assert h.debouncer.state.last_message == ""
        assert h.speaker.cancel_count == 1

    asyncio.run(scenario())


def test_request_timeout_reports_unavailable_and_releases_late_stream() -> None:
    class _SlowCapture(FakeCaptureBackend):
        def request_stream(self, facing_mode: FacingMode) -> FakeStream:
            time.sleep(0.2)
            return super().request_stream(facing_mode)

    async def scenario() -> None:
        h = _Harness(
            capture=_SlowCapture(),
            settings=SessionSettings(request_timeout_s=0.01),
        )

        assert await h.manager.enable() is False
        assert h.manager.status is SessionStatus.IDLE
        assert h.speaker.spoken == [h.messages["device_unavailable"]]

        await asyncio.sleep(0.4)
        assert len(h.capture.opened) == 1
        assert h.capture.opened[0].stopped is True

    asyncio.run(scenario())


def test_settings_from_config() -> None:
    settings = SessionSettings.from_config(
        {
            "camera": {"facing_mode": "FRONT", "request_timeout_s": 5},
            "messages": {"permission_denied": "No camera access."},
        }
    )

    assert settings.facing_mode is FacingMode.FRONT
    assert settings.request_timeout_s == 5.0
    assert settings.messages["permission_denied"] == "No camera access."
    assert settings.messages["no_additional_camera"]
