"""Tests for the per-frame detection loop."""

from __future__ import annotations

import asyncio
from typing import Any

from core.alert_policy import AlertDebouncer
from hardware.camera_session import CameraSessionManager, SessionStatus
from hardware.capture_hal import FakeCaptureBackend
from interaction.speech_hal import FakeSpeaker
from vision.detection_loop import DetectionLoop, LoopSettings
from vision.detections import Detection
from vision.inference import FakeDetector
from vision.overlay import LoggingOverlaySurface, OverlayBoard
from vision.proximity import ProximityPolicy


PERSON_NEAR = Detection(label="person", confidence=0.9, bbox=(0.0, 0.0, 20.0, 10.0))
CUP_FAR = Detection(label="cup", confidence=0.8, bbox=(5.0, 5.0, 5.0, 5.0))
CHAIR_WEAK = Detection(label="chair", confidence=0.4, bbox=(0.0, 0.0, 300.0, 300.0))


class _Clock:
    def __init__(self, *values: float) -> None:
        self._values = list(values)

    def __call__(self) -> float:
        return self._values.pop(0)


class _GatedDetector:
    """Detector whose results are released one frame at a time by the test."""

    def __init__(self) -> None:
        self.is_ready = True
        self.pending: asyncio.Queue[asyncio.Future[list[Detection]]] = asyncio.Queue()
        self.calls = 0

    def load(self) -> None:
        self.is_ready = True

    async def detect(self, frame: Any) -> list[Detection]:
        self.calls += 1
        future: asyncio.Future[list[Detection]] = asyncio.get_running_loop().create_future()
        await self.pending.put(future)
        return await future


def _build_loop(clock=None, settings: LoopSettings | None = None, detector=None):
    speaker = FakeSpeaker()
    surface = LoggingOverlaySurface()
    board = OverlayBoard(surface)
    debouncer = AlertDebouncer()
    loop = DetectionLoop(
        detector or FakeDetector(),
        ProximityPolicy(),
        debouncer,
        board,
        speaker,
        settings=settings or LoopSettings(),
        clock=clock or _Clock(0.0),
    )
    return loop, speaker, surface, board, debouncer


def _build_manager(detector, settings: LoopSettings | None = None):
    loop, speaker, surface, board, debouncer = _build_loop(
        clock=lambda: 0.0, settings=settings, detector=detector
    )
    capture = FakeCaptureBackend()
    manager = CameraSessionManager(capture, detector, speaker, surface, board, debouncer, loop)
    return manager, loop, speaker, surface, board


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def test_same_warning_within_interval_spoken_once() -> None:
    loop, speaker, _, _, _ = _build_loop(clock=_Clock(0.0, 3000.0))

    first = loop.process_frame([PERSON_NEAR])
    second = loop.process_frame([PERSON_NEAR])

    assert first.spoken is True
    assert second.spoken is False
    assert second.candidate == "Warning: person is near"
    assert speaker.spoken == ["Warning: person is near"]


def test_warning_repeats_after_interval() -> None:
    loop, speaker, _, _, _ = _build_loop(clock=_Clock(0.0, 7001.0))

    loop.process_frame([PERSON_NEAR])
    loop.process_frame([PERSON_NEAR])

    assert speaker.spoken == ["Warning: person is near", "Warning: person is near"]


def test_overlay_replaced_each_frame() -> None:
    loop, _, surface, board, _ = _build_loop(clock=_Clock(0.0, 10.0, 20.0))

    loop.process_frame([PERSON_NEAR, CUP_FAR, CHAIR_WEAK])
    first_ids = set(surface.visible)
    assert len(first_ids) == 2

    loop.process_frame([CUP_FAR])
    assert len(surface.visible) == 1
    assert first_ids.isdisjoint(surface.visible)
    assert [element.text for element in board.elements] == [
        "cup (80.00% confidence), Distance: 400.00 units"
    ]

    loop.process_frame([])
    assert surface.visible == {}


def test_low_confidence_detections_are_not_drawn_or_spoken() -> None:
    loop, speaker, surface, _, _ = _build_loop()

    outcome = loop.process_frame([CHAIR_WEAK])

    assert outcome.event.detections == []
    assert surface.visible == {}
    assert speaker.spoken == []


def test_frame_ids_increase() -> None:
    loop, _, _, _, _ = _build_loop(clock=_Clock(5.0, 6.0))

    loop.process_frame([])
    loop.process_frame([CUP_FAR])

    assert loop.latest_event is not None
    assert loop.latest_event.frame_id == 2
    assert loop.latest_event.timestamp_ms == 6


def test_loop_runs_until_session_stops() -> None:
    async def scenario() -> None:
        detector = FakeDetector(script=[[PERSON_NEAR]])
        manager, loop, speaker, _, _ = _build_manager(detector)

        assert await manager.enable() is True
        await _wait_for(lambda: detector.calls >= 3)
        assert loop.is_running()

        await manager.stop()
        await loop.wait_stopped(timeout=2.0)

        assert not loop.is_running()
        calls_after_stop = detector.calls
        await asyncio.sleep(0.05)
        assert detector.calls == calls_after_stop
        assert speaker.spoken[0] == "Warning: person is near"

    asyncio.run(scenario())


def test_result_arriving_after_stop_is_discarded() -> None:
    async def scenario() -> None:
        detector = _GatedDetector()
        manager, loop, speaker, surface, _ = _build_manager(detector)

        await manager.enable()
        in_flight = await asyncio.wait_for(detector.pending.get(), 2.0)
        await manager.stop()

        in_flight.set_result([PERSON_NEAR])
        assert await loop.wait_stopped(timeout=2.0)

        assert detector.calls == 1
        assert surface.visible == {}
        assert "Warning: person is near" not in speaker.spoken
        assert loop.latest_event is None

    asyncio.run(scenario())


def test_one_inference_in_flight_at_a_time() -> None:
    async def scenario() -> None:
        detector = _GatedDetector()
        manager, loop, _, _, _ = _build_manager(detector)

        await manager.enable()
        first = await asyncio.wait_for(detector.pending.get(), 2.0)
        await asyncio.sleep(0.05)
        assert detector.calls == 1

        first.set_result([CUP_FAR])
        second = await asyncio.wait_for(detector.pending.get(), 2.0)
        assert detector.calls == 2
        assert loop.latest_event is not None and loop.latest_event.frame_id == 1

        await manager.stop()
        second.set_result([])
        await loop.wait_stopped(timeout=2.0)

    asyncio.run(scenario())


def test_repeated_inference_failures_stop_the_session() -> None:
    class _BrokenDetector(FakeDetector):
        async def detect(self, frame: Any) -> list[Detection]:
            self.calls += 1
            raise RuntimeError("model crashed")

    async def scenario() -> None:
        detector = _BrokenDetector()
        manager, loop, speaker, _, _ = _build_manager(
            detector, settings=LoopSettings(max_consecutive_failures=3)
        )

        await manager.enable()
        await loop.wait_stopped(timeout=2.0)

        assert detector.calls == 3
        assert manager.status is SessionStatus.STOPPED
        assert speaker.spoken[-1] == manager.settings.messages["detection_failed"]

    asyncio.run(scenario())


def test_single_failure_skips_frame_and_continues() -> None:
    class _FlakyDetector(FakeDetector):
        async def detect(self, frame: Any) -> list[Detection]:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("transient")
            return [CUP_FAR]

    async def scenario() -> None:
        detector = _FlakyDetector()
        manager, loop, _, _, _ = _build_manager(detector)

        await manager.enable()
        await _wait_for(lambda: loop.latest_event is not None)
        assert manager.status is SessionStatus.ACTIVE

        await manager.stop()
        await loop.wait_stopped(timeout=2.0)

    asyncio.run(scenario())


def test_inference_timeout_counts_as_failure() -> None:
    class _HangingDetector(FakeDetector):
        async def detect(self, frame: Any) -> list[Detection]:
            self.calls += 1
            await asyncio.sleep(10)
            return []

    async def scenario() -> None:
        detector = _HangingDetector()
        manager, loop, _, _, _ = _build_manager(
            detector,
            settings=LoopSettings(inference_timeout_s=0.01, max_consecutive_failures=2),
        )

        await manager.enable()
        assert await loop.wait_stopped(timeout=2.0)
        assert manager.status is SessionStatus.STOPPED

    asyncio.run(scenario())
