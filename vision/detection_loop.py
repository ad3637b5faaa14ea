"""Per-frame detection, overlay refresh and proximity alerting."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping

from core.alert_policy import AlertDebouncer
from core.logging import logger
from vision.detections import Detection, DetectionEvent
from vision.inference import InferenceBackend
from vision.overlay import OverlayBoard, build_overlay
from vision.proximity import ProximityPolicy

if TYPE_CHECKING:
    from hardware.camera_session import Session
    from interaction.speech_hal import SpeechSynthesizer

FailureHandler = Callable[[BaseException], Awaitable[None]]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class LoopSettings:
    """Scheduling and failure handling for the detection loop."""

    frame_interval_ms: int = 0
    inference_timeout_s: float | None = None
    max_consecutive_failures: int = 10

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "LoopSettings":
        detection_cfg = config.get("detection") or {}
        timeout = detection_cfg.get("inference_timeout_s")
        return cls(
            frame_interval_ms=int(detection_cfg.get("frame_interval_ms", 0)),
            inference_timeout_s=float(timeout) if timeout is not None else None,
            max_consecutive_failures=int(detection_cfg.get("max_consecutive_failures", 10)),
        )


@dataclass(frozen=True)
class FrameOutcome:
    """What one processed frame produced."""

    event: DetectionEvent
    candidate: str | None
    spoken: bool


class DetectionLoop:
    """Repeating task that runs while the bound session stays active.

    Exactly one inference is outstanding at a time: the next cycle is only
    scheduled once the previous frame has been fully handled. Results that
    come back after the session stopped (or was restarted) are dropped.
    """

    def __init__(
        self,
        detector: InferenceBackend,
        policy: ProximityPolicy,
        debouncer: AlertDebouncer,
        board: OverlayBoard,
        speaker: "SpeechSynthesizer",
        settings: LoopSettings | None = None,
        clock: Callable[[], float] = monotonic_ms,
    ) -> None:
        self.settings = settings or LoopSettings()
        self._detector = detector
        self._policy = policy
        self._debouncer = debouncer
        self._board = board
        self._speaker = speaker
        self._clock = clock
        self._session: "Session | None" = None
        self._on_failure: FailureHandler | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._frame_id = 0
        self.latest_event: DetectionEvent | None = None

    def bind(self, session: "Session", on_failure: FailureHandler | None = None) -> None:
        self._session = session
        self._on_failure = on_failure

    def start(self, token: int) -> asyncio.Task[None]:
        if self._session is None:
            raise RuntimeError("DetectionLoop.start called before bind()")
        task = asyncio.create_task(self._run(token), name=f"detection-loop-{token}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    async def wait_stopped(self, timeout: float | None = None) -> bool:
        """Wait for loop tasks to exit; False if some are still stuck in inference."""

        if not self._tasks:
            return True
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        if pending:
            logger.warning("[DETECT] %d loop task(s) still waiting on inference", len(pending))
        return not pending

    def _is_current(self, token: int) -> bool:
        return self._session is not None and self._session.is_current(token)

    async def _run(self, token: int) -> None:
        logger.info("[DETECT] Loop started (token=%s)", token)
        failures = 0
        while self._is_current(token):
            stream = self._session.stream
            try:
                frame = await asyncio.to_thread(stream.read_frame)
                detections = await self._infer(frame)
            except Exception as exc:
                if not self._is_current(token) or self._session.stream is not stream:
                    logger.debug("[DETECT] Dropping failure from a replaced stream: %s", exc)
                    continue
                failures += 1
                logger.warning(
                    "[DETECT] Frame skipped (%d consecutive failures): %s", failures, exc
                )
                limit = self.settings.max_consecutive_failures
                if limit > 0 and failures >= limit:
                    if self._on_failure is not None:
                        await self._on_failure(exc)
                    break
                await self._next_cycle()
                continue

            if not self._is_current(token):
                logger.debug("[DETECT] Discarding result that arrived after the session ended")
                break

            failures = 0
            self.process_frame(detections)
            await self._next_cycle()
        logger.info("[DETECT] Loop finished (token=%s)", token)

    async def _infer(self, frame: Any) -> list[Detection]:
        timeout = self.settings.inference_timeout_s
        if timeout is None:
            return await self._detector.detect(frame)
        return await asyncio.wait_for(self._detector.detect(frame), timeout)

    async def _next_cycle(self) -> None:
        await asyncio.sleep(max(self.settings.frame_interval_ms, 0) / 1000.0)

    def process_frame(self, detections: list[Detection]) -> FrameOutcome:
        """Refresh the overlay and decide on a warning for one frame of results."""

        now_ms = self._clock()
        self._frame_id += 1
        qualifying = [d for d in detections if self._policy.qualifies(d)]
        self._board.replace(build_overlay(detection) for detection in qualifying)

        event = DetectionEvent(
            timestamp_ms=int(now_ms),
            detections=qualifying,
            frame_id=self._frame_id,
        )
        self.latest_event = event

        candidate = self._policy.select(qualifying)
        spoken = False
        if self._debouncer.should_speak(candidate, now_ms):
            try:
                self._speaker.speak(candidate)
            except Exception:
                logger.exception("[ALERT] Speech synthesis failed for %r", candidate)
            else:
                spoken = True
                logger.info("[ALERT] %s", candidate)
            self._debouncer.record(candidate, now_ms)
        return FrameOutcome(event=event, candidate=candidate, spoken=spoken)
