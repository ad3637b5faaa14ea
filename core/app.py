"""Application coordinator owning the shared session and alert state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Mapping

from config.controller import DEFAULT_MESSAGES
from core.alert_policy import AlertDebouncer
from core.logging import log_warning, logger
from hardware.camera_session import CameraSessionManager, SessionSettings
from hardware.capture_hal import CaptureBackend
from interaction.console import ConsoleControls
from interaction.speech_hal import RecognitionError, SpeechSynthesizer, TranscriptSource
from interaction.voice_commands import CommandAction, CommandSettings, VoiceCommandRouter
from vision.detection_loop import DetectionLoop, LoopSettings
from vision.inference import InferenceBackend
from vision.overlay import LoggingOverlaySurface, OverlayBoard, OverlaySurface
from vision.proximity import ProximityPolicy, ProximitySettings


@dataclass(frozen=True)
class AppConfig:
    """Top-level switches for the runtime.

    Attributes:
        voice_enabled: Start the speech recognizer after the model loads.
        console_enabled: Accept keyboard controls on stdin.
        messages: User-facing spoken phrases.
    """

    voice_enabled: bool = True
    console_enabled: bool = True
    messages: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MESSAGES))

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AppConfig":
        messages = dict(DEFAULT_MESSAGES)
        messages.update(config.get("messages") or {})
        return cls(
            voice_enabled=bool((config.get("voice") or {}).get("enabled", True)),
            console_enabled=bool((config.get("console") or {}).get("enabled", True)),
            messages=messages,
        )


class AssistantApp:
    """Wires the components together and serialises user commands.

    Voice and console commands run one at a time under a single lock so no
    two handlers interleave their session mutations.
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        *,
        capture: CaptureBackend | None,
        detector: InferenceBackend,
        speaker: SpeechSynthesizer,
        transcripts: TranscriptSource | None = None,
        surface: OverlaySurface | None = None,
    ) -> None:
        self.app_config = AppConfig.from_config(config)
        self.capture = capture
        self.detector = detector
        self.speaker = speaker
        self.transcripts = transcripts
        self.surface = surface or LoggingOverlaySurface()

        self.board = OverlayBoard(self.surface)
        self.debouncer = AlertDebouncer.from_config(config)
        self.policy = ProximityPolicy(ProximitySettings.from_config(config))
        self.detection_loop = DetectionLoop(
            detector,
            self.policy,
            self.debouncer,
            self.board,
            speaker,
            settings=LoopSettings.from_config(config),
        )
        self.sessions: CameraSessionManager | None = None
        self.router: VoiceCommandRouter | None = None
        if capture is not None:
            self.sessions = CameraSessionManager(
                capture,
                detector,
                speaker,
                self.surface,
                self.board,
                self.debouncer,
                self.detection_loop,
                settings=SessionSettings.from_config(config),
            )
            self.router = VoiceCommandRouter(
                self.sessions, speaker, CommandSettings.from_config(config)
            )

        self._command_lock = asyncio.Lock()
        self._shutdown = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Task[Any]] = set()
        self._console: ConsoleControls | None = None

    async def load_model(self) -> bool:
        try:
            await asyncio.to_thread(self.detector.load)
        except Exception:
            logger.exception("[DETECT] Model failed to load")
            return False
        self.speaker.speak(self.app_config.messages["model_loaded"])
        return True

    async def perform(self, action: CommandAction) -> bool:
        """Run a camera action the way the on-screen buttons do."""

        if self.router is None:
            logger.warning("[CAMERA] Camera capture is not supported; ignoring %s", action.value)
            return False
        async with self._command_lock:
            return await self.router.dispatch(action)

    async def handle_transcript(self, transcript: str) -> CommandAction | None:
        if self.router is None:
            return None
        async with self._command_lock:
            return await self.router.route(transcript)

    def handle_recognition_error(self, error: RecognitionError) -> None:
        logger.error("[VOICE] Recognition error (%s); still listening", error.reason)
        self.speaker.speak(self.app_config.messages["recognition_error"])

    def submit_transcript(self, transcript: str) -> None:
        """Thread-safe entry point for recognizer callbacks."""

        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._spawn, self.handle_transcript(transcript))

    def submit_recognition_error(self, error: RecognitionError) -> None:
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self.handle_recognition_error, error)

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("[APP] Command handler failed", exc_info=task.exception())

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        if not await self.load_model():
            return

        if self.capture is None:
            log_warning("[CAMERA] Camera capture is not supported on this system")
            return

        if self.app_config.voice_enabled and self.transcripts is not None:
            try:
                self.transcripts.start(self.submit_transcript, self.submit_recognition_error)
            except RecognitionError as exc:
                self.handle_recognition_error(exc)

        if self.app_config.console_enabled:
            self._console = ConsoleControls(self._loop, self.perform, self.request_shutdown)
            self._console.start()

    async def run(self) -> None:
        await self.start()
        try:
            await self._shutdown.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        if self.transcripts is not None:
            try:
                self.transcripts.stop()
            except Exception:
                logger.exception("[VOICE] Failed to stop recognizer")
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self.sessions is not None:
            async with self._command_lock:
                await self.sessions.stop()
        await self.detection_loop.wait_stopped(timeout=2.0)
        logger.info("[APP] Shutdown complete")
