"""Text-to-speech playback on a background worker."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
import queue
import threading
from typing import Any, Mapping

from core.logging import log_spoken, logger


@dataclass(frozen=True)
class SpeechSettings:
    """Voice parameters for the TTS engine."""

    rate: int = 170
    volume: float = 1.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SpeechSettings":
        speech_cfg = config.get("speech") or {}
        return cls(
            rate=int(speech_cfg.get("rate", 170)),
            volume=float(speech_cfg.get("volume", 1.0)),
        )


class Pyttsx3Speaker:
    """Speech synthesizer backed by ``pyttsx3``.

    The engine is created and driven on one worker thread; ``speak`` only
    enqueues. ``cancel_all`` drops anything queued and interrupts the phrase
    currently playing.
    """

    def __init__(self, settings: SpeechSettings | None = None) -> None:
        if importlib.util.find_spec("pyttsx3") is None:
            raise RuntimeError("pyttsx3 is required for Pyttsx3Speaker")

        self._pyttsx3 = importlib.import_module("pyttsx3")
        self.settings = settings or SpeechSettings()
        self._q: queue.Queue[str | None] = queue.Queue()
        self._engine: Any = None

        self._t = threading.Thread(target=self._worker, name="tts-worker", daemon=True)
        self._t.start()

    def speak(self, text: str) -> None:
        if not text:
            return
        log_spoken(text)
        self._q.put(text)

    def cancel_all(self) -> None:
        drained = 0
        while True:
            try:
                item = self._q.get_nowait()
            except queue.Empty:
                break
            if item is None:
                self._q.put(None)
                break
            drained += 1
        if self._engine is not None:
            try:
                self._engine.stop()
            except Exception:
                logger.exception("[SPEECH] Failed to interrupt playback")
        logger.info("[SPEECH] Cancelled speech (%d queued phrases dropped)", drained)

    def close(self) -> None:
        self._q.put(None)
        self._t.join(timeout=2.0)
        if self._t.is_alive():
            logger.warning("[SPEECH] Worker did not stop within timeout")

    def _worker(self) -> None:
        try:
            engine = self._pyttsx3.init()
            engine.setProperty("rate", self.settings.rate)
            engine.setProperty("volume", self.settings.volume)
        except Exception:
            logger.exception("[SPEECH] Failed to initialise pyttsx3 engine")
            return
        self._engine = engine

        while True:
            text = self._q.get()
            if text is None:
                break
            try:
                engine.say(text)
                engine.runAndWait()
            except Exception:
                logger.exception("[SPEECH] Playback failed for %r", text)
