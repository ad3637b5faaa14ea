"""Continuous voice-command recognition using SpeechRecognition."""

from __future__ import annotations

from dataclasses import dataclass
import importlib
import importlib.util
from typing import Any, Callable, Mapping

from core.logging import logger
from interaction.speech_hal import ErrorHandler, RecognitionError, TranscriptHandler


@dataclass(frozen=True)
class RecognitionSettings:
    """Microphone and recognizer settings."""

    language: str = "en-US"
    phrase_time_limit_s: float = 3.0
    ambient_calibration_s: float = 0.8

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RecognitionSettings":
        voice_cfg = config.get("voice") or {}
        return cls(
            language=str(voice_cfg.get("language", "en-US")),
            phrase_time_limit_s=float(voice_cfg.get("phrase_time_limit_s", 3.0)),
            ambient_calibration_s=float(voice_cfg.get("ambient_calibration_s", 0.8)),
        )


class SpeechRecognitionListener:
    """Background listener that forwards final transcripts.

    Listening keeps running after recognition errors; each error is reported
    through ``on_error`` and the next phrase is processed normally.
    """

    def __init__(self, settings: RecognitionSettings | None = None) -> None:
        if importlib.util.find_spec("speech_recognition") is None:
            raise RuntimeError("SpeechRecognition is required for SpeechRecognitionListener")
        if importlib.util.find_spec("pyaudio") is None:
            raise RuntimeError("PyAudio is required for microphone input")

        self._sr = importlib.import_module("speech_recognition")
        self.settings = settings or RecognitionSettings()
        self._recognizer = self._sr.Recognizer()
        self._microphone: Any = None
        self._stopper: Callable[..., None] | None = None
        self._on_transcript: TranscriptHandler | None = None
        self._on_error: ErrorHandler | None = None

    def start(self, on_transcript: TranscriptHandler, on_error: ErrorHandler) -> None:
        if self._stopper is not None:
            return
        self._on_transcript = on_transcript
        self._on_error = on_error
        try:
            self._microphone = self._sr.Microphone()
            with self._microphone as source:
                self._recognizer.adjust_for_ambient_noise(
                    source, duration=self.settings.ambient_calibration_s
                )
        except (OSError, AttributeError) as exc:
            raise RecognitionError("audio-capture", f"Microphone unavailable: {exc}") from exc

        self._stopper = self._recognizer.listen_in_background(
            self._microphone,
            self._handle_audio,
            phrase_time_limit=self.settings.phrase_time_limit_s,
        )
        logger.info("[VOICE] Listening for commands (%s)", self.settings.language)

    def stop(self) -> None:
        if self._stopper is None:
            return
        self._stopper(wait_for_stop=False)
        self._stopper = None
        logger.info("[VOICE] Stopped listening")

    def _handle_audio(self, recognizer: Any, audio: Any) -> None:
        try:
            transcript = recognizer.recognize_google(audio, language=self.settings.language)
        except self._sr.UnknownValueError:
            logger.debug("[VOICE] Speech was unintelligible")
            return
        except self._sr.RequestError as exc:
            self._report(RecognitionError("network", str(exc)))
            return
        except Exception as exc:
            self._report(RecognitionError("unknown", str(exc)))
            return

        if isinstance(transcript, str) and transcript.strip() and self._on_transcript:
            self._on_transcript(transcript)

    def _report(self, error: RecognitionError) -> None:
        logger.error("[VOICE] Speech recognition error: %s (%s)", error.reason, error)
        if self._on_error is not None:
            self._on_error(error)
