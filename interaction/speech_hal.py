"""Thin speech HAL: synthesis/recognition contracts and offline fakes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol


TranscriptHandler = Callable[[str], None]


class RecognitionError(RuntimeError):
    """Speech recognition failure with a machine-readable reason code."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason


ErrorHandler = Callable[[RecognitionError], None]


class SpeechSynthesizer(Protocol):
    """Fire-and-forget text-to-speech."""

    def speak(self, text: str) -> None:
        """Queue text for playback."""

    def cancel_all(self) -> None:
        """Drop queued and in-progress speech."""


class TranscriptSource(Protocol):
    """Continuous speech recognizer delivering final transcripts."""

    def start(self, on_transcript: TranscriptHandler, on_error: ErrorHandler) -> None:
        """Begin listening; callbacks may fire on a background thread."""

    def stop(self) -> None:
        """Stop listening."""


@dataclass
class FakeSpeaker:
    """Records spoken text instead of playing it."""

    spoken: list[str] = field(default_factory=list)
    cancel_count: int = 0

    def speak(self, text: str) -> None:
        self.spoken.append(text)

    def cancel_all(self) -> None:
        self.cancel_count += 1


@dataclass
class FakeTranscriptSource:
    """Recognizer driven by test code through ``emit`` and ``fail``."""

    running: bool = False
    _on_transcript: TranscriptHandler | None = None
    _on_error: ErrorHandler | None = None

    def start(self, on_transcript: TranscriptHandler, on_error: ErrorHandler) -> None:
        self._on_transcript = on_transcript
        self._on_error = on_error
        self.running = True

    def stop(self) -> None:
        self.running = False

    def emit(self, transcript: str) -> None:
        if self.running and self._on_transcript is not None:
            self._on_transcript(transcript)

    def fail(self, reason: str) -> None:
        if self.running and self._on_error is not None:
            self._on_error(RecognitionError(reason))
