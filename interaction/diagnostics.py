"""Diagnostics routines for speech output and voice input."""

from __future__ import annotations

import importlib.util

from diagnostics.models import DiagnosticResult, DiagnosticStatus
from interaction.speech_hal import SpeechSynthesizer


def probe(
    speaker: SpeechSynthesizer | None = None,
    available_modules: set[str] | None = None,
    require_voice: bool = True,
) -> DiagnosticResult:
    """Run a speech probe.

    Args:
        speaker: Optional synthesizer to exercise instead of checking modules.
        available_modules: Optional override set for offline testing.
        require_voice: Whether missing recognition deps count as a failure.

    Returns:
        Diagnostic result indicating speech readiness.
    """

    name = "speech"

    if speaker is not None:
        try:
            speaker.speak("Speech check.")
            speaker.cancel_all()
        except Exception as exc:  # noqa: BLE001 - probe should not raise
            return DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Speech synthesizer failed: {exc}",
            )
        return DiagnosticResult(name=name, status=DiagnosticStatus.PASS, details="Speech synthesizer responded")

    def _has(module_name: str) -> bool:
        if available_modules is not None:
            return module_name in available_modules
        return importlib.util.find_spec(module_name) is not None

    if not _has("pyttsx3"):
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="pyttsx3 is not installed",
        )

    missing_voice = [module for module in ("speech_recognition", "pyaudio") if not _has(module)]
    if missing_voice:
        status = DiagnosticStatus.FAIL if require_voice else DiagnosticStatus.WARN
        return DiagnosticResult(
            name=name,
            status=status,
            details=f"Voice commands unavailable; missing: {', '.join(missing_voice)}",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Speech output and voice input dependencies available",
    )
