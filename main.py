"""Command-line entry point for the Sightline runtime."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
import sys

from config import ConfigController
from core.app import AssistantApp
from core.logging import enable_file_logging, logger, set_level
from hardware.capture_backends import CaptureSettings, create_capture_backend
from hardware.capture_hal import CaptureBackend
from interaction.recognition import RecognitionSettings, SpeechRecognitionListener
from interaction.speech import Pyttsx3Speaker, SpeechSettings
from interaction.speech_hal import TranscriptSource
from vision.inference import DetectorSettings, UltralyticsDetector


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Spoken proximity warnings from a live camera, controlled by voice."
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    parser.add_argument(
        "--camera-backend",
        choices=["opencv", "picamera2"],
        help="Override camera.backend from the config.",
    )
    parser.add_argument("--no-voice", action="store_true", help="Disable voice commands.")
    parser.add_argument("--no-console", action="store_true", help="Disable keyboard controls.")
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    config = dict(config)
    if args.camera_backend:
        config["camera"] = {**config.get("camera", {}), "backend": args.camera_backend}
    if args.no_voice:
        config["voice"] = {**config.get("voice", {}), "enabled": False}
    if args.no_console:
        config["console"] = {**config.get("console", {}), "enabled": False}
    return config


def build_capture(config: dict) -> CaptureBackend | None:
    try:
        return create_capture_backend(CaptureSettings.from_config(config))
    except (RuntimeError, ValueError) as exc:
        logger.warning("Camera capture unavailable: %s", exc)
        return None


def build_transcripts(config: dict) -> TranscriptSource | None:
    if not config["voice"]["enabled"]:
        return None
    try:
        return SpeechRecognitionListener(RecognitionSettings.from_config(config))
    except RuntimeError as exc:
        logger.warning("Voice commands unavailable: %s", exc)
        return None


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    try:
        config = apply_overrides(ConfigController.get_instance().get_config(), args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    set_level(config.get("logging_level", "INFO"))

    if args.diagnostics:
        from diagnostics.models import exit_code
        from diagnostics.run import live_probes
        from diagnostics.runner import format_results, run_diagnostics

        results = run_diagnostics(
            live_probes(
                None,
                config["camera"]["backend"],
                config["detection"]["model"],
                voice_required=config["voice"]["enabled"],
            )
        )
        print(format_results(results))
        return exit_code(results)

    if config.get("file_logging_enabled", False):
        log_file_path = Path(config["log_file"])
        enable_file_logging(log_file_path)
        logger.info("Writing logs to %s", log_file_path)

    try:
        speaker = Pyttsx3Speaker(SpeechSettings.from_config(config))
    except RuntimeError as exc:
        logger.error("Speech output is required: %s", exc)
        return 1

    try:
        app = AssistantApp(
            config,
            capture=build_capture(config),
            detector=UltralyticsDetector(DetectorSettings.from_config(config)),
            speaker=speaker,
            transcripts=build_transcripts(config),
        )
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        speaker.close()
        return 1

    logger.info("Starting Sightline...")
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Program terminated by user")
    except Exception as exc:
        logger.exception("An unexpected error occurred: %s", exc)
        return 1
    finally:
        speaker.close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
