"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from pathlib import Path
import tempfile
from typing import Callable

from config.diagnostics import probe as config_probe
from core.diagnostics import probe as core_probe
from diagnostics.models import DiagnosticResult, exit_code
from diagnostics.runner import format_results, run_diagnostics
from hardware.capture_hal import FakeCaptureBackend
from hardware.diagnostics import CaptureProbeConfig, probe as camera_probe
from interaction.diagnostics import probe as speech_probe
from interaction.speech_hal import FakeSpeaker
from vision.diagnostics import probe as detection_probe
from vision.inference import FakeDetector


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Run diagnostics probes.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Run probes against fake backends and a temporary config directory.",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Optional base directory containing config/.",
    )
    parser.add_argument("--camera-backend", default="opencv", help="opencv or picamera2")
    parser.add_argument("--model", default="yolov8n.pt", help="Detection weights to check")
    return parser.parse_args(argv)


def live_probes(
    base_dir: Path | None,
    camera_backend: str,
    model: str,
    voice_required: bool = True,
) -> list[Callable[[], DiagnosticResult]]:
    """Probes that inspect the installed libraries on this machine."""

    def config_probe_with_base():
        return config_probe(base_dir=base_dir)

    def camera_probe_live():
        return camera_probe(config=CaptureProbeConfig(backend=camera_backend))

    def detection_probe_live():
        return detection_probe(model=model)

    def speech_probe_live():
        return speech_probe(require_voice=voice_required)

    return [config_probe_with_base, core_probe, camera_probe_live, detection_probe_live, speech_probe_live]


def offline_probes(base_dir: Path) -> list[Callable[[], DiagnosticResult]]:
    """Probes wired to fakes so the runner can be checked without hardware."""

    def config_probe_offline():
        return config_probe(base_dir=base_dir)

    def camera_probe_offline():
        return camera_probe(backend=FakeCaptureBackend(video_devices=2))

    def detection_probe_offline():
        return detection_probe(detector=FakeDetector(ready=False))

    def speech_probe_offline():
        return speech_probe(speaker=FakeSpeaker())

    return [config_probe_offline, core_probe, camera_probe_offline, detection_probe_offline, speech_probe_offline]


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    args = parse_args(argv)

    if args.offline and args.base_dir is None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_base = Path(tmp_dir)
            config_dir = tmp_base / "config"
            config_dir.mkdir(parents=True, exist_ok=True)
            (config_dir / "default.yaml").write_text("{}", encoding="utf-8")
            results = run_diagnostics(offline_probes(tmp_base))
    elif args.offline:
        results = run_diagnostics(offline_probes(args.base_dir))
    else:
        results = run_diagnostics(live_probes(args.base_dir, args.camera_backend, args.model))

    print(format_results(results))
    return exit_code(results)


if __name__ == "__main__":
    raise SystemExit(main())
