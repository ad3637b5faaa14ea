"""Tests for command-line handling."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.controller import ConfigController, normalize_config
from main import apply_overrides, main, parse_args


def test_overrides_apply_to_copies() -> None:
    config = normalize_config({})
    args = parse_args(["--camera-backend", "picamera2", "--no-voice", "--no-console"])

    updated = apply_overrides(config, args)

    assert updated["camera"]["backend"] == "picamera2"
    assert updated["voice"]["enabled"] is False
    assert updated["console"]["enabled"] is False
    assert config["camera"]["backend"] == "opencv"
    assert config["voice"]["enabled"] is True


def test_no_flags_leave_config_alone() -> None:
    config = normalize_config({})

    assert apply_overrides(config, parse_args([])) == config


def test_invalid_config_exits_with_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(ConfigController, "_instance", None)
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text("alerts:\n  selection: loudest\n", encoding="utf-8")

    assert main([]) == 1
