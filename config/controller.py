"""Configuration controller for YAML-based settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


DEFAULT_ENABLE_PHRASES = [
    "enable webcam",
    "on camera",
    "on",
    "turn on camera",
    "enable camera",
    "enable",
    "start",
    "start camera",
]
DEFAULT_STOP_PHRASES = [
    "stop webcam",
    "off camera",
    "off",
    "turn off camera",
    "stop",
    "disable",
    "disable camera",
    "stop camera",
    "turn off",
]
DEFAULT_SWITCH_PHRASES = [
    "switch webcam",
    "switch camera",
    "switch",
    "change camera",
    "change",
]
ALERT_SELECTIONS = ("last", "closest")
COMMAND_NAMES = ("enable", "stop", "switch")
FACING_MODES = ("back", "front")

DEFAULT_MESSAGES = {
    "model_loaded": (
        "Model loaded successfully. You can now give voice commands like "
        '"enable webcam", "stop webcam", or "switch camera".'
    ),
    "no_additional_camera": "No additional camera available for switching.",
    "permission_denied": "Camera access was denied.",
    "device_unavailable": "No camera is available.",
    "recognition_error": "An error occurred during voice recognition. Please try again.",
    "detection_failed": "Object detection stopped working. Turning the camera off.",
}


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path


class ConfigController:
    """Singleton controller for loading and updating configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_file: str = "default.yaml") -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = Path("config")
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
        )
        self.config: dict[str, Any] = {}
        self.load_config()

    @classmethod
    def get_instance(cls) -> "ConfigController":
        """Return the singleton instance of the controller."""

        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def load_config(self) -> None:
        """Load configuration from default and override YAML files."""

        config: dict[str, Any] = {}
        if self.paths.config_file.exists():
            with self.paths.config_file.open("r", encoding="utf-8") as file:
                config = yaml.safe_load(file) or {}

        if self.paths.override_file.exists():
            with self.paths.override_file.open("r", encoding="utf-8") as file:
                override_config = yaml.safe_load(file) or {}
            if override_config:
                config = self._deep_merge(config, override_config)

        self.config = normalize_config(config)

    def save_config(self, config: dict[str, Any]) -> None:
        """Persist configuration to override.yaml, archiving previous overrides."""

        if self.paths.override_file.exists():
            archive_index = 1
            archive_file = self._archive_path(archive_index)
            while archive_file.exists():
                archive_index += 1
                archive_file = self._archive_path(archive_index)
            self.paths.override_file.rename(archive_file)

        self.paths.config_dir.mkdir(parents=True, exist_ok=True)
        with self.paths.override_file.open("w", encoding="utf-8") as file:
            yaml.safe_dump(config, file)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        return dict(self.config)

    def set_config(self, config: dict[str, Any]) -> None:
        """Set and persist configuration values."""

        self.config = normalize_config(dict(config))
        self.save_config(self.config)

    def _archive_path(self, index: int) -> Path:
        """Return the archive path for a given override index."""

        filename = f"override_{index:04d}.yaml"
        return self.paths.config_dir / filename

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged


def _choice(key: str, value: Any, allowed: tuple[str, ...]) -> str:
    choice = str(value).strip().lower()
    if choice not in allowed:
        raise ValueError(f"{key} must be one of {', '.join(allowed)}; got {value!r}")
    return choice


def _phrase_list(value: Any, fallback: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(fallback)
    phrases = [str(item).strip().lower() for item in value if str(item).strip()]
    return phrases or list(fallback)


def normalize_config(config: dict[str, Any]) -> dict[str, Any]:
    """Fill defaults for every section the runtime reads."""

    normalized = dict(config)
    normalized["logging_level"] = str(normalized.get("logging_level", "INFO"))
    normalized["file_logging_enabled"] = bool(normalized.get("file_logging_enabled", False))
    normalized["log_file"] = str(normalized.get("log_file", "logs/sightline.log"))

    camera_cfg = dict(normalized.get("camera") or {})
    camera_cfg["backend"] = str(camera_cfg.get("backend", "opencv")).lower()
    camera_cfg["facing_mode"] = _choice(
        "camera.facing_mode", camera_cfg.get("facing_mode", "back"), FACING_MODES
    )
    facing_indices = dict(camera_cfg.get("facing_indices") or {})
    camera_cfg["facing_indices"] = {
        "back": int(facing_indices.get("back", 0)),
        "front": int(facing_indices.get("front", 1)),
    }
    frame_size = camera_cfg.get("frame_size") or [640, 480]
    camera_cfg["frame_size"] = [int(frame_size[0]), int(frame_size[1])]
    camera_cfg["rotate_quarter_turns"] = int(camera_cfg.get("rotate_quarter_turns", 0))
    timeout = camera_cfg.get("request_timeout_s")
    camera_cfg["request_timeout_s"] = float(timeout) if timeout is not None else None
    camera_cfg["probe_max_devices"] = int(camera_cfg.get("probe_max_devices", 4))
    normalized["camera"] = camera_cfg

    detection_cfg = dict(normalized.get("detection") or {})
    detection_cfg["model"] = str(detection_cfg.get("model", "yolov8n.pt"))
    detection_cfg["device"] = detection_cfg.get("device")
    detection_cfg["min_confidence"] = float(detection_cfg.get("min_confidence", 0.66))
    detection_cfg["frame_interval_ms"] = int(detection_cfg.get("frame_interval_ms", 0))
    timeout = detection_cfg.get("inference_timeout_s")
    detection_cfg["inference_timeout_s"] = float(timeout) if timeout is not None else None
    detection_cfg["max_consecutive_failures"] = int(
        detection_cfg.get("max_consecutive_failures", 10)
    )
    normalized["detection"] = detection_cfg

    alerts_cfg = dict(normalized.get("alerts") or {})
    alerts_cfg["warning_threshold"] = float(alerts_cfg.get("warning_threshold", 150.0))
    alerts_cfg["repeat_interval_ms"] = float(alerts_cfg.get("repeat_interval_ms", 7000.0))
    alerts_cfg["selection"] = _choice(
        "alerts.selection", alerts_cfg.get("selection", "last"), ALERT_SELECTIONS
    )
    normalized["alerts"] = alerts_cfg

    voice_cfg = dict(normalized.get("voice") or {})
    phrases_cfg = dict(voice_cfg.get("phrases") or {})
    voice_cfg["enabled"] = bool(voice_cfg.get("enabled", True))
    voice_cfg["language"] = str(voice_cfg.get("language", "en-US"))
    voice_cfg["phrase_time_limit_s"] = float(voice_cfg.get("phrase_time_limit_s", 3.0))
    voice_cfg["ambient_calibration_s"] = float(voice_cfg.get("ambient_calibration_s", 0.8))
    voice_cfg["phrases"] = {
        "enable": _phrase_list(phrases_cfg.get("enable"), DEFAULT_ENABLE_PHRASES),
        "stop": _phrase_list(phrases_cfg.get("stop"), DEFAULT_STOP_PHRASES),
        "switch": _phrase_list(phrases_cfg.get("switch"), DEFAULT_SWITCH_PHRASES),
    }
    precedence = voice_cfg.get("precedence") or ["enable", "stop", "switch"]
    voice_cfg["precedence"] = [
        _choice("voice.precedence", item, COMMAND_NAMES) for item in precedence
    ]
    acks_cfg = dict(voice_cfg.get("acknowledgements") or {})
    voice_cfg["acknowledgements"] = {
        "enable": str(acks_cfg.get("enable", "Webcam enabled.")),
        "stop": str(acks_cfg.get("stop", "Webcam stopped.")),
        "switch": str(acks_cfg.get("switch", "Switching camera.")),
    }
    normalized["voice"] = voice_cfg

    speech_cfg = dict(normalized.get("speech") or {})
    speech_cfg["rate"] = int(speech_cfg.get("rate", 170))
    speech_cfg["volume"] = float(speech_cfg.get("volume", 1.0))
    normalized["speech"] = speech_cfg

    console_cfg = dict(normalized.get("console") or {})
    console_cfg["enabled"] = bool(console_cfg.get("enabled", True))
    normalized["console"] = console_cfg

    messages_cfg = dict(normalized.get("messages") or {})
    normalized["messages"] = {
        key: str(messages_cfg.get(key, default)) for key, default in DEFAULT_MESSAGES.items()
    }

    return normalized
