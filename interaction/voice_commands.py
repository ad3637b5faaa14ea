"""Phrase-matching router from voice transcripts to camera actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol

from config.controller import (
    DEFAULT_ENABLE_PHRASES,
    DEFAULT_STOP_PHRASES,
    DEFAULT_SWITCH_PHRASES,
)
from core.logging import log_transcript, logger
from interaction.speech_hal import SpeechSynthesizer


class CommandAction(str, Enum):
    """Camera actions reachable by voice or console."""

    ENABLE = "enable"
    STOP = "stop"
    SWITCH = "switch"


class SessionActions(Protocol):
    """The session-manager surface the router drives."""

    async def enable(self) -> bool: ...

    async def stop(self) -> bool: ...

    async def switch_camera(self) -> bool: ...


def normalize_transcript(transcript: str) -> str:
    return transcript.strip().lower()


@dataclass(frozen=True)
class CommandSettings:
    """Phrase sets, their precedence, and the spoken acknowledgements."""

    phrases: dict[CommandAction, tuple[str, ...]] = field(
        default_factory=lambda: {
            CommandAction.ENABLE: tuple(DEFAULT_ENABLE_PHRASES),
            CommandAction.STOP: tuple(DEFAULT_STOP_PHRASES),
            CommandAction.SWITCH: tuple(DEFAULT_SWITCH_PHRASES),
        }
    )
    precedence: tuple[CommandAction, ...] = (
        CommandAction.ENABLE,
        CommandAction.STOP,
        CommandAction.SWITCH,
    )
    acknowledgements: dict[CommandAction, str] = field(
        default_factory=lambda: {
            CommandAction.ENABLE: "Webcam enabled.",
            CommandAction.STOP: "Webcam stopped.",
            CommandAction.SWITCH: "Switching camera.",
        }
    )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CommandSettings":
        voice_cfg = config.get("voice") or {}
        defaults = cls()
        phrases_cfg = voice_cfg.get("phrases") or {}
        acks_cfg = voice_cfg.get("acknowledgements") or {}

        phrases = {
            action: tuple(
                normalize_transcript(str(p)) for p in phrases_cfg.get(action.value, defaults.phrases[action])
            )
            for action in CommandAction
        }
        precedence = tuple(
            CommandAction(str(item).lower())
            for item in voice_cfg.get("precedence", [a.value for a in defaults.precedence])
        )
        missing = [action for action in CommandAction if action not in precedence]
        acknowledgements = {
            action: str(acks_cfg.get(action.value, defaults.acknowledgements[action]))
            for action in CommandAction
        }
        return cls(
            phrases=phrases,
            precedence=precedence + tuple(missing),
            acknowledgements=acknowledgements,
        )


class VoiceCommandRouter:
    """Match transcripts against phrase sets and drive the session manager.

    A transcript matches a set when it contains any of its phrases. Sets are
    checked in precedence order and the first hit wins, so with the default
    order "enable" beats "stop" beats "switch".
    """

    def __init__(
        self,
        actions: SessionActions,
        speaker: SpeechSynthesizer,
        settings: CommandSettings | None = None,
    ) -> None:
        self.settings = settings or CommandSettings()
        self._actions = actions
        self._speaker = speaker

    def match(self, transcript: str) -> CommandAction | None:
        command = normalize_transcript(transcript)
        if not command:
            return None
        for action in self.settings.precedence:
            if any(phrase and phrase in command for phrase in self.settings.phrases[action]):
                return action
        return None

    async def route(self, transcript: str) -> CommandAction | None:
        command = normalize_transcript(transcript)
        log_transcript(command)
        action = self.match(command)
        if action is None:
            logger.debug("[VOICE] No command matched %r", command)
            return None

        await self.dispatch(action)
        self._speaker.speak(self.settings.acknowledgements[action])
        return action

    async def dispatch(self, action: CommandAction) -> bool:
        if action is CommandAction.ENABLE:
            return await self._actions.enable()
        if action is CommandAction.STOP:
            return await self._actions.stop()
        return await self._actions.switch_camera()
