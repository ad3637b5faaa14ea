"""Interaction package utilities."""

from interaction.speech_hal import FakeSpeaker, RecognitionError
from interaction.voice_commands import CommandAction, VoiceCommandRouter

__all__ = ["CommandAction", "FakeSpeaker", "RecognitionError", "VoiceCommandRouter"]
