"""Alert debouncing for spoken proximity warnings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class AlertState:
    """What was last spoken and when (milliseconds)."""

    last_message: str = ""
    last_spoken_at: float = 0.0


class AlertDebouncer:
    """Gate that suppresses repeats of the same warning within a cooldown."""

    def __init__(self, *, repeat_interval_ms: float = 7000.0) -> None:
        self._repeat_interval_ms = float(repeat_interval_ms)
        self._state = AlertState()

    @classmethod
    def from_config(cls, config: Mapping[str, object]) -> "AlertDebouncer":
        alerts_cfg = config.get("alerts") if isinstance(config, Mapping) else None
        if not isinstance(alerts_cfg, Mapping):
            return cls()
        return cls(repeat_interval_ms=float(alerts_cfg.get("repeat_interval_ms", 7000.0)))

    @property
    def repeat_interval_ms(self) -> float:
        return self._repeat_interval_ms

    @property
    def state(self) -> AlertState:
        return self._state

    def should_speak(self, candidate: str | None, now_ms: float) -> bool:
        if not candidate:
            return False
        if candidate != self._state.last_message:
            return True
        return (now_ms - self._state.last_spoken_at) > self._repeat_interval_ms

    def record(self, message: str, now_ms: float) -> None:
        # Both fields change together.
        self._state = AlertState(last_message=message, last_spoken_at=float(now_ms))

    def reset(self) -> None:
        self._state = AlertState()
