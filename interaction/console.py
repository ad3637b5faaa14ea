"""Keyboard controls mirroring the on-screen buttons of the camera view."""

from __future__ import annotations

import asyncio
import sys
import threading
from typing import Awaitable, Callable, TextIO

from core.logging import logger
from interaction.voice_commands import CommandAction


QUIT = "quit"

_KEYS = {
    "e": CommandAction.ENABLE,
    "enable": CommandAction.ENABLE,
    "s": CommandAction.STOP,
    "stop": CommandAction.STOP,
    "c": CommandAction.SWITCH,
    "switch": CommandAction.SWITCH,
    "q": QUIT,
    "quit": QUIT,
}

HELP_TEXT = "[e]nable camera, [s]top camera, switch [c]amera, [q]uit"


def parse_console_command(line: str) -> CommandAction | str | None:
    """Map one typed line to an action, ``"quit"``, or None."""

    return _KEYS.get(line.strip().lower())


class ConsoleControls:
    """Reads stdin on a daemon thread and hands actions to the event loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_action: Callable[[CommandAction], Awaitable[bool]],
        on_quit: Callable[[], None],
        stream: TextIO | None = None,
    ) -> None:
        self._loop = loop
        self._on_action = on_action
        self._on_quit = on_quit
        self._stream = stream or sys.stdin
        self._t: threading.Thread | None = None

    def start(self) -> None:
        if self._t is not None:
            return
        logger.info("[CONSOLE] Controls: %s", HELP_TEXT)
        self._t = threading.Thread(target=self._worker, name="console-controls", daemon=True)
        self._t.start()

    def _worker(self) -> None:
        for line in self._stream:
            command = parse_console_command(line)
            if command is None:
                if line.strip():
                    logger.info("[CONSOLE] Unknown command %r; %s", line.strip(), HELP_TEXT)
                continue
            if command == QUIT:
                self._loop.call_soon_threadsafe(self._on_quit)
                return
            future = asyncio.run_coroutine_threadsafe(self._on_action(command), self._loop)
            try:
                future.result()
            except Exception:
                logger.exception("[CONSOLE] %s failed", command.value)
