"""Diagnostics routines for the core subsystem."""

from __future__ import annotations

import logging

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe() -> DiagnosticResult:
    """Check that the runtime logger has a console handler and a sane level."""

    name = "core"
    from core import logging as core_logging

    logger = core_logging.logger
    if logger is None or not logger.handlers:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Core logger failed to initialize",
        )

    handler = "rich" if core_logging.RichHandler is not None else "plain stream (rich missing)"
    level = logging.getLevelName(logger.getEffectiveLevel())
    details = f"logger '{logger.name}' at {level} via {handler} handler"
    if core_logging._queue_listener is not None:
        details += f"; file logging to {core_logging._file_log_path}"
    status = DiagnosticStatus.PASS if core_logging.RichHandler is not None else DiagnosticStatus.WARN
    return DiagnosticResult(name=name, status=status, details=details)
