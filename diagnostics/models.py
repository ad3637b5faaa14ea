"""Result types shared by the diagnostics probes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class DiagnosticStatus(str, Enum):
    """Outcome of one probe."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class DiagnosticResult:
    """Result for a single subsystem check."""

    name: str
    status: DiagnosticStatus
    details: str

    @property
    def failed(self) -> bool:
        return self.status is DiagnosticStatus.FAIL


def exit_code(results: Iterable[DiagnosticResult]) -> int:
    """Process exit code for a diagnostics run: 1 if any probe failed."""

    return 1 if any(result.failed for result in results) else 0
