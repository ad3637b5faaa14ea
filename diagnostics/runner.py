"""Run probes and render their results."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable

from core.logging import logger as LOGGER
from diagnostics.models import DiagnosticResult, DiagnosticStatus


def format_results(results: Iterable[DiagnosticResult]) -> str:
    """Return the report printed by ``--diagnostics``."""

    results = list(results)
    counts = Counter(result.status for result in results)
    lines = ["Sightline diagnostics", "-" * 60]
    lines.extend(f"[{r.status.value}] {r.name}: {r.details}" for r in results)
    lines.append("-" * 60)
    lines.append(
        " ".join(f"{status.value}={counts.get(status, 0)}" for status in DiagnosticStatus)
    )
    return "\n".join(lines)


def run_diagnostics(probes: Iterable[Callable[[], DiagnosticResult]]) -> list[DiagnosticResult]:
    """Run every probe; a probe that raises is recorded as a failure."""

    results: list[DiagnosticResult] = []
    for probe in probes:
        try:
            result = probe()
        except Exception as exc:  # noqa: BLE001 - diagnostics must keep running
            LOGGER.exception("Probe failed: %s", probe)
            result = DiagnosticResult(
                name=getattr(probe, "__name__", "unknown_probe"),
                status=DiagnosticStatus.FAIL,
                details=f"Probe raised exception: {exc}",
            )
        LOGGER.debug("[DIAG] %s -> %s", result.name, result.status.value)
        results.append(result)
    return results
