"""Overlay geometry and the bookkeeping that keeps the render surface in sync."""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
from typing import Any, Iterable, Protocol

from core.logging import logger
from vision.detections import Detection


LABEL_OFFSET_PX = 10

_element_ids = itertools.count(1)


@dataclass(frozen=True)
class OverlayElement:
    """Label plus highlight rectangle for one qualifying detection."""

    text: str
    box: tuple[float, float, float, float]
    label_origin: tuple[float, float]
    label_width: float
    element_id: int = field(default_factory=lambda: next(_element_ids))


def format_label(detection: Detection) -> str:
    confidence = float(detection.confidence) * 100.0
    return (
        f"{detection.label} ({confidence:.2f}% confidence), "
        f"Distance: {detection.estimated_distance:.2f} units"
    )


def build_overlay(detection: Detection) -> OverlayElement:
    x, y, width, height = (float(value) for value in detection.bbox)
    return OverlayElement(
        text=format_label(detection),
        box=(x, y, width, height),
        label_origin=(x, y - LABEL_OFFSET_PX),
        label_width=width - LABEL_OFFSET_PX,
    )


class OverlaySurface(Protocol):
    """Write-only render surface for overlay elements and the video sink."""

    def create(self, element: OverlayElement) -> None:
        """Draw a new overlay element."""

    def destroy(self, element: OverlayElement) -> None:
        """Remove a previously drawn overlay element."""

    def attach(self, stream: Any) -> None:
        """Show the given capture stream in the video sink."""

    def clear(self) -> None:
        """Detach the video sink."""


class LoggingOverlaySurface:
    """Surface for headless runs; tracks what would be on screen."""

    def __init__(self) -> None:
        self.visible: dict[int, OverlayElement] = {}
        self.stream: Any = None

    def create(self, element: OverlayElement) -> None:
        self.visible[element.element_id] = element
        logger.debug("[OVERLAY] + %s at %s", element.text, element.box)

    def destroy(self, element: OverlayElement) -> None:
        self.visible.pop(element.element_id, None)

    def attach(self, stream: Any) -> None:
        self.stream = stream

    def clear(self) -> None:
        self.stream = None


class OverlayBoard:
    """Owns the overlay elements of the most recent frame."""

    def __init__(self, surface: OverlaySurface) -> None:
        self._surface = surface
        self._elements: list[OverlayElement] = []

    @property
    def elements(self) -> list[OverlayElement]:
        return list(self._elements)

    def replace(self, elements: Iterable[OverlayElement]) -> None:
        """Destroy everything from the previous frame, then draw the new set."""

        self.clear()
        for element in elements:
            self._surface.create(element)
            self._elements.append(element)

    def clear(self) -> None:
        for element in self._elements:
            try:
                self._surface.destroy(element)
            except Exception:
                logger.exception("[OVERLAY] Failed to remove element %s", element.element_id)
        self._elements.clear()
