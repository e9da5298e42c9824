"""Detector interface."""

from __future__ import annotations

from typing import Protocol

from .context import ScanContext
from .models import Finding


class Detector(Protocol):
    """A pure function from a scan context to zero or more findings.

    An empty list means "no signal". Detectors must not mutate the context,
    read the clock, use randomness or call another detector.
    """

    __name__: str

    def __call__(self, context: ScanContext) -> list[Finding]:  # pragma: no cover - interface
        ...


def detector_name(detector) -> str:
    """Best-effort human name for logging a detector."""
    return getattr(detector, "__name__", None) or getattr(detector, "name", None) or type(detector).__name__
