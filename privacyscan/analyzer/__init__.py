"""Analyzer modules for privacyscan."""

from .aggregation import aggregate
from .context import ScanContext
from .detector_engine import DEFAULT_DETECTORS, DetectorFailure, Evaluation, PrivacyEvaluator
from .models import Evidence, Finding, Label
from .report import PrivacyReport, build_report

__all__ = [
    "aggregate",
    "build_report",
    "DEFAULT_DETECTORS",
    "DetectorFailure",
    "Evaluation",
    "Evidence",
    "Finding",
    "Label",
    "PrivacyEvaluator",
    "PrivacyReport",
    "ScanContext",
]
