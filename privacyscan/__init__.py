"""privacyscan: deterministic privacy risk analysis for Solana activity."""

from .analyzer.context import ScanContext
from .analyzer.detector_engine import PrivacyEvaluator
from .analyzer.report import PrivacyReport
from .pipeline.scanner import scan

__version__ = "0.1.0"

__all__ = ["ScanContext", "PrivacyEvaluator", "PrivacyReport", "scan"]
