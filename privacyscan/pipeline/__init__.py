"""Scan pipeline for privacyscan."""

from .scanner import attach_labels, scan

__all__ = ["attach_labels", "scan"]
