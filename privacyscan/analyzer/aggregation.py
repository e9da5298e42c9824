"""Reduce a finding list to an overall risk and a remediation list."""

from __future__ import annotations

from typing import Iterable

from ..constants import Severity
from .models import Finding


def overall_risk(findings: Iterable[Finding]) -> Severity:
    """Highest severity present; LOW when there are no findings."""
    return max((f.severity for f in findings), default=Severity.LOW)


def collect_mitigations(findings: Iterable[Finding]) -> list[str]:
    """De-duplicate mitigation text, HIGH-sourced entries first.

    A mitigation shared by several findings ranks by its most severe source;
    within a severity level the first-seen order is kept.
    """
    best: dict[str, Severity] = {}
    first_seen: dict[str, int] = {}
    for index, finding in enumerate(findings):
        text = finding.mitigation
        if not text:
            continue
        if text not in first_seen:
            first_seen[text] = index
            best[text] = finding.severity
        elif finding.severity > best[text]:
            best[text] = finding.severity
    return sorted(first_seen, key=lambda text: (-best[text], first_seen[text]))


def aggregate(findings: Iterable[Finding]) -> tuple[Severity, list[str]]:
    findings = list(findings)
    return overall_risk(findings), collect_mitigations(findings)
