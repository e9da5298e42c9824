"""Privacy report assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ..constants import REPORT_VERSION, Severity, TargetType
from .context import ScanContext
from .models import Finding, Label


@dataclass(frozen=True)
class ReportSummary:
    total_findings: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    transactions_analyzed: int = 0

    def to_dict(self) -> dict:
        return {
            "totalFindings": self.total_findings,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "transactionsAnalyzed": self.transactions_analyzed,
        }


@dataclass(frozen=True)
class PrivacyReport:
    """Versioned scan output; ``to_dict`` gives the serialized shape."""

    timestamp: int
    target_type: TargetType
    target: str
    overall_risk: Severity
    findings: tuple[Finding, ...] = ()
    summary: ReportSummary = field(default_factory=ReportSummary)
    mitigations: tuple[str, ...] = ()
    known_entities: tuple[Label, ...] = ()
    version: str = REPORT_VERSION

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "targetType": self.target_type.value,
            "target": self.target,
            "overallRisk": str(self.overall_risk),
            "findings": [finding.to_dict() for finding in self.findings],
            "summary": self.summary.to_dict(),
            "mitigations": list(self.mitigations),
            "knownEntities": [label.to_dict() for label in self.known_entities],
        }


def summarize(findings: Iterable[Finding], transactions_analyzed: int) -> ReportSummary:
    """Count findings by severity in a single pass."""
    counts = {Severity.HIGH: 0, Severity.MEDIUM: 0, Severity.LOW: 0}
    total = 0
    for finding in findings:
        counts[finding.severity] += 1
        total += 1
    return ReportSummary(
        total_findings=total,
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        transactions_analyzed=transactions_analyzed,
    )


def referenced_entities(context: ScanContext) -> tuple[Label, ...]:
    """Labels for addresses that at least one transfer or instruction touches.

    Labels present in the context but never referenced are left out.
    """
    if not context.labels:
        return ()
    referenced: set[str] = set()
    for transfer in context.transfers:
        referenced.add(transfer.from_address)
        referenced.add(transfer.to_address)
    for inst in context.instructions:
        referenced.add(inst.program_id)
        referenced.update(inst.accounts or ())
    return tuple(context.labels[address] for address in sorted(referenced.intersection(context.labels)))


def build_report(
    context: ScanContext,
    findings: Sequence[Finding],
    overall_risk: Severity,
    mitigations: Sequence[str],
    timestamp: int,
) -> PrivacyReport:
    """Assemble the report. Pure: the caller supplies the timestamp."""
    findings = tuple(findings)
    return PrivacyReport(
        timestamp=timestamp,
        target_type=context.target_type,
        target=context.target,
        overall_risk=overall_risk,
        findings=findings,
        summary=summarize(findings, context.transaction_count),
        mitigations=tuple(mitigations),
        known_entities=referenced_entities(context),
    )
