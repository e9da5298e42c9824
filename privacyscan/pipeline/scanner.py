"""Scan pipeline: Evaluator -> Aggregator -> Report Builder."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Optional

from ..analyzer.aggregation import aggregate
from ..analyzer.context import ScanContext
from ..analyzer.detector_engine import PrivacyEvaluator
from ..analyzer.report import PrivacyReport, build_report
from ..labels.provider import StaticLabelProvider

logger = logging.getLogger(__name__)


def referenced_addresses(context: ScanContext) -> set[str]:
    """Every address the context mentions that a label could apply to."""
    addresses: set[str] = set(context.counterparties)
    for transfer in context.transfers:
        addresses.add(transfer.from_address)
        addresses.add(transfer.to_address)
    addresses.update(context.programs)
    for inst in context.instructions:
        addresses.update(inst.accounts or ())
    addresses.update(context.fee_payers)
    addresses.update(context.signers)
    addresses.discard("")
    return addresses


def attach_labels(context: ScanContext, provider: StaticLabelProvider) -> ScanContext:
    """Return a copy of ``context`` with provider labels merged in.

    Labels already on the context win over the provider's.
    """
    found = provider.lookup_many(sorted(referenced_addresses(context)))
    if not found:
        return context
    merged = dict(found)
    merged.update(context.labels)
    logger.debug("Attached %s labels to context for %s", len(found), context.target)
    return replace(context, labels=merged)


def scan(
    context: ScanContext,
    evaluator: Optional[PrivacyEvaluator] = None,
    timestamp: Optional[int] = None,
) -> PrivacyReport:
    """Run the full pipeline on one context.

    ``timestamp`` is milliseconds since the epoch; the wall clock is read here
    only when the caller does not supply one.
    """
    evaluator = evaluator or PrivacyEvaluator()
    evaluation = evaluator.evaluate(context)
    risk, mitigations = aggregate(evaluation.findings)
    if timestamp is None:
        timestamp = int(time.time() * 1000)

    report = build_report(context, evaluation.findings, risk, mitigations, timestamp)
    evaluator.metrics.record_risk(str(risk))
    logger.info(
        "Scanned %s %s: %s findings, overall risk %s",
        context.target_type.value,
        context.target,
        report.summary.total_findings,
        risk,
    )
    return report
