"""Priority fee and compute budget fingerprinting.

Compute budget instructions expose the exact priority fee and compute unit
limit. Bots and habitual users tend to reuse the same values.
"""

from __future__ import annotations

from collections import Counter

from ..constants import FindingCategory, Severity
from .context import ScanContext
from .models import Evidence, Finding
from .stats import ranked, top_share

COMPUTE_BUCKET = 10_000


def detect_priority_fee_fingerprinting(context: ScanContext) -> list[Finding]:
    """Detect reused priority fees and a narrow compute-unit band. Needs five records."""
    findings: list[Finding] = []

    if len(context.transactions) < 5:
        return findings

    # A fee of 0 is a real value but carries no fingerprint; None is unknown.
    fee_bearing = [tx.priority_fee for tx in context.transactions if tx.priority_fee]
    if len(fee_bearing) >= 3:
        fee_counts = Counter(fee_bearing)
        fees = ranked(fee_counts)
        top_fee, top_count = fees[0]
        concentration = top_share(fee_counts, len(fee_bearing))
        if concentration >= 0.5 and top_count >= 3:
            item_severity = Severity.MEDIUM if concentration > 0.7 else Severity.LOW
            findings.append(
                Finding(
                    id="priority-fee-consistent",
                    name="Consistent Priority Fee Usage",
                    severity=Severity.MEDIUM,
                    confidence=0.7,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"This wallet uses the same priority fee ({top_fee} lamports) in "
                        f"{round(concentration * 100)}% of fee-bearing transactions. That makes "
                        "it easy to group these transactions as coming from one person or bot."
                    ),
                    impact=(
                        "Using the same priority fee repeatedly acts like a signature that links "
                        "your transactions together, even across different counterparties."
                    ),
                    mitigation=(
                        "Vary your priority fee amounts between transactions. If using a bot or "
                        "script, add randomness to the fee calculation."
                    ),
                    evidence=[
                        Evidence(
                            description=f"Priority fee of {fee} lamports used in {count} transaction(s)",
                            severity=item_severity,
                        )
                        for fee, count in fees[:3]
                    ],
                )
            )

    metered = [tx.compute_units_used for tx in context.transactions if tx.compute_units_used is not None]
    if len(metered) >= 5:
        bucket_counts = Counter((units // COMPUTE_BUCKET) * COMPUTE_BUCKET for units in metered)
        top_bucket, top_count = ranked(bucket_counts)[0]
        concentration = top_share(bucket_counts, len(metered))
        if concentration >= 0.6 and top_count >= 4:
            upper = top_bucket + COMPUTE_BUCKET
            findings.append(
                Finding(
                    id="compute-budget-fingerprint",
                    name="Distinctive Compute Unit Pattern",
                    severity=Severity.LOW,
                    confidence=0.6,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"{round(concentration * 100)}% of transactions use between {top_bucket} and "
                        f"{upper} compute units. This consistent pattern could help identify your "
                        "transactions among others on the network."
                    ),
                    impact=(
                        "Consistent compute unit usage creates a pattern that can be used to link "
                        "your transactions together."
                    ),
                    mitigation=(
                        "This is often unavoidable when repeating the same operations. If privacy "
                        "matters, vary the operations bundled into each transaction."
                    ),
                    evidence=[
                        Evidence(
                            description=(
                                f"{top_count}/{len(metered)} transactions use "
                                f"{top_bucket}-{upper} compute units"
                            ),
                            severity=Severity.LOW,
                        )
                    ],
                )
            )

    return findings
