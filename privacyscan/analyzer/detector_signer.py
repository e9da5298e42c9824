"""Signer overlap detection."""

from __future__ import annotations

import math
from collections import Counter, defaultdict

from ..constants import FindingCategory, Severity, TargetType
from .context import ScanContext
from .models import Evidence, Finding
from .stats import ranked, tx_url


def detect_signer_overlap(context: ScanContext) -> list[Finding]:
    """Detect repeated signers, reused signer sets and authority hubs.

    Needs at least two transactions and some transaction records.
    """
    findings: list[Finding] = []

    total = context.transaction_count
    if total < 2 or not context.transactions:
        return findings

    frequency: Counter = Counter()
    for tx in context.transactions:
        frequency.update(tx.signers)

    threshold = min(3, math.ceil(total * 0.3))
    frequent = [
        (signer, count)
        for signer, count in ranked(frequency)
        if signer != context.target and count >= threshold
    ]
    if frequent:
        evidence = []
        for signer, count in frequent:
            label = context.labels.get(signer)
            name = f" ({label.name})" if label else ""
            evidence.append(
                Evidence(
                    description=f"{signer}{name} signed {count}/{total} transactions",
                    severity=Severity.HIGH if count > total * 0.7 else Severity.MEDIUM,
                )
            )
        top_count = frequent[0][1]
        findings.append(
            Finding(
                id="signer-repeated",
                name="Repeated Signer Across Transactions",
                severity=Severity.HIGH if top_count > total * 0.7 else Severity.MEDIUM,
                confidence=0.85,
                category=FindingCategory.LINKABILITY,
                reason=(
                    f"{len(frequent)} address(es) repeatedly sign transactions involving the "
                    f"target. The most frequent signer appears in {top_count}/{total} transactions."
                ),
                impact=(
                    "Repeated signers create hard links between transactions. All transactions "
                    "signed by the same address are trivially linkable."
                ),
                mitigation=(
                    "If you control multiple addresses that sign together, they are permanently "
                    "linked. Use separate signing keys for unrelated activities."
                ),
                evidence=evidence,
            )
        )

    # The sorted signer set is the comparison key.
    set_counts: Counter = Counter()
    set_examples: dict[tuple[str, ...], str] = {}
    for tx in context.transactions:
        key = tuple(sorted(tx.signers))
        if not key:
            continue
        set_counts[key] += 1
        example = set_examples.get(key)
        if example is None or tx.signature < example:
            set_examples[key] = tx.signature

    repeated_sets = [(key, count) for key, count in ranked(set_counts) if count > 1]
    if repeated_sets:
        evidence = [
            Evidence(
                description=(
                    f"{count} transactions with identical signer set: "
                    f"[{', '.join(s[:8] for s in key)}...]"
                ),
                severity=Severity.MEDIUM if count > 2 else Severity.LOW,
                reference=tx_url(set_examples[key]),
            )
            for key, count in repeated_sets
        ]
        findings.append(
            Finding(
                id="signer-set-reuse",
                name="Repeated Multi-Signature Pattern",
                severity=Severity.MEDIUM,
                confidence=0.8,
                category=FindingCategory.LINKABILITY,
                reason=(
                    f"{len(repeated_sets)} distinct signer set(s) are reused multiple times. "
                    "This creates a unique fingerprint."
                ),
                impact=(
                    "Reused multi-sig patterns are highly unique and easily linkable. Even if "
                    "addresses differ, the signer set pattern can identify related activity."
                ),
                mitigation=(
                    "If using multi-sig for multiple transactions, rotate signing keys or use "
                    "threshold signatures to vary the signer set."
                ),
                evidence=evidence,
            )
        )

    if context.target_type == TargetType.PROGRAM or total > 10:
        co_signers: dict[str, set[str]] = defaultdict(set)
        for tx in context.transactions:
            for signer in tx.signers:
                co_signers[signer].update(other for other in tx.signers if other != signer)

        hubs = sorted(
            ((signer, others) for signer, others in co_signers.items() if len(others) >= 3),
            key=lambda item: (-len(item[1]), item[0]),
        )
        if hubs:
            evidence = []
            for signer, others in hubs[:3]:
                label = context.labels.get(signer)
                name = f" ({label.name})" if label else ""
                evidence.append(
                    Evidence(
                        description=(
                            f"{signer}{name} co-signed with {len(others)} different addresses "
                            f"across {frequency[signer]} transactions"
                        ),
                        severity=Severity.HIGH,
                    )
                )
            findings.append(
                Finding(
                    id="signer-authority-hub",
                    name="Authority Signer Detected",
                    severity=Severity.HIGH,
                    confidence=0.8,
                    category=FindingCategory.LINKABILITY,
                    reason=(
                        f"{len(hubs)} address(es) act as an authority, co-signing with multiple "
                        "different wallets. This exposes a control hub."
                    ),
                    impact=(
                        "An authority signer links all accounts it co-signs with. This reveals "
                        "organizational structure or bot infrastructure."
                    ),
                    mitigation=(
                        "Use unique authority keys for each logical group of accounts. Avoid "
                        "having a single \"master\" signer."
                    ),
                    evidence=evidence,
                )
            )

    return findings
