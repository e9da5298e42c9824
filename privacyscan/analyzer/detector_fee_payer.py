"""Fee payer linkage detection.

On Solana the fee payer is recorded on every transaction. A wallet whose
fees are paid by someone else is publicly tied to that payer.
"""

from __future__ import annotations

from collections import Counter, defaultdict

from ..constants import FindingCategory, Severity, TargetType
from .context import ScanContext
from .models import Evidence, Finding
from .stats import ranked


def detect_fee_payer_reuse(context: ScanContext) -> list[Finding]:
    """Flag external fee payers, never-self-paying accounts and operator payers.

    Requires transaction records; single-transaction targets are skipped.
    """
    findings: list[Finding] = []

    if context.target_type == TargetType.TRANSACTION:
        return findings
    records = [tx for tx in context.transactions if tx.fee_payer]
    if not records:
        return findings

    target = context.target
    fee_payers = context.fee_payers
    target_pays = target in fee_payers

    if target_pays and len(fee_payers) == 1:
        return findings

    if target_pays:
        external_counts = Counter(tx.fee_payer for tx in records if tx.fee_payer != target)
        evidence = [
            Evidence(
                description=f"{payer} paid fees for {count} transaction(s)",
                severity=Severity.HIGH if count > 1 else Severity.MEDIUM,
            )
            for payer, count in ranked(external_counts)
        ]
        labelled = sorted(payer for payer in external_counts if payer in context.labels)
        known = context.labels[labelled[0]] if labelled else None
        suffix = f", including known entity: {known.name}" if known else ""
        findings.append(
            Finding(
                id="fee-payer-external",
                name="External Fee Payer Detected",
                severity=Severity.HIGH if known else Severity.MEDIUM,
                confidence=0.9,
                category=FindingCategory.LINKABILITY,
                reason=(
                    f"{len(external_counts)} external wallet(s) paid fees for transactions "
                    f"involving this address{suffix}."
                ),
                impact=(
                    "This address is linked to the fee payer(s). Anyone observing the blockchain "
                    "can see this relationship. If the fee payer is identified, this address is "
                    "also compromised."
                ),
                mitigation=(
                    "Always pay your own transaction fees. Never allow third parties to pay fees "
                    "for your transactions unless absolutely necessary. If using a relayer, "
                    "understand that this creates a permanent on-chain link."
                ),
                evidence=evidence,
            )
        )
    else:
        payer_counts = Counter(tx.fee_payer for tx in records)
        evidence = []
        for payer, count in ranked(payer_counts):
            label = context.labels.get(payer)
            name = f" ({label.name})" if label else ""
            evidence.append(
                Evidence(
                    description=f"{payer}{name} paid fees for {count} transaction(s)",
                    severity=Severity.HIGH,
                )
            )
        findings.append(
            Finding(
                id="fee-payer-never-self",
                name="Never Self-Pays Transaction Fees",
                severity=Severity.HIGH,
                confidence=0.95,
                category=FindingCategory.LINKABILITY,
                reason=(
                    f"This address has NEVER paid its own transaction fees. All "
                    f"{context.transaction_count} transaction(s) were paid by "
                    f"{len(payer_counts)} external wallet(s)."
                ),
                impact=(
                    "This address is trivially linked to all fee payer(s). The pattern suggests a "
                    "managed account, hot wallet, or program-controlled address, and the "
                    "controlling entity is fully exposed."
                ),
                mitigation=(
                    "Fund this address with SOL and pay your own fees, use a fresh address for "
                    "each operation, or accept that this address is permanently linked to its "
                    "fee payer(s)."
                ),
                evidence=evidence,
            )
        )

    if context.target_type == TargetType.PROGRAM:
        signers_by_payer: dict[str, set[str]] = defaultdict(set)
        tx_by_payer: Counter = Counter()
        for tx in records:
            signers_by_payer[tx.fee_payer].update(tx.signers)
            tx_by_payer[tx.fee_payer] += 1

        operators = sorted(
            (payer for payer, signers in signers_by_payer.items() if len(signers) > 1),
        )
        if operators:
            evidence = [
                Evidence(
                    description=(
                        f"{payer} paid fees for {tx_by_payer[payer]} transaction(s) involving "
                        f"{len(signers_by_payer[payer])} different signer(s)"
                    ),
                    severity=Severity.HIGH,
                )
                for payer in operators
            ]
            findings.append(
                Finding(
                    id="fee-payer-multi-signer",
                    name="Fee Payer Controls Multiple Signers",
                    severity=Severity.HIGH,
                    confidence=0.85,
                    category=FindingCategory.LINKABILITY,
                    reason=(
                        f"{len(operators)} fee payer(s) are paying fees for multiple different "
                        "signers, suggesting centralized control or bot operation."
                    ),
                    impact=(
                        "All addresses funded by the same fee payer are linkable. This pattern "
                        "exposes operational infrastructure."
                    ),
                    mitigation=(
                        "If running bots or managing multiple accounts, use a unique fee payer "
                        "for each to avoid linking them on-chain."
                    ),
                    evidence=evidence,
                )
            )

    return findings
