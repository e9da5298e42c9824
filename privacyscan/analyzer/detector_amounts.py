"""Amount reuse and balance traceability.

Round and repeated amounts are common on Solana, so amount reuse only
becomes a strong signal combined with the same counterparty or signer.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from ..constants import SECONDS_PER_HOUR, FindingCategory, Severity, TargetType
from .context import ScanContext
from .models import Evidence, Finding
from .stats import ranked, truncate


@dataclass
class _AmountUse:
    amount: float
    token: str
    count: int = 0
    counterparties: set[str] = field(default_factory=set)
    signers: set[str] = field(default_factory=set)


def _amount_uses(context: ScanContext) -> list[_AmountUse]:
    uses: dict[str, _AmountUse] = {}
    for transfer in context.transfers:
        token = transfer.token or "SOL"
        key = f"{transfer.amount:.9f}-{token}"
        use = uses.setdefault(key, _AmountUse(amount=transfer.amount, token=token))
        use.count += 1
        other = transfer.to_address if transfer.from_address == context.target else transfer.from_address
        if other != context.target:
            use.counterparties.add(other)
        tx = context.find_transaction(transfer.signature)
        if tx is not None:
            use.signers.update(tx.signers)
    order = ranked(Counter({key: use.count for key, use in uses.items()}))
    return [uses[key] for key, _ in order]


def detect_amount_reuse(context: ScanContext) -> list[Finding]:
    """Detect round amounts and amounts repeated to one counterparty or signer set.

    Needs at least five transfers.
    """
    findings: list[Finding] = []

    if len(context.transfers) < 5:
        return findings

    round_amounts = [
        t.amount
        for t in sorted(context.transfers, key=lambda t: (t.amount, t.signature))
        if t.amount >= 1 and float(t.amount).is_integer()
    ]
    if len(round_amounts) >= 5:
        sample = ", ".join(f"{amount:g}" for amount in round_amounts[:5])
        findings.append(
            Finding(
                id="amount-round-numbers",
                name="Frequent Round Number Transfers",
                severity=Severity.LOW,
                confidence=0.5,
                category=FindingCategory.BEHAVIORAL,
                reason=f"{len(round_amounts)} round-number transfers detected (e.g., 1 SOL, 10 SOL).",
                impact=(
                    "Round numbers are common on Solana and fairly benign alone. Combined with "
                    "other patterns they contribute to fingerprinting."
                ),
                mitigation="Vary amounts slightly if possible, though this is low priority on Solana.",
                evidence=[
                    Evidence(
                        description=f"{len(round_amounts)} round-number transfers: {sample}",
                        severity=Severity.LOW,
                    )
                ],
            )
        )

    reused = [use for use in _amount_uses(context) if use.count >= 3]

    same_counterparty = [use for use in reused if len(use.counterparties) == 1]
    if same_counterparty:
        evidence = []
        for use in same_counterparty[:3]:
            (counterparty,) = use.counterparties
            evidence.append(
                Evidence(
                    description=(
                        f"{use.amount:.9f} {use.token} sent to {truncate(counterparty)} "
                        f"{use.count} times"
                    ),
                    severity=Severity.MEDIUM,
                )
            )
        findings.append(
            Finding(
                id="amount-reuse-counterparty",
                name="Same Amount to Same Counterparty",
                severity=Severity.MEDIUM,
                confidence=0.7,
                category=FindingCategory.BEHAVIORAL,
                reason=f"{len(same_counterparty)} amount(s) repeatedly sent to the same counterparty.",
                impact=(
                    "Sending the same amount to the same address multiple times creates a strong "
                    "pattern that is likely automated or habitual."
                ),
                mitigation="Vary amounts when sending to the same address.",
                evidence=evidence,
            )
        )
        return findings

    same_signers = [use for use in reused if len(use.signers) <= 2]
    if same_signers:
        findings.append(
            Finding(
                id="amount-reuse-pattern",
                name="Repeated Amount Pattern",
                severity=Severity.LOW,
                confidence=0.6,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"{len(same_signers)} amount(s) are reused multiple times with consistent signers."
                ),
                impact=(
                    "Amount reuse alone is weak on Solana, but combined with other signals it "
                    "contributes to behavioral fingerprinting."
                ),
                mitigation="Vary transaction amounts to reduce pattern visibility.",
                evidence=[
                    Evidence(
                        description=(
                            f"{use.amount:.9f} {use.token} used {use.count} times with "
                            f"{len(use.signers)} signer(s)"
                        ),
                        severity=Severity.LOW,
                    )
                    for use in same_signers[:3]
                ],
            )
        )
        return findings

    frequent = [use for use in reused if use.count >= 5]
    if frequent:
        max_count = frequent[0].count
        findings.append(
            Finding(
                id="amount-reuse-frequency",
                name="High-Frequency Amount Reuse",
                severity=Severity.MEDIUM if max_count > 10 else Severity.LOW,
                confidence=0.6,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"{len(frequent)} amount(s) are used very frequently ({max_count} times for "
                    "the top amount)."
                ),
                impact=(
                    "Very frequent reuse of specific amounts suggests automation and creates a "
                    "detectable pattern."
                ),
                mitigation="If running automated systems, add randomization to amounts.",
                evidence=[
                    Evidence(
                        description=(
                            f"{use.amount:.9f} {use.token} used {use.count} times across "
                            f"{len(use.counterparties)} counterparties"
                        ),
                        severity=Severity.MEDIUM if use.count > 10 else Severity.LOW,
                    )
                    for use in frequent[:3]
                ],
            )
        )

    return findings


def detect_balance_traceability(context: ScanContext) -> list[Finding]:
    """Detect matching amounts and quick similar-sized hops that make balances followable.

    Wallet targets with at least two transfers only.
    """
    if context.target_type != TargetType.WALLET or len(context.transfers) < 2:
        return []

    amounts = Counter(f"{t.amount:.6f}" for t in context.transfers)
    matching = [key for key, count in ranked(amounts) if count >= 2]

    patterns: list[str] = []
    if len(matching) >= 2:
        patterns.append("Multiple matching send/receive amounts detected")

    timed = sorted(
        (t for t in context.transfers if t.block_time is not None),
        key=lambda t: (t.block_time, t.signature),
    )
    for current, following in zip(timed, timed[1:]):
        close_in_time = following.block_time - current.block_time < SECONDS_PER_HOUR
        if close_in_time and abs(current.amount - following.amount) < current.amount * 0.1:
            patterns.append("Sequential transfers of similar amounts")
            break

    if not patterns and not matching:
        return []

    evidence = []
    if matching:
        evidence.append(
            Evidence(
                description=f"{len(matching)} matching send/receive amount pair(s)",
                severity=Severity.MEDIUM,
            )
        )
    evidence.extend(Evidence(description=pattern, severity=Severity.MEDIUM) for pattern in patterns)

    severity = Severity.HIGH if len(matching) >= 3 or len(patterns) >= 2 else Severity.MEDIUM
    return [
        Finding(
            id="balance-traceability",
            name="Balance Traceability",
            severity=severity,
            confidence=0.7,
            category=FindingCategory.TRACEABILITY,
            reason="Wallet shows patterns that enable balance tracking.",
            impact=(
                "Traceable balance movements let observers follow funds through the blockchain, "
                "linking your transactions and revealing your financial activity."
            ),
            mitigation=(
                "Split large transfers into several smaller ones and introduce timing delays "
                "between them."
            ),
            evidence=evidence,
        )
    ]
