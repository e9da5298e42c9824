"""Counterparty, program and PDA reuse detection.

Most Solana activity goes through programs, so the "real" counterparty is
often a program or a program-derived account rather than a wallet.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict

from ..constants import SYSTEM_PROGRAMS, FindingCategory, Severity, TargetType
from .context import ScanContext, Transfer
from .models import Evidence, Finding
from .stats import account_url, ranked, truncate


def counterparty_of(transfer: Transfer, target: str) -> str | None:
    """The other side of a transfer, or None for self-transfers."""
    other = transfer.to_address if transfer.from_address == target else transfer.from_address
    if not other or other == target:
        return None
    return other


def classify_concentration(concentration: float, groups: int) -> Severity:
    """Cut points shared by the reuse detectors."""
    if concentration > 0.5 or groups >= 5:
        return Severity.HIGH
    if concentration > 0.3 or groups >= 3:
        return Severity.MEDIUM
    return Severity.LOW


def detect_counterparty_reuse(context: ScanContext) -> list[Finding]:
    """Detect repeated transfer counterparties and program pairings.

    Wallet targets with at least two transactions only.
    """
    findings: list[Finding] = []

    if context.target_type != TargetType.WALLET or context.transaction_count < 2:
        return findings

    target = context.target

    if context.transfers:
        counts: Counter = Counter()
        for transfer in context.transfers:
            other = counterparty_of(transfer, target)
            if other is not None:
                counts[other] += 1

        reused = [(addr, count) for addr, count in ranked(counts) if count >= 3]
        if reused:
            total = len(context.transfers)
            top_count = reused[0][1]
            concentration = top_count / total
            severity = classify_concentration(concentration, len(reused))

            evidence = []
            for addr, count in reused[:5]:
                label = context.labels.get(addr)
                name = f" ({label.name})" if label else ""
                if count > total * 0.3:
                    item_severity = Severity.HIGH
                elif count > total * 0.15:
                    item_severity = Severity.MEDIUM
                else:
                    item_severity = Severity.LOW
                evidence.append(
                    Evidence(
                        description=f"{count} transfers with {truncate(addr, 8, 8)}{name}",
                        severity=item_severity,
                        reference=addr,
                    )
                )

            findings.append(
                Finding(
                    id="counterparty-reuse",
                    name="Repeated Transfer Counterparties",
                    severity=severity,
                    confidence=0.8,
                    category=FindingCategory.LINKABILITY,
                    reason=(
                        f"This wallet keeps sending to or receiving from the same {len(reused)} "
                        f"address(es). The most frequent one appears in {top_count} out of "
                        f"{total} transfers (concentration {concentration:.2f})."
                    ),
                    impact=(
                        "Repeated transfers between the same wallets make it obvious they are "
                        "connected. Someone watching the blockchain can map out your regular contacts."
                    ),
                    mitigation=(
                        "Use a separate wallet for each person or service you interact with "
                        "regularly. This prevents anyone from seeing all your relationships in one place."
                    ),
                    evidence=evidence,
                )
            )

    if context.instructions:
        usage = Counter(inst.program_id for inst in context.instructions)
        threshold = min(3, math.ceil(len(context.instructions) * 0.1))
        significant = [
            (program, count)
            for program, count in ranked(usage)
            if program not in SYSTEM_PROGRAMS and count >= threshold
        ]
        if len(significant) >= 2:
            evidence = []
            for program, count in significant[:5]:
                label = context.labels.get(program)
                name = f" ({label.name})" if label else ""
                evidence.append(
                    Evidence(
                        description=f"{truncate(program)}{name} used in {count} instruction(s)",
                        severity=Severity.LOW,
                        reference=account_url(program),
                    )
                )
            findings.append(
                Finding(
                    id="program-reuse",
                    name="Repeated Program Interactions",
                    severity=Severity.LOW,
                    confidence=0.6,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"This wallet repeatedly uses the same {len(significant)} program(s). The "
                        "specific combination of programs you use acts like a signature that can "
                        "identify your wallet."
                    ),
                    impact=(
                        "If someone sees two wallets using the exact same set of programs in the "
                        "same way, they can guess the wallets belong to the same person."
                    ),
                    mitigation=(
                        "Using a wider variety of protocols can make your usage pattern less distinctive."
                    ),
                    evidence=evidence,
                )
            )

    if context.transfers and context.instructions:
        programs_by_signature: dict[str, list[str]] = defaultdict(list)
        for inst in context.instructions:
            programs_by_signature[inst.signature].append(inst.program_id)

        combos: Counter = Counter()
        for transfer in context.transfers:
            other = counterparty_of(transfer, target)
            if other is None:
                continue
            for program in programs_by_signature.get(transfer.signature, ()):
                combos[(other, program)] += 1

        repeated = [(combo, count) for combo, count in ranked(combos) if count >= 2]
        if repeated:
            evidence = []
            for (other, program), count in repeated[:3]:
                label = context.labels.get(other)
                name = f" ({label.name})" if label else ""
                evidence.append(
                    Evidence(
                        description=(
                            f"{truncate(other)}{name} + program {truncate(program)} used {count} times"
                        ),
                        severity=Severity.MEDIUM,
                    )
                )
            findings.append(
                Finding(
                    id="counterparty-program-combo",
                    name="Repeated Counterparty-Program Combination",
                    severity=Severity.MEDIUM,
                    confidence=0.75,
                    category=FindingCategory.LINKABILITY,
                    reason=(
                        f"This wallet reuses {len(repeated)} address-and-program combination(s). "
                        "The pairing of who you transact with and which program you use is a "
                        "strong identifying pattern."
                    ),
                    impact=(
                        "The combination of a specific counterparty and a specific program is "
                        "much easier to identify you from than either one alone."
                    ),
                    mitigation=(
                        "Vary both the addresses you interact with and the programs you use. If "
                        "you must reuse one, try not to reuse both at the same time."
                    ),
                    evidence=evidence,
                )
            )

    return findings


def detect_pda_reuse(context: ScanContext) -> list[Finding]:
    """Detect program-derived accounts touched more than once."""
    if not context.pda_interactions:
        return []

    counts: Counter = Counter()
    owners: dict[str, str] = {}
    for interaction in context.pda_interactions:
        counts[interaction.pda] += 1
        owners.setdefault(interaction.pda, interaction.program_id)

    repeated = [(pda, count) for pda, count in ranked(counts) if count >= 2]
    if not repeated:
        return []

    max_count = repeated[0][1]
    evidence = [
        Evidence(
            description=(
                f"PDA {truncate(pda)} (program: {truncate(owners[pda])}) used {count} times"
            ),
            severity=Severity.MEDIUM if count > 3 else Severity.LOW,
            reference=account_url(pda),
        )
        for pda, count in repeated[:5]
    ]
    return [
        Finding(
            id="pda-reuse",
            name="Repeated PDA Interactions",
            severity=Severity.MEDIUM if max_count > 5 else Severity.LOW,
            confidence=0.7,
            category=FindingCategory.LINKABILITY,
            reason=(
                f"This wallet interacts with the same {len(repeated)} program-derived account(s) "
                f"over and over. The most-used one appears {max_count} times."
            ),
            impact=(
                "A program-derived account tied to your wallet is like a permanent bookmark. "
                "Anyone can see all the times you interacted with it, linking your transactions."
            ),
            mitigation=(
                "Some PDA reuse is unavoidable on Solana. For sensitive activity, use a fresh "
                "wallet so those interactions are tied to a different PDA."
            ),
            evidence=evidence,
        )
    ]
