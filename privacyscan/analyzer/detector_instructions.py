"""Instruction fingerprinting.

Programs have distinctive instruction layouts and deterministic PDA
derivations, so the structure of a wallet's transactions can identify it
even when the addresses involved change.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from typing import Mapping

from ..constants import COMMON_PROGRAMS, FindingCategory, Severity
from .context import ScanContext
from .models import Evidence, Finding
from .stats import account_url, ranked, truncate, tx_url


def detect_instruction_fingerprinting(context: ScanContext) -> list[Finding]:
    """Detect repeated instruction sequences, program profiles, PDA reuse and operation types.

    Needs at least three transactions and some transaction records.
    """
    findings: list[Finding] = []

    total = context.transaction_count
    if total < 3 or not context.transactions:
        return findings

    programs_by_signature: dict[str, list[str]] = defaultdict(list)
    for inst in context.instructions:
        programs_by_signature[inst.signature].append(inst.program_id)

    sequences: Counter = Counter()
    examples: dict[str, str] = {}
    for tx in context.transactions:
        programs = programs_by_signature.get(tx.signature)
        if not programs:
            continue
        sequence = "->".join(programs)
        sequences[sequence] += 1
        if sequence not in examples or tx.signature < examples[sequence]:
            examples[sequence] = tx.signature

    threshold = min(3, math.ceil(total * 0.2))
    repeated = [(seq, count) for seq, count in ranked(sequences) if count >= threshold]
    if repeated:
        top_count = repeated[0][1]
        severity = Severity.MEDIUM if top_count > total * 0.5 else Severity.LOW
        evidence = []
        for sequence, count in repeated[:5]:
            steps = " -> ".join(truncate(program) for program in sequence.split("->"))
            evidence.append(
                Evidence(
                    description=f"Instruction sequence repeated {count} times: {steps}",
                    severity=Severity.MEDIUM if count > total * 0.5 else Severity.LOW,
                    reference=tx_url(examples[sequence]),
                )
            )
        findings.append(
            Finding(
                id="instruction-sequence-pattern",
                name="Repeated Instruction Sequence Pattern",
                severity=severity,
                confidence=0.7,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"{len(repeated)} instruction sequence(s) show up over and over. The most "
                    f"common one appears in {top_count} out of {total} transactions."
                ),
                impact=(
                    "Even across different wallets, doing the same sequence of operations every "
                    "time makes it possible to link those wallets by their shared pattern."
                ),
                mitigation=(
                    "Change up the order of your operations when you can. Varying the structure "
                    "of your transactions makes them harder to match."
                ),
                evidence=evidence,
            )
        )

    usage = Counter(inst.program_id for inst in context.instructions)
    threshold = min(2, math.ceil(total * 0.15))
    uncommon = [
        (program, count)
        for program, count in ranked(usage)
        if program not in COMMON_PROGRAMS and count >= threshold
    ]
    if len(uncommon) >= 2:
        evidence = []
        for program, count in uncommon[:5]:
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
                id="program-usage-profile",
                name="Distinctive Program Usage Profile",
                severity=Severity.LOW,
                confidence=0.6,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"This wallet regularly uses {len(uncommon)} less-common programs. The set of "
                    "programs you use acts like a fingerprint."
                ),
                impact=(
                    "Two wallets using the same unusual combination of programs probably belong "
                    "to the same person. The rarer the programs, the stronger the link."
                ),
                mitigation=(
                    "Be aware that using niche protocols makes a wallet more identifiable."
                ),
                evidence=evidence,
            )
        )

    if context.pda_interactions:
        pda_counts: Counter = Counter()
        owners: dict[str, str] = {}
        for interaction in context.pda_interactions:
            pda_counts[interaction.pda] += 1
            owners.setdefault(interaction.pda, interaction.program_id)
        reused = [(pda, count) for pda, count in ranked(pda_counts) if count > 1]
        if reused:
            max_count = reused[0][1]
            findings.append(
                Finding(
                    id="instruction-pda-reuse",
                    name="Instruction-Level PDA Reuse",
                    severity=Severity.MEDIUM if max_count > 3 else Severity.LOW,
                    confidence=0.7,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"This wallet keeps interacting with the same {len(reused)} "
                        f"program-derived account(s). The most-used one shows up {max_count} times."
                    ),
                    impact=(
                        "A program-derived account linked to your wallet connects every "
                        "transaction that touches it."
                    ),
                    mitigation=(
                        "For sensitive operations, use a fresh wallet so interactions go through "
                        "a different account."
                    ),
                    evidence=[
                        Evidence(
                            description=(
                                f"PDA {truncate(pda)} used {count} times "
                                f"(program: {truncate(owners[pda])})"
                            ),
                            severity=Severity.MEDIUM if count > 3 else Severity.LOW,
                            reference=account_url(pda),
                        )
                        for pda, count in reused[:5]
                    ],
                )
            )

    types_by_program: dict[str, Counter] = defaultdict(Counter)
    for inst in context.instructions:
        if isinstance(inst.data, Mapping) and "type" in inst.data:
            types_by_program[inst.program_id][str(inst.data["type"])] += 1

    for program in sorted(types_by_program):
        instruction_type, count = ranked(types_by_program[program])[0]
        if count < 3:
            continue
        label = context.labels.get(program)
        name = f" ({label.name})" if label else ""
        findings.append(
            Finding(
                id=f"instruction-type-{program[:8]}",
                name="Repeated Instruction Type",
                severity=Severity.LOW,
                confidence=0.5,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f'The "{instruction_type}" operation on program {truncate(program)}{name} is '
                    f"used {count} times. Repeating the same operation suggests a bot or a "
                    "specific strategy."
                ),
                impact=(
                    "Doing the same thing over and over on one program makes this wallet stand "
                    "out from normal users."
                ),
                mitigation=(
                    "Low risk on its own, but combined with other patterns it helps identify "
                    "your wallet. Varying your operations reduces it."
                ),
                evidence=[
                    Evidence(
                        description=f'"{instruction_type}" instruction used {count} times',
                        severity=Severity.LOW,
                    )
                ],
            )
        )

    return findings
