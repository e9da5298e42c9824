"""Staking delegation concentration and schedule detection."""

from __future__ import annotations

from collections import Counter
from typing import Mapping, Optional

from ..constants import SECONDS_PER_HOUR, FindingCategory, Severity
from .context import Instruction, ScanContext
from .models import Evidence, Finding
from .stats import account_url, gap_stats, ranked, truncate


def vote_account_of(inst: Instruction) -> Optional[str]:
    """The validator vote account a stake instruction delegates to, if known."""
    if not inst.accounts:
        return None
    if isinstance(inst.data, Mapping) and inst.data.get("voteAccount"):
        return str(inst.data["voteAccount"])
    if len(inst.accounts) >= 2:
        return inst.accounts[1]
    return None


def detect_staking_delegation(context: ScanContext) -> list[Finding]:
    """Detect delegation concentrated on few validators and a regular staking schedule."""
    findings: list[Finding] = []

    stakes = [inst for inst in context.instructions if inst.category == "stake"]
    if len(stakes) < 2:
        return findings

    delegations: Counter = Counter()
    for inst in stakes:
        validator = vote_account_of(inst)
        if validator:
            delegations[validator] += 1

    validators = ranked(delegations)
    if validators and len(validators) <= 2 and len(stakes) >= 3:
        evidence = []
        for validator, count in validators:
            label = context.labels.get(validator)
            name = f" ({label.name})" if label else ""
            evidence.append(
                Evidence(
                    description=f"Delegated to {truncate(validator)}{name} {count} time(s)",
                    severity=Severity.MEDIUM,
                    reference=account_url(validator),
                )
            )
        findings.append(
            Finding(
                id="stake-delegation-pattern",
                name="Concentrated Staking Delegation",
                severity=Severity.MEDIUM,
                confidence=0.7,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"All staking activity is concentrated on {len(validators)} validator(s). "
                    "Anyone who knows your validator choice can pick out your staking transactions."
                ),
                impact=(
                    "Staking with the same small set of validators links your stake accounts together."
                ),
                mitigation=(
                    "Delegate to several validators across different stake accounts, and prefer "
                    "well-known validators to blend in with other stakers."
                ),
                evidence=evidence,
            )
        )

    stats = gap_stats(inst.block_time for inst in stakes)
    if stats is not None and stats.count >= 3 and stats.cv < 0.3 and stats.mean > SECONDS_PER_HOUR:
        interval_hours = round(stats.mean / SECONDS_PER_HOUR)
        findings.append(
            Finding(
                id="stake-timing-correlation",
                name="Regular Staking Schedule",
                severity=Severity.LOW,
                confidence=0.6,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"Staking operations happen roughly every {interval_hours} hour(s). Most "
                    "people do not stake at exact intervals."
                ),
                impact=(
                    "Regular staking timing reveals automation or habit, making your transactions "
                    "easier to pick out."
                ),
                mitigation="Add some randomness to when you stake.",
                evidence=[
                    Evidence(
                        description=(
                            f"{stats.count + 1} stake operations at ~{interval_hours}-hour "
                            f"intervals ({stats.cv * 100:.1f}% variation)"
                        ),
                        severity=Severity.LOW,
                    )
                ],
            )
        )

    return findings
