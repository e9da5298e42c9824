"""Known-entity interaction and address-reuse detection."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field

from ..constants import SECONDS_PER_DAY, SYSTEM_PROGRAMS, FindingCategory, Severity, TargetType
from .context import ScanContext
from .models import Evidence, Finding, Label


@dataclass
class _EntityUse:
    label: Label
    count: int


def _entity_uses(context: ScanContext) -> list[_EntityUse]:
    uses = []
    for address in sorted(context.labels):
        count = sum(
            1 for t in context.transfers if t.from_address == address or t.to_address == address
        )
        if count:
            uses.append(_EntityUse(label=context.labels[address], count=count))
    return uses


def detect_known_entity_interaction(context: ScanContext) -> list[Finding]:
    """Flag transfers with labelled exchanges, bridges and other known services."""
    findings: list[Finding] = []

    if not context.labels or not context.transfers:
        return findings

    uses = _entity_uses(context)
    if not uses:
        return findings

    by_type: dict[str, list[_EntityUse]] = defaultdict(list)
    for use in uses:
        by_type[use.label.type].append(use)

    exchanges = by_type.get("exchange", [])
    if exchanges:
        total = sum(use.count for use in exchanges)
        findings.append(
            Finding(
                id="known-entity-exchange",
                name="Centralized Exchange Interaction",
                severity=Severity.HIGH,
                confidence=0.95,
                category=FindingCategory.IDENTITY_LINKAGE,
                reason=(
                    f"Wallet interacted with {len(exchanges)} centralized exchange(s) in "
                    f"{total} transaction(s)."
                ),
                impact=(
                    "Centralized exchanges hold KYC data. Direct interactions can link this "
                    "address to a real-world identity through account records and deposit or "
                    "withdrawal patterns."
                ),
                mitigation=(
                    "Use intermediate wallets to break the direct link between your main wallet "
                    "and exchange accounts. Consider decentralized exchanges where possible."
                ),
                evidence=[
                    Evidence(
                        description=f"{use.count} interaction(s) with {use.label.name}",
                        severity=Severity.HIGH,
                        reference=use.label.address,
                    )
                    for use in exchanges
                ],
            )
        )

    bridges = by_type.get("bridge", [])
    if bridges:
        findings.append(
            Finding(
                id="known-entity-bridge",
                name="Bridge Protocol Interaction",
                severity=Severity.MEDIUM,
                confidence=0.85,
                category=FindingCategory.IDENTITY_LINKAGE,
                reason=f"Wallet interacted with {len(bridges)} bridge protocol(s).",
                impact=(
                    "Bridge transactions can link this Solana address to addresses on other "
                    "chains, expanding the tracking surface."
                ),
                mitigation=(
                    "Use separate addresses for cross-chain activity so bridged funds do not "
                    "lead back to your main wallet."
                ),
                evidence=[
                    Evidence(
                        description=f"{use.count} interaction(s) with {use.label.name}",
                        severity=Severity.MEDIUM,
                        reference=use.label.address,
                    )
                    for use in bridges
                ],
            )
        )

    others = [
        use
        for entity_type in sorted(by_type)
        if entity_type not in ("exchange", "bridge")
        for use in by_type[entity_type]
    ]
    if others:
        total = sum(use.count for use in others)
        noun = "entity" if len(others) == 1 else "entities"
        findings.append(
            Finding(
                id="known-entity-other",
                name="Known Entity Interactions",
                severity=Severity.LOW,
                confidence=0.75,
                category=FindingCategory.BEHAVIORAL,
                reason=f"Wallet interacted with {len(others)} known {noun} ({total} transactions).",
                impact=(
                    "Interactions with known entities create reference points in your history "
                    "that can be used to correlate activity and build a behavioral profile."
                ),
                mitigation=(
                    "Interacting with known protocols is often necessary; be aware that it "
                    "creates a public association with those services."
                ),
                evidence=[
                    Evidence(
                        description=(
                            f"{use.count} interaction(s) with {use.label.name} ({use.label.type})"
                        ),
                        severity=Severity.LOW,
                        reference=use.label.address,
                    )
                    for use in others[:5]
                ],
            )
        )

    total_transfers = len(context.transfers)
    for use in uses:
        concentration = use.count / total_transfers
        if concentration <= 0.3 or use.count < 5:
            continue
        severity = Severity.HIGH if use.label.type == "exchange" else Severity.MEDIUM
        findings.append(
            Finding(
                id=f"known-entity-frequent-{use.label.address[:8]}",
                name="Frequent Single Entity Interaction",
                severity=severity,
                confidence=0.85,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"{round(concentration * 100)}% of transfers ({use.count}/{total_transfers}) "
                    f"involve {use.label.name}."
                ),
                impact=(
                    "Heavy concentration of activity with one entity creates a strong link that "
                    "is easily identified."
                ),
                mitigation=(
                    "Spread your activity across several services and use different addresses "
                    "for different providers."
                ),
                evidence=[
                    Evidence(
                        description=f"{use.count} transfers with {use.label.name} ({use.label.type})",
                        severity=severity,
                        reference=use.label.address,
                    )
                ],
            )
        )

    return findings


# Activity classes recognised from program label names.
ACTIVITY_PATTERNS = (
    ("DeFi", {"JUP", "Jupiter", "Raydium", "Orca", "Marinade", "Lido", "Lifinity", "Serum"},
     re.compile(r"swap|pool|stake|lend|borrow", re.IGNORECASE)),
    ("NFT", {"Magic Eden", "Tensor", "OpenSea", "Metaplex"},
     re.compile(r"nft|marketplace|mint", re.IGNORECASE)),
    ("Gaming", {"Star Atlas", "Genopets", "Aurory"},
     re.compile(r"game|play", re.IGNORECASE)),
    ("DAO", {"Realms", "Squads", "Tribeca"},
     re.compile(r"dao|governance|vote", re.IGNORECASE)),
)


@dataclass
class _Activity:
    count: int = 0
    programs: set[str] = field(default_factory=set)


def detect_address_reuse(context: ScanContext) -> list[Finding]:
    """Detect one wallet used for many unrelated activities or over a long period.

    Wallet targets with at least five transactions only.
    """
    findings: list[Finding] = []

    if context.target_type != TargetType.WALLET or context.transaction_count < 5:
        return findings

    # Keyed in ACTIVITY_PATTERNS order, then Exchange, then P2P Transfers.
    activities: dict[str, _Activity] = {}

    for activity, names, pattern in ACTIVITY_PATTERNS:
        for inst in context.instructions:
            label = context.labels.get(inst.program_id)
            program_name = label.name if label else ""
            if program_name in names or (program_name and pattern.search(program_name)):
                entry = activities.setdefault(activity, _Activity())
                entry.count += 1
                entry.programs.add(program_name or inst.program_id[:8])

    exchanges = {address for address, label in context.labels.items() if label.type == "exchange"}
    exchange_transfers = sum(
        1 for t in context.transfers if t.from_address in exchanges or t.to_address in exchanges
    )
    if exchange_transfers:
        activities["Exchange"] = _Activity(count=exchange_transfers, programs={"CEX"})

    programs_by_signature: dict[str, set[str]] = defaultdict(set)
    for inst in context.instructions:
        programs_by_signature[inst.signature].add(inst.program_id)
    recorded = {tx.signature for tx in context.transactions}
    simple = [
        t
        for t in context.transfers
        if t.signature in recorded and programs_by_signature[t.signature] <= SYSTEM_PROGRAMS
    ]
    if len(simple) >= 3:
        activities["P2P Transfers"] = _Activity(count=len(simple), programs={"Direct"})

    diversity = len(activities)
    kinds = ", ".join(activities)
    if diversity >= 4:
        findings.append(
            Finding(
                id="address-high-diversity",
                name="High Activity Diversity on Single Address",
                severity=Severity.HIGH,
                confidence=0.85,
                category=FindingCategory.LINKABILITY,
                reason=f"This address is used for {diversity} distinct activity types: {kinds}.",
                impact=(
                    "Using one address for multiple unrelated activities links them all together "
                    "into one comprehensive behavioral profile."
                ),
                mitigation=(
                    "Use separate addresses for different purposes, for example one for DeFi and "
                    "another for NFTs, so activities cannot be cross-linked."
                ),
                evidence=[
                    Evidence(
                        description=(
                            f"{kind}: {entry.count} transaction(s) across "
                            f"{len(entry.programs)} program(s)"
                        ),
                        severity=Severity.HIGH,
                    )
                    for kind, entry in activities.items()
                ],
            )
        )
    elif diversity == 3:
        findings.append(
            Finding(
                id="address-moderate-diversity",
                name="Moderate Activity Diversity on Single Address",
                severity=Severity.MEDIUM,
                confidence=0.7,
                category=FindingCategory.LINKABILITY,
                reason=f"This address is used for {diversity} activity types: {kinds}.",
                impact=(
                    "Multiple activity types on one address create linkage between otherwise "
                    "separate behaviors."
                ),
                mitigation=(
                    "Consider using separate addresses for different activities to compartmentalize them."
                ),
                evidence=[
                    Evidence(
                        description=f"{kind}: {entry.count} transaction(s)",
                        severity=Severity.MEDIUM,
                    )
                    for kind, entry in activities.items()
                ],
            )
        )

    earliest, latest = context.time_range.earliest, context.time_range.latest
    if earliest is not None and latest is not None:
        span_days = (latest - earliest) / SECONDS_PER_DAY
        if span_days > 180 and context.transaction_count > 50:
            findings.append(
                Finding(
                    id="address-long-term-usage",
                    name="Long-Term Single Address Usage",
                    severity=Severity.MEDIUM,
                    confidence=0.75,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"This address has been actively used for {round(span_days)} days with "
                        f"{context.transaction_count} transactions."
                    ),
                    impact=(
                        "Long-term use accumulates a rich behavioral history in which every "
                        "activity is permanently linked."
                    ),
                    mitigation="Periodically rotate to new addresses to separate periods of activity.",
                    evidence=[
                        Evidence(
                            description=(
                                f"{context.transaction_count} transactions over "
                                f"{round(span_days)} days"
                            ),
                            severity=Severity.MEDIUM,
                        )
                    ],
                )
            )

    return findings
