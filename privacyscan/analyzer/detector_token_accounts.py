"""Token account detectors: associated-account creators and account lifecycles.

Token accounts are created (rent locked), used, then optionally closed with
the rent refunded to the owner. Who paid for creation and where refunds go
are both public.
"""

from __future__ import annotations

from collections import Counter, defaultdict

from ..constants import SECONDS_PER_HOUR, FindingCategory, Severity
from .context import ScanContext, TokenAccountEvent
from .models import Evidence, Finding
from .stats import ranked, truncate, tx_url

BATCH_WINDOW_SECONDS = 600


def _creates(context: ScanContext) -> list[TokenAccountEvent]:
    return [e for e in context.token_account_events if e.type == "create"]


def _closes(context: ScanContext) -> list[TokenAccountEvent]:
    return [e for e in context.token_account_events if e.type == "close"]


def detect_ata_linkage(context: ScanContext) -> list[Finding]:
    """Detect one funder creating token accounts for many owners, and batch setup.

    Needs at least two creation events.
    """
    findings: list[Finding] = []

    creates = _creates(context)
    if len(creates) < 2:
        return findings

    owners_by_creator: dict[str, set[str]] = defaultdict(set)
    signatures_by_creator: dict[str, list[str]] = defaultdict(list)
    for event in creates:
        tx = context.find_transaction(event.signature)
        if tx is None or not tx.fee_payer:
            continue
        if tx.fee_payer == event.owner:
            continue
        owners_by_creator[tx.fee_payer].add(event.owner)
        signatures_by_creator[tx.fee_payer].append(tx.signature)

    multi_owner = sorted(
        ((creator, owners) for creator, owners in owners_by_creator.items() if len(owners) >= 2),
        key=lambda item: (-len(item[1]), item[0]),
    )
    if multi_owner:
        evidence = []
        for creator, owners in multi_owner[:3]:
            label = context.labels.get(creator)
            name = f" ({label.name})" if label else ""
            signatures = sorted(signatures_by_creator[creator])
            evidence.append(
                Evidence(
                    description=(
                        f"{truncate(creator)}{name} created token accounts for "
                        f"{len(owners)} different owner(s)"
                    ),
                    severity=Severity.HIGH,
                    reference=tx_url(signatures[0]) if signatures else None,
                )
            )
        top_owner_count = len(multi_owner[0][1])
        findings.append(
            Finding(
                id="ata-creator-linkage",
                name="Token Account Creator Links Multiple Wallets",
                severity=Severity.HIGH,
                confidence=0.85,
                category=FindingCategory.LINKABILITY,
                reason=(
                    f"One wallet created token accounts for {top_owner_count} different owners. "
                    "All of these wallets are visibly connected to the same funding source, even "
                    "if they never send tokens to each other directly."
                ),
                impact=(
                    "All wallets whose token accounts were created by the same funder are "
                    "permanently linked together on-chain."
                ),
                mitigation=(
                    "Have each wallet create its own token accounts using its own funds. Never use "
                    "a central wallet to set up accounts for multiple other wallets."
                ),
                evidence=evidence,
            )
        )

    if len(creates) >= 3:
        times = sorted(e.block_time for e in creates if e.block_time is not None)
        max_burst = 0
        start = 0
        for end, current in enumerate(times):
            while current - times[start] > BATCH_WINDOW_SECONDS:
                start += 1
            max_burst = max(max_burst, end - start + 1)

        if max_burst >= 3:
            findings.append(
                Finding(
                    id="ata-funding-pattern",
                    name="Batch Token Account Creation",
                    severity=Severity.MEDIUM,
                    confidence=0.7,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"{max_burst} token accounts were created within a 10-minute window. This "
                        "batch setup suggests automated wallet preparation by one operator."
                    ),
                    impact=(
                        "Batch creation of token accounts reveals coordinated setup, linking all "
                        "involved wallets together."
                    ),
                    mitigation=(
                        "Space out token account creation over time. Create accounts only when "
                        "needed rather than in advance."
                    ),
                    evidence=[
                        Evidence(
                            description=f"{max_burst} token accounts created within 10 minutes",
                            severity=Severity.MEDIUM,
                        )
                    ],
                )
            )

    return findings


def detect_token_account_lifecycle(context: ScanContext) -> list[Finding]:
    """Detect burner churn, short-lived accounts, shared owners and refund clustering."""
    findings: list[Finding] = []

    events = context.token_account_events
    if not events:
        return findings

    creates = _creates(context)
    closes = _closes(context)

    if len(creates) >= 2 and len(closes) >= 2:
        refunded: dict[str, float] = defaultdict(float)
        closes_by_owner: Counter = Counter()
        for event in closes:
            closes_by_owner[event.owner] += 1
            if event.rent_refund:
                refunded[event.owner] += event.rent_refund

        if refunded:
            total_refunded = sum(refunded[owner] for owner in sorted(refunded))
            evidence = [
                Evidence(
                    description=(
                        f"{refunded[owner]:.4f} SOL refunded to {truncate(owner)} from "
                        f"{closes_by_owner[owner]} closed account(s)"
                    ),
                    severity=Severity.MEDIUM,
                )
                for owner in sorted(refunded)
            ]
            findings.append(
                Finding(
                    id="token-account-churn",
                    name="Frequent Token Account Creation/Closure",
                    severity=Severity.MEDIUM,
                    confidence=0.75,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"{len(creates)} token account(s) created and {len(closes)} closed. Rent "
                        f"refunds totaling {total_refunded:.4f} SOL expose ownership."
                    ),
                    impact=(
                        "Rent refunds link temporary token accounts back to the owner wallet. This "
                        "pattern defeats the purpose of using \"burner\" accounts."
                    ),
                    mitigation=(
                        "Avoid closing token accounts if privacy is important: leave them open "
                        "rather than refunding the rent to your main wallet."
                    ),
                    evidence=evidence,
                )
            )

    by_account: dict[str, list[TokenAccountEvent]] = defaultdict(list)
    for event in events:
        by_account[event.token_account].append(event)

    short_lived: list[tuple[str, float, TokenAccountEvent]] = []
    for account in sorted(by_account):
        account_events = by_account[account]
        create_times = [e.block_time for e in account_events if e.type == "create" and e.block_time is not None]
        close_events = [e for e in account_events if e.type == "close" and e.block_time is not None]
        if not create_times or not close_events:
            continue
        last_close = max(close_events, key=lambda e: (e.block_time, e.signature))
        duration = last_close.block_time - min(create_times)
        if 0 <= duration < SECONDS_PER_HOUR:
            short_lived.append((account, duration, last_close))

    if len(short_lived) >= 2:
        evidence = []
        for account, duration, close_event in short_lived[:5]:
            refund = f", refunded {close_event.rent_refund:.4f} SOL" if close_event.rent_refund else ""
            evidence.append(
                Evidence(
                    description=f"{truncate(account)} lived for {int(duration // 60)} minute(s){refund}",
                    severity=Severity.LOW,
                )
            )
        findings.append(
            Finding(
                id="token-account-short-lived",
                name="Short-Lived Token Accounts",
                severity=Severity.LOW,
                confidence=0.7,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"{len(short_lived)} token account(s) were created and closed within an hour, "
                    "suggesting burner account usage."
                ),
                impact=(
                    "Short-lived accounts suggest privacy-conscious behavior, but rent refunds "
                    "still create linkage."
                ),
                mitigation=(
                    "For true privacy, do not close accounts immediately. The rent refund links "
                    "the burner back to you."
                ),
                evidence=evidence,
            )
        )

    accounts_by_owner: dict[str, set[str]] = defaultdict(set)
    for event in creates:
        accounts_by_owner[event.owner].add(event.token_account)

    multi_account = sorted(
        ((owner, accounts) for owner, accounts in accounts_by_owner.items() if len(accounts) >= 2),
        key=lambda item: (-len(item[1]), item[0]),
    )
    if multi_account:
        top_owner, top_accounts = multi_account[0]
        if top_owner != context.target or len(multi_account) > 1:
            evidence = []
            for owner, accounts in multi_account[:3]:
                label = context.labels.get(owner)
                name = f" ({label.name})" if label else ""
                evidence.append(
                    Evidence(
                        description=f"{truncate(owner)}{name} owns {len(accounts)} token account(s)",
                        severity=Severity.LOW,
                    )
                )
            findings.append(
                Finding(
                    id="token-account-common-owner",
                    name="Common Owner Across Token Accounts",
                    severity=Severity.LOW,
                    confidence=0.9,
                    category=FindingCategory.LINKABILITY,
                    reason=(
                        f"{len(multi_account)} wallet(s) control multiple token accounts. The top "
                        f"owner controls {len(top_accounts)} accounts."
                    ),
                    impact="All token accounts with the same owner are trivially linked.",
                    mitigation=(
                        "This is inherent to the token account model; keep unrelated holdings "
                        "under different owner wallets."
                    ),
                    evidence=evidence,
                )
            )

    refund_counts: Counter = Counter()
    refund_totals: dict[str, float] = defaultdict(float)
    for event in closes:
        if event.rent_refund:
            refund_counts[event.owner] += 1
            refund_totals[event.owner] += event.rent_refund

    clustered = [(owner, count) for owner, count in ranked(refund_counts) if count >= 3]
    if clustered:
        top_owner, top_count = clustered[0]
        evidence = [
            Evidence(
                description=(
                    f"{truncate(owner)} received {count} rent refunds totaling "
                    f"{refund_totals[owner]:.4f} SOL"
                ),
                severity=Severity.MEDIUM,
            )
            for owner, count in clustered[:3]
        ]
        findings.append(
            Finding(
                id="rent-refund-clustering",
                name="Rent Refund Clustering",
                severity=Severity.MEDIUM,
                confidence=0.8,
                category=FindingCategory.LINKABILITY,
                reason=(
                    f"{len(clustered)} address(es) receive multiple rent refunds. "
                    f"{truncate(top_owner)} received {top_count} refunds."
                ),
                impact=(
                    "Rent refunds link closed token accounts back to a central wallet. This "
                    "exposes the control structure."
                ),
                mitigation=(
                    "Do not close token accounts if privacy is important. The small rent cost "
                    "(~0.002 SOL) is cheaper than the privacy loss."
                ),
                evidence=evidence,
            )
        )

    return findings
