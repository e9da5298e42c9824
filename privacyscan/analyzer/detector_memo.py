"""Memo field exposure.

The memo program stores arbitrary text on-chain forever. Memos regularly
leak emails, names, URLs and payment references.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..constants import MEMO_PROGRAMS, FindingCategory, Severity
from .context import Instruction, ScanContext
from .models import Evidence, Finding
from .stats import tx_url

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
URL_RE = re.compile(r"https?://\S+")
PHONE_RE = re.compile(r"(\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
NAME_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b")
REFERENCE_RE = re.compile(r"invoice|payment|order|transaction|ref|reference|id|bill", re.IGNORECASE)

MAX_QUOTED = 100


@dataclass(frozen=True)
class MemoMatch:
    content: str
    signature: str
    severity: Severity
    patterns: tuple[str, ...]


def classify_memo(text: str) -> tuple[Severity, list[str]]:
    """Run the PII patterns in order and return the resulting severity and matched kinds.

    An empty pattern list means nothing suspicious was found.
    """
    severity = Severity.LOW
    patterns: list[str] = []

    if EMAIL_RE.search(text):
        patterns.append("email address")
        severity = Severity.HIGH
    if URL_RE.search(text):
        patterns.append("URL")
        severity = max(severity, Severity.MEDIUM)
    if PHONE_RE.search(text):
        patterns.append("phone number")
        severity = Severity.HIGH
    if NAME_RE.search(text):
        patterns.append("likely name(s)")
        severity = max(severity, Severity.MEDIUM)
    if len(text) > 50 and not patterns:
        patterns.append("long descriptive text")
        severity = Severity.MEDIUM
    if REFERENCE_RE.search(text):
        patterns.append("payment reference")
        severity = max(severity, Severity.MEDIUM)

    return severity, patterns


def memo_text(inst: Instruction, context: ScanContext) -> Optional[str]:
    """Memo text from the instruction data, falling back to the transaction record."""
    if isinstance(inst.data, str):
        return inst.data.strip() or None
    tx = context.find_transaction(inst.signature)
    if tx is not None and tx.memo:
        return tx.memo.strip() or None
    return None


def detect_memo_exposure(context: ScanContext) -> list[Finding]:
    """Inspect memo instructions for personal or descriptive content."""
    findings: list[Finding] = []

    if context.transaction_count == 0:
        return findings

    # Stable sort: memos within one transaction keep their instruction order.
    memos = sorted(
        (inst for inst in context.instructions if inst.program_id in MEMO_PROGRAMS),
        key=lambda inst: inst.signature,
    )
    if not memos:
        return findings

    suspicious: list[MemoMatch] = []
    for inst in memos:
        text = memo_text(inst, context)
        if not text:
            continue
        severity, patterns = classify_memo(text)
        if patterns:
            content = text[:MAX_QUOTED] + "..." if len(text) > MAX_QUOTED else text
            suspicious.append(MemoMatch(content, inst.signature, severity, tuple(patterns)))

    if not suspicious:
        findings.append(
            Finding(
                id="memo-usage",
                name="Memo Program Usage",
                severity=Severity.LOW,
                confidence=0.6,
                category=FindingCategory.INFORMATION_LEAK,
                reason=(
                    f"{len(memos)} transaction(s) include memo data. Memos are visible to everyone "
                    "and stored permanently on the blockchain."
                ),
                impact=(
                    "Even a harmless-looking memo adds extra information to your transactions "
                    "that anyone can read forever."
                ),
                mitigation=(
                    "Avoid using memos unless necessary. Never include personal information in a memo."
                ),
                evidence=[
                    Evidence(description=f"{len(memos)} transaction(s) with memos", severity=Severity.LOW)
                ],
            )
        )
        return findings

    high = [memo for memo in suspicious if memo.severity == Severity.HIGH]
    medium = [memo for memo in suspicious if memo.severity == Severity.MEDIUM]

    if high:
        findings.append(
            Finding(
                id="memo-pii-exposure",
                name="Personal Information in Memo",
                severity=Severity.HIGH,
                confidence=0.9,
                category=FindingCategory.INFORMATION_LEAK,
                reason=(
                    f"{len(high)} memo(s) contain personal information like email addresses or "
                    "phone numbers. This data is permanently visible on the blockchain."
                ),
                impact=(
                    "Personal information in memos directly links your wallet to your real-world "
                    "identity. Anyone can search for this data and find your wallet."
                ),
                mitigation=(
                    "Never put personal information in transaction memos. If someone else did, "
                    "the connection to your wallet is permanent."
                ),
                evidence=[
                    Evidence(
                        description=f'"{memo.content}"',
                        severity=Severity.HIGH,
                        reference=tx_url(memo.signature),
                    )
                    for memo in high
                ],
            )
        )

    if medium:
        findings.append(
            Finding(
                id="memo-descriptive-content",
                name="Descriptive Content in Memo",
                severity=Severity.MEDIUM,
                confidence=0.7,
                category=FindingCategory.INFORMATION_LEAK,
                reason=(
                    f"{len(medium)} memo(s) contain descriptive text like URLs, payment references "
                    "or long descriptions that could reveal the purpose of your transactions."
                ),
                impact=(
                    "Descriptive memos give observers extra context they can use to identify you "
                    "or understand what you are doing."
                ),
                mitigation=(
                    "Keep memos short and generic. Avoid URLs, invoice numbers and descriptions "
                    "of what a payment is for."
                ),
                evidence=[
                    Evidence(
                        description=f'"{memo.content}"',
                        severity=Severity.MEDIUM,
                        reference=tx_url(memo.signature),
                    )
                    for memo in medium[:5]
                ],
            )
        )

    return findings
