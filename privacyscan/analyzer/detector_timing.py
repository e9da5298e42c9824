"""Timing pattern detection: bursts, clock-like intervals and hour-of-day clustering."""

from __future__ import annotations

from collections import Counter

from ..constants import SECONDS_PER_HOUR, FindingCategory, Severity
from .context import ScanContext
from .models import Evidence, Finding
from .stats import gap_stats, known_times, top_share, utc_hour


def burst_severity(transaction_count: int, span_hours: float) -> Severity | None:
    """Classify a burst, or return None when the activity is not bursty.

    The rules, applied in order:

    - fewer than three transactions, or a negative span from an inverted
      time range, is never a burst;
    - a zero span (every transaction in one block time) is HIGH, since the
      rate is unbounded;
    - more than 10 tx/hour is HIGH, more than 5 tx/hour is MEDIUM;
    - otherwise a span under one hour is MEDIUM.

    The rate test takes precedence over the short-span floor, so a dense
    sub-hour burst is reported at the rate's severity.
    """
    if transaction_count < 3 or span_hours < 0:
        return None
    if span_hours == 0:
        return Severity.HIGH
    rate = transaction_count / span_hours
    if rate > 10:
        return Severity.HIGH
    if rate > 5:
        return Severity.MEDIUM
    if span_hours < 1:
        return Severity.MEDIUM
    return None


def _interval_text(mean_gap: float) -> str:
    minutes = round(mean_gap / 60)
    if minutes < 60:
        return f"{minutes}-minute"
    return f"{mean_gap / SECONDS_PER_HOUR:.1f}-hour"


def detect_timing_patterns(context: ScanContext) -> list[Finding]:
    """Detect bursts, regular intervals and time-of-day concentration.

    Needs both ends of the time range and at least three transactions.
    """
    findings: list[Finding] = []

    earliest, latest = context.time_range.earliest, context.time_range.latest
    if earliest is None or latest is None or context.transaction_count < 3:
        return findings

    count = context.transaction_count
    span_hours = (latest - earliest) / SECONDS_PER_HOUR
    severity = burst_severity(count, span_hours)
    if severity is not None:
        rate_text = f"{count / span_hours:.2f} tx/hour" if span_hours > 0 else "all in one block time"
        findings.append(
            Finding(
                id="timing-burst",
                name="Transaction Burst Pattern",
                severity=severity,
                confidence=0.8,
                category=FindingCategory.BEHAVIORAL,
                reason=(
                    f"{count} transactions happened within just {span_hours:.1f} hour(s). This "
                    "burst of activity stands out and is easy to spot on the blockchain."
                ),
                impact=(
                    "A sudden spike in transactions is distinctive. Anyone watching can correlate "
                    "it with real-world events or with other wallets showing the same burst."
                ),
                mitigation=(
                    "Spread your transactions out over a longer period. Doing everything at once "
                    "makes your activity easy to identify."
                ),
                evidence=[
                    Evidence(
                        description=f"{count} transactions in {span_hours:.1f} hours ({rate_text})",
                        severity=severity,
                    )
                ],
            )
        )

    times = known_times([tx.block_time for tx in context.transactions])

    if len(times) >= 5:
        stats = gap_stats(times)
        if stats is not None and stats.cv < 0.3 and stats.mean > 60:
            interval_hours = stats.mean / SECONDS_PER_HOUR
            if 23 <= interval_hours <= 25 or 0.9 <= interval_hours <= 1.1:
                severity = Severity.HIGH
            elif stats.count >= 10:
                severity = Severity.MEDIUM
            else:
                severity = Severity.LOW
            interval = _interval_text(stats.mean)
            findings.append(
                Finding(
                    id="timing-regular-interval",
                    name="Regular Transaction Interval",
                    severity=severity,
                    confidence=0.85,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"Transactions happen at regular {interval} intervals. This clock-like "
                        "pattern is a strong signal of automation or a fixed schedule."
                    ),
                    impact=(
                        "Regular timing is one of the easiest patterns to spot. It can reveal your "
                        "daily routine or that you are running a bot."
                    ),
                    mitigation=(
                        "Add random delays between transactions. Even small variations in timing "
                        "make the pattern much harder to detect."
                    ),
                    evidence=[
                        Evidence(
                            description=(
                                f"{stats.count} gaps averaging {round(stats.mean / 60)} minutes "
                                f"({stats.cv * 100:.1f}% variation)"
                            ),
                            severity=severity,
                        )
                    ],
                )
            )

    if len(times) >= 10:
        hours = Counter(utc_hour(t) for t in times)
        max_count = max(hours.values())
        concentration = top_share(hours, len(times))
        if concentration > 0.4:
            active = sorted(hour for hour, n in hours.items() if n >= max_count * 0.8)
            hour_list = ", ".join(f"{hour}:00" for hour in active)
            findings.append(
                Finding(
                    id="timing-timezone-pattern",
                    name="Consistent Time-of-Day Pattern",
                    severity=Severity.MEDIUM,
                    confidence=0.7,
                    category=FindingCategory.BEHAVIORAL,
                    reason=(
                        f"{round(concentration * 100)}% of transactions happen during the same "
                        f"hours of the day ({hour_list} UTC). This hints at your timezone."
                    ),
                    impact=(
                        "Activity at the same time every day reveals your timezone and schedule, "
                        "which narrows down who you might be."
                    ),
                    mitigation=(
                        "Send transactions at different times of day. If you use automation, add "
                        "random time offsets."
                    ),
                    evidence=[
                        Evidence(
                            description=(
                                f"{max_count}/{len(times)} transactions during {len(active)} hour(s)"
                            ),
                            severity=Severity.MEDIUM,
                        )
                    ],
                )
            )

    return findings
