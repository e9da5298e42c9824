"""Location inference from transaction timing.

Sleep gaps, the least active hours of the day and the weekday/weekend split
together hint at the timezone a wallet owner lives in.
"""

from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence

from ..constants import SECONDS_PER_DAY, SECONDS_PER_HOUR, FindingCategory, Severity
from .context import ScanContext
from .models import Evidence, Finding
from .stats import known_times, ranked, utc_day, utc_hour, utc_weekday

MIN_TIMESTAMPS = 20
MIN_SPAN_DAYS = 3
INACTIVE_WINDOW_HOURS = 8

TIMEZONE_REGIONS = {
    -12: "Baker Island, Howland Island",
    -11: "American Samoa, Niue",
    -10: "Hawaii, Tahiti",
    -9: "Alaska",
    -8: "US Pacific (LA, San Francisco)",
    -7: "US Mountain (Denver, Phoenix)",
    -6: "US Central (Chicago, Dallas)",
    -5: "US Eastern (NYC, Miami)",
    -4: "Atlantic (Puerto Rico, Bermuda)",
    -3: "Brazil, Argentina",
    -2: "Mid-Atlantic",
    -1: "Azores, Cape Verde",
    0: "UK, Portugal, West Africa",
    1: "Western Europe (Paris, Berlin)",
    2: "Eastern Europe (Cairo, Athens)",
    3: "Moscow, Middle East",
    4: "UAE, Armenia",
    5: "Pakistan, West Asia",
    5.5: "India, Sri Lanka",
    6: "Bangladesh, Central Asia",
    7: "Thailand, Vietnam, Indonesia",
    8: "China, Singapore, Hong Kong",
    9: "Japan, Korea",
    10: "Australia East (Sydney)",
    11: "Solomon Islands, Vanuatu",
    12: "New Zealand, Fiji",
}

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def format_offset(offset: float) -> str:
    sign = "+" if offset >= 0 else ""
    value = int(offset) if float(offset).is_integer() else offset
    return f"UTC{sign}{value}"


def quietest_window(hour_counts: Sequence[int], width: int = INACTIVE_WINDOW_HOURS) -> tuple[int, int]:
    """Start hour and total of the least active circular window.

    The earliest start hour wins ties.
    """
    best_start, best_count = 0, None
    for start in range(24):
        count = sum(hour_counts[(start + i) % 24] for i in range(width))
        if best_count is None or count < best_count:
            best_start, best_count = start, count
    return best_start, best_count or 0


def estimate_offset(inactive_start: int) -> int:
    """Assume the quiet window begins at local midnight; wrap into [-12, 12]."""
    offset = -inactive_start
    if offset < -12:
        offset += 24
    if offset > 12:
        offset -= 24
    return offset


def _timezone_estimate(times: list[int]) -> Optional[Finding]:
    hour_counts = [0] * 24
    for ts in times:
        hour_counts[utc_hour(ts)] += 1

    start, window_count = quietest_window(hour_counts)
    avg_per_hour = len(times) / 24
    window_avg = window_count / INACTIVE_WINDOW_HOURS
    if window_avg >= avg_per_hour * 0.5:
        return None

    offset = estimate_offset(start)
    region = TIMEZONE_REGIONS.get(offset, "Unknown region")
    ratio = window_avg / avg_per_hour
    confidence = min(0.85, 0.5 + (1 - ratio) * 0.4)

    quiet_end = (start + INACTIVE_WINDOW_HOURS) % 24
    zone = format_offset(offset)
    return Finding(
        id="location-timezone-estimate",
        name="Geographic Location Inference",
        severity=Severity.HIGH,
        confidence=confidence,
        category=FindingCategory.BEHAVIORAL,
        reason=(
            f"You appear to be active between {quiet_end}:00-{start}:00 UTC and inactive between "
            f"{start}:00-{quiet_end}:00 UTC. This suggests a timezone around {zone}, which "
            f"corresponds to regions like: {region}."
        ),
        impact=(
            "Timezone estimation is a powerful deanonymization technique. Combined with other "
            "data it can significantly narrow down your geographic location."
        ),
        mitigation=(
            "Use transaction scheduling to keep some activity during your usual inactive hours. "
            "Random timing offsets make timezone inference much harder."
        ),
        evidence=[
            Evidence(
                description=f"Least active: {start}:00-{quiet_end}:00 UTC ({window_count} tx)",
                severity=Severity.HIGH,
            ),
            Evidence(
                description=f"Most active: {quiet_end}:00-{start}:00 UTC",
                severity=Severity.HIGH,
            ),
            Evidence(
                description=f"Estimated timezone: {zone} ({region})",
                severity=Severity.HIGH,
            ),
        ],
    )


def _sleep_pattern(times: list[int]) -> Optional[Finding]:
    if len({utc_day(ts) for ts in times}) < 5:
        return None

    gaps: list[tuple[float, int]] = []
    for previous, current in zip(times, times[1:]):
        gap_hours = (current - previous) / SECONDS_PER_HOUR
        if 5 <= gap_hours <= 12:
            gaps.append((gap_hours, utc_hour(previous)))
    if len(gaps) < 5:
        return None

    # Two-hour buckets, rounding half up.
    buckets = Counter(((hour + 1) // 2 * 2) % 24 for _, hour in gaps)
    peak_bucket, peak_count = ranked(buckets)[0]
    concentration = peak_count / len(gaps)
    if concentration < 0.5:
        return None

    avg_gap = sum(gap for gap, _ in gaps) / len(gaps)
    offset = ((23 - peak_bucket) + 12) % 24 - 12
    return Finding(
        id="location-sleep-pattern",
        name="Sleep Pattern Detected",
        severity=Severity.MEDIUM,
        confidence=0.6 + concentration * 0.2,
        category=FindingCategory.BEHAVIORAL,
        reason=(
            f"Your transaction history shows consistent {avg_gap:.1f}-hour gaps that look like "
            f"sleep periods. They typically start around {peak_bucket}:00 UTC, suggesting a "
            f"timezone around {format_offset(offset)}."
        ),
        impact=(
            "Sleep patterns are one of the strongest indicators of geographic location and can "
            "narrow down where you live to a specific timezone."
        ),
        mitigation=(
            "Schedule some transactions during your typical sleep hours. Even occasional "
            "activity at night breaks this pattern."
        ),
        evidence=[
            Evidence(
                description=f"{len(gaps)} sleep-like gaps detected (avg {avg_gap:.1f} hours)",
                severity=Severity.MEDIUM,
            ),
            Evidence(
                description=(
                    f"Gaps typically start around {peak_bucket}:00-{(peak_bucket + 2) % 24}:00 UTC"
                ),
                severity=Severity.MEDIUM,
            ),
        ],
    )


def _weekday_pattern(times: list[int]) -> Optional[Finding]:
    day_counts = [0] * 7
    for ts in times:
        day_counts[utc_weekday(ts)] += 1

    weekday_count = sum(day_counts[:5])
    weekend_count = sum(day_counts[5:])
    weekday_rate = weekday_count / 5
    weekend_rate = weekend_count / 2
    if weekday_rate == 0 or weekend_rate == 0:
        return None
    rate_ratio = max(weekday_rate / weekend_rate, weekend_rate / weekday_rate)
    if rate_ratio < 2:
        return None

    busier, quieter = ("weekdays", "weekends") if weekday_rate > weekend_rate else ("weekends", "weekdays")
    total = len(times)
    breakdown = ", ".join(f"{name}: {count}" for name, count in zip(WEEKDAY_NAMES, day_counts))
    return Finding(
        id="location-weekday-pattern",
        name="Weekday/Weekend Activity Pattern",
        severity=Severity.LOW,
        confidence=0.65,
        category=FindingCategory.BEHAVIORAL,
        reason=(
            f"You are {rate_ratio:.1f}x more active on {busier} than {quieter}. This is "
            "consistent with a work schedule and can hint at your occupation."
        ),
        impact=(
            "Different activity levels on weekdays and weekends reveal lifestyle patterns such "
            "as a traditional job or shift work."
        ),
        mitigation="Spread transactions more evenly across the week.",
        evidence=[
            Evidence(
                description=(
                    f"{round(weekday_count / total * 100)}% weekday / "
                    f"{round(weekend_count / total * 100)}% weekend activity"
                ),
                severity=Severity.LOW,
            ),
            Evidence(description=f"Daily breakdown: {breakdown}", severity=Severity.LOW),
        ],
    )


def detect_location_inference(context: ScanContext) -> list[Finding]:
    """Infer sleep hours, work week and timezone from record timestamps.

    Needs 20 timestamped records spanning at least three days.
    """
    times = known_times([tx.block_time for tx in context.transactions])
    if len(times) < MIN_TIMESTAMPS:
        return []
    if (times[-1] - times[0]) / SECONDS_PER_DAY < MIN_SPAN_DAYS:
        return []

    findings = []
    for analysis in (_sleep_pattern, _weekday_pattern, _timezone_estimate):
        finding = analysis(times)
        if finding is not None:
            findings.append(finding)
    return findings
