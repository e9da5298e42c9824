"""Small pure helpers shared by the detectors."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from ..constants import EXPLORER_ACCOUNT_URL, EXPLORER_TX_URL


def truncate(address: str, prefix: int = 8, suffix: int = 0) -> str:
    """Shorten an address for evidence text, e.g. ``"CG2jAbcd...wJwbXyz1"``."""
    if not address:
        return ""
    if suffix:
        if len(address) <= prefix + suffix + 3:
            return address
        return f"{address[:prefix]}...{address[-suffix:]}"
    return f"{address[:prefix]}..."


def tx_url(signature: str) -> str:
    return EXPLORER_TX_URL.format(signature)


def account_url(address: str) -> str:
    return EXPLORER_ACCOUNT_URL.format(address)


def ranked(counts: Counter) -> list[tuple]:
    """Order counter items by count desc, key asc.

    Ties are broken on the key so the result never depends on the order
    in which the upstream collector delivered records.
    """
    return sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))


def top_share(counts: Counter, total: int) -> float:
    """Concentration: share of ``total`` held by the most frequent key."""
    if not counts or total <= 0:
        return 0.0
    return max(counts.values()) / total


@dataclass(frozen=True)
class GapStats:
    """Dispersion of consecutive gaps in a sorted timestamp series."""

    gaps: tuple[float, ...]
    mean: float
    stddev: float
    cv: float  # coefficient of variation, inf when the mean is zero

    @property
    def count(self) -> int:
        return len(self.gaps)


def gap_stats(timestamps: Iterable[Optional[float]]) -> Optional[GapStats]:
    """Sort the known timestamps and describe the gaps between them.

    ``None`` entries are excluded, never treated as zero. Returns ``None``
    when fewer than two timestamps remain.
    """
    ordered = sorted(t for t in timestamps if t is not None)
    if len(ordered) < 2:
        return None
    gaps = tuple(float(b - a) for a, b in zip(ordered, ordered[1:]))
    mean = math.fsum(gaps) / len(gaps)
    variance = math.fsum((gap - mean) ** 2 for gap in gaps) / len(gaps)
    stddev = math.sqrt(variance)
    cv = stddev / mean if mean > 0 else math.inf
    return GapStats(gaps=gaps, mean=mean, stddev=stddev, cv=cv)


def known_times(values: Sequence[Optional[int]]) -> list[int]:
    """Sorted timestamps with unknown entries dropped."""
    return sorted(v for v in values if v is not None)


def utc_hour(timestamp: float) -> int:
    """Hour of day (0-23, UTC) for a unix timestamp."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).hour


def utc_weekday(timestamp: float) -> int:
    """Day of week for a unix timestamp, Monday is 0."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).weekday()


def utc_day(timestamp: float) -> str:
    """Calendar date (UTC) as ``YYYY-MM-DD``."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
