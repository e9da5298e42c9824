"""Detection metrics tracking for detector tuning.

Shows which detectors fire, how often, and which ones fail, so thresholds
can be tuned from real scans. Each evaluator owns its own collector.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class FindingMetrics:
    """Metrics for a single finding id."""

    hits: int = 0
    last_hit: Optional[datetime] = None
    targets: set = field(default_factory=set)

    def record_hit(self, target: str) -> None:
        self.hits += 1
        self.last_hit = datetime.now()
        self.targets.add(target)


@dataclass
class DetectorMetrics:
    """Metrics for one detector."""

    runs: int = 0
    failures: int = 0
    findings: int = 0
    last_failure: Optional[str] = None


class DetectionMetrics:
    """Thread-safe metrics collector for one evaluator.

    Tracks detector runs and failures, finding ids and overall risk levels.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._detectors: dict[str, DetectorMetrics] = defaultdict(DetectorMetrics)
        self._findings: dict[str, FindingMetrics] = defaultdict(FindingMetrics)
        self._risk_levels: dict[str, int] = defaultdict(int)
        self._total_evaluations: int = 0
        self._started: datetime = datetime.now()

    def record_run(self, detector: str, finding_ids: list[str], target: str) -> None:
        """Record a successful detector run and the findings it produced."""
        with self._lock:
            entry = self._detectors[detector]
            entry.runs += 1
            entry.findings += len(finding_ids)
            for finding_id in finding_ids:
                self._findings[finding_id].record_hit(target)

    def record_failure(self, detector: str, error: str) -> None:
        """Record a detector that raised or broke its return contract."""
        with self._lock:
            entry = self._detectors[detector]
            entry.runs += 1
            entry.failures += 1
            entry.last_failure = error

    def record_evaluation(self) -> None:
        with self._lock:
            self._total_evaluations += 1

    def record_risk(self, risk: str) -> None:
        """Record the overall risk of a finished scan."""
        with self._lock:
            self._risk_levels[risk] += 1

    def get_finding_hits(self, finding_id: str) -> int:
        with self._lock:
            entry = self._findings.get(finding_id)
            return entry.hits if entry else 0

    def get_failure_count(self, detector: str) -> int:
        with self._lock:
            entry = self._detectors.get(detector)
            return entry.failures if entry else 0

    def get_summary(self) -> dict:
        """Get a summary of all metrics."""
        with self._lock:
            uptime = datetime.now() - self._started
            return {
                "uptime_seconds": int(uptime.total_seconds()),
                "total_evaluations": self._total_evaluations,
                "risk_levels": dict(self._risk_levels),
                "detectors": {
                    name: {
                        "runs": entry.runs,
                        "failures": entry.failures,
                        "findings": entry.findings,
                        "last_failure": entry.last_failure,
                    }
                    for name, entry in self._detectors.items()
                },
                "top_findings": self._get_top_findings(10),
            }

    def _get_top_findings(self, n: int) -> list[dict]:
        """Get top N finding ids by hit count."""
        ordered = sorted(
            self._findings.items(),
            key=lambda x: (-x[1].hits, x[0]),
        )[:n]
        return [
            {"id": finding_id, "hits": entry.hits, "unique_targets": len(entry.targets)}
            for finding_id, entry in ordered
        ]

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._detectors.clear()
            self._findings.clear()
            self._risk_levels.clear()
            self._total_evaluations = 0
            self._started = datetime.now()
