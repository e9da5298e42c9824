"""Privacy detector engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .context import ScanContext
from .detector_amounts import detect_amount_reuse, detect_balance_traceability
from .detector_counterparty import detect_counterparty_reuse, detect_pda_reuse
from .detector_entities import detect_address_reuse, detect_known_entity_interaction
from .detector_fee_payer import detect_fee_payer_reuse
from .detector_fees import detect_priority_fee_fingerprinting
from .detector_identity import detect_identity_metadata
from .detector_instructions import detect_instruction_fingerprinting
from .detector_location import detect_location_inference
from .detector_memo import detect_memo_exposure
from .detector_signer import detect_signer_overlap
from .detector_staking import detect_staking_delegation
from .detector_timing import detect_timing_patterns
from .detector_token_accounts import detect_ata_linkage, detect_token_account_lifecycle
from .metrics import DetectionMetrics
from .models import Finding
from .rules import Detector, detector_name

logger = logging.getLogger(__name__)

# Linkage, then behavioral, then exposure.
DEFAULT_DETECTORS: tuple[Detector, ...] = (
    detect_fee_payer_reuse,
    detect_signer_overlap,
    detect_counterparty_reuse,
    detect_pda_reuse,
    detect_ata_linkage,
    detect_known_entity_interaction,
    detect_address_reuse,
    detect_timing_patterns,
    detect_priority_fee_fingerprinting,
    detect_instruction_fingerprinting,
    detect_staking_delegation,
    detect_location_inference,
    detect_amount_reuse,
    detect_balance_traceability,
    detect_memo_exposure,
    detect_identity_metadata,
    detect_token_account_lifecycle,
)


@dataclass(frozen=True)
class DetectorFailure:
    """A detector that raised or returned something other than a list of findings."""

    detector: str
    error: str


@dataclass(frozen=True)
class Evaluation:
    """Findings from one evaluation plus diagnostics for detectors that failed."""

    findings: tuple[Finding, ...]
    failures: tuple[DetectorFailure, ...] = ()


class PrivacyEvaluator:
    """Runs an ordered detector list over a scan context."""

    def __init__(
        self,
        detectors: Optional[Sequence[Detector]] = None,
        extra_detectors: Iterable[Detector] = (),
        disabled: Iterable[str] = (),
        metrics: Optional[DetectionMetrics] = None,
    ):
        base = tuple(DEFAULT_DETECTORS if detectors is None else detectors)
        disabled_names = {name.strip() for name in disabled if name and name.strip()}
        chosen = [d for d in base if detector_name(d) not in disabled_names]
        chosen.extend(extra_detectors)
        self._detectors: tuple[Detector, ...] = tuple(chosen)
        self.metrics = metrics or DetectionMetrics()

        unknown = disabled_names - {detector_name(d) for d in base}
        if unknown:
            logger.warning("Ignoring unknown disabled detectors: %s", sorted(unknown))
        logger.debug("Evaluator configured with %s detectors", len(self._detectors))

    @property
    def detectors(self) -> tuple[Detector, ...]:
        return self._detectors

    def evaluate(self, context: ScanContext) -> Evaluation:
        """Run every detector in order and concatenate their findings.

        A failing detector is logged and reported as a diagnostic; the
        remaining detectors still run.
        """
        findings: list[Finding] = []
        failures: list[DetectorFailure] = []

        for detector in self._detectors:
            name = detector_name(detector)
            try:
                result = detector(context)
            except Exception as exc:
                logger.warning("Detector %s failed for %s: %s", name, context.target, exc)
                failures.append(DetectorFailure(detector=name, error=f"{type(exc).__name__}: {exc}"))
                self.metrics.record_failure(name, str(exc))
                continue

            error = _contract_violation(result)
            if error:
                logger.warning("Detector %s returned invalid output for %s: %s", name, context.target, error)
                failures.append(DetectorFailure(detector=name, error=error))
                self.metrics.record_failure(name, error)
                continue

            findings.extend(result)
            self.metrics.record_run(name, [f.id for f in result], context.target)

        self.metrics.record_evaluation()
        if failures:
            logger.info("%s of %s detectors failed for %s", len(failures), len(self._detectors), context.target)
        return Evaluation(findings=tuple(findings), failures=tuple(failures))


def _contract_violation(result: object) -> Optional[str]:
    if not isinstance(result, list):
        return f"expected list of findings, got {type(result).__name__}"
    for item in result:
        if not isinstance(item, Finding):
            return f"expected Finding, got {type(item).__name__}"
    return None
