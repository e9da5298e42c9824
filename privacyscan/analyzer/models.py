"""Detector data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..constants import Severity


@dataclass(frozen=True)
class Label:
    """A curated descriptor for a publicly known address."""

    address: str
    name: str
    type: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"address": self.address, "name": self.name, "type": self.type}
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class Evidence:
    """One concrete observation supporting a finding."""

    description: str
    severity: Severity
    reference: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"description": self.description, "severity": str(self.severity)}
        if self.reference is not None:
            data["reference"] = self.reference
        return data


@dataclass(frozen=True)
class Finding:
    """A single privacy risk instance emitted by a detector."""

    id: str
    name: str
    severity: Severity
    confidence: float
    category: str
    reason: str
    impact: str
    mitigation: str
    evidence: tuple[Evidence, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if isinstance(self.category, Enum):
            object.__setattr__(self, "category", self.category.value)
        # Accept lists from detectors but store an immutable tuple.
        if not isinstance(self.evidence, tuple):
            object.__setattr__(self, "evidence", tuple(self.evidence))
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range for {self.id}: {self.confidence}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "severity": str(self.severity),
            "confidence": self.confidence,
            "category": self.category,
            "reason": self.reason,
            "impact": self.impact,
            "mitigation": self.mitigation,
            "evidence": [item.to_dict() for item in self.evidence],
        }
