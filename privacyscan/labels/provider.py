"""Static label provider backed by a curated YAML table."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml

from ..analyzer.models import Label

logger = logging.getLogger(__name__)

DEFAULT_LABELS_PATH = Path(__file__).parent / "known_addresses.yaml"


class StaticLabelProvider:
    """Looks up curated labels for publicly known addresses."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_LABELS_PATH
        self.version: Optional[str] = None
        self._labels: dict[str, Label] = {}
        self.load()

    def load(self) -> int:
        """(Re)load the label table. Returns the number of labels loaded."""
        self._labels = {}
        if not self.path.exists():
            logger.warning("Labels file not found: %s", self.path)
            return 0

        try:
            with open(self.path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load labels file %s: %s", self.path, exc)
            return 0

        entries = data.get("labels") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logger.warning("Invalid labels file format: %s", self.path)
            return 0

        self.version = str(data.get("version")) if data.get("version") is not None else None
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed label entry: %r", entry)
                continue
            address, name, kind = entry.get("address"), entry.get("name"), entry.get("type")
            if not (address and name and kind):
                logger.warning("Skipping label without address/name/type: %r", entry)
                continue
            self._labels[str(address)] = Label(
                address=str(address),
                name=str(name),
                type=str(kind),
                description=entry.get("description"),
            )

        logger.debug("Loaded %s address labels from %s", len(self._labels), self.path)
        return len(self._labels)

    def lookup(self, address: str) -> Optional[Label]:
        return self._labels.get(address)

    def lookup_many(self, addresses: Iterable[str]) -> dict[str, Label]:
        """Labels for the known addresses; unknown addresses are omitted."""
        results = {}
        for address in addresses:
            label = self._labels.get(address)
            if label is not None:
                results[address] = label
        return results

    def all_labels(self) -> list[Label]:
        return [self._labels[address] for address in sorted(self._labels)]

    def __len__(self) -> int:
        return len(self._labels)
