"""Configuration management for privacyscan."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Runtime configuration."""

    # Label table (None means the bundled known_addresses.yaml)
    labels_path: Optional[Path] = None

    # Detector selection, by function name (override via config/heuristics.yaml)
    disabled_detectors: list[str] = field(default_factory=list)

    # Output
    log_level: str = "INFO"
    json_indent: int = 2

    # Paths
    config_dir: Path = field(default_factory=lambda: Path("./config"))


def _split_names(raw: str) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def _load_heuristics(config_dir: Path) -> dict:
    """Load detector overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to parse heuristics.yaml: %s", exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: expected a mapping, got %s", type(data).__name__)
        return {}

    overrides: dict = {}
    disabled = data.get("disabled_detectors")
    if isinstance(disabled, list):
        overrides["disabled_detectors"] = [str(name).strip() for name in disabled if str(name).strip()]
    elif disabled is not None:
        logger.warning("Ignoring disabled_detectors in heuristics.yaml: expected a list")

    labels_path = data.get("labels_path")
    if labels_path:
        overrides["labels_path"] = Path(str(labels_path))

    return overrides


def load_config() -> Config:
    """Load configuration from environment variables and heuristics.yaml."""
    load_dotenv()

    config_dir = Path(os.getenv("PRIVACYSCAN_CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    labels_env = os.getenv("PRIVACYSCAN_LABELS_PATH", "").strip()
    labels_path = Path(labels_env) if labels_env else heuristics.get("labels_path")

    # Environment and file lists are merged; either can disable a detector.
    disabled = list(heuristics.get("disabled_detectors", []))
    for name in _split_names(os.getenv("PRIVACYSCAN_DISABLED_DETECTORS", "")):
        if name not in disabled:
            disabled.append(name)

    try:
        json_indent = int(os.getenv("PRIVACYSCAN_JSON_INDENT", "2"))
    except ValueError:
        logger.warning("Invalid PRIVACYSCAN_JSON_INDENT, falling back to 2")
        json_indent = 2

    return Config(
        labels_path=labels_path,
        disabled_detectors=disabled,
        log_level=os.getenv("PRIVACYSCAN_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        json_indent=json_indent,
        config_dir=config_dir,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    from .analyzer.detector_engine import DEFAULT_DETECTORS
    from .analyzer.rules import detector_name

    errors: list[str] = []
    if config.log_level not in VALID_LOG_LEVELS:
        errors.append(f"PRIVACYSCAN_LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}")
    if config.json_indent < 0:
        errors.append("PRIVACYSCAN_JSON_INDENT must not be negative")
    if config.labels_path is not None and not Path(config.labels_path).exists():
        errors.append(f"Labels file not found: {config.labels_path}")

    known = {detector_name(d) for d in DEFAULT_DETECTORS}
    for name in config.disabled_detectors:
        if name not in known:
            errors.append(f"Unknown detector in disabled list: {name}")

    return errors
