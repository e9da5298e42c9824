"""Command-line entry point: scan context JSON in, privacy report JSON out."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .analyzer.context import ScanContext
from .analyzer.detector_engine import PrivacyEvaluator
from .config import load_config, validate_config
from .labels.provider import StaticLabelProvider
from .pipeline.scanner import attach_labels, scan

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.StreamHandler(sys.stderr),
    ],
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="privacyscan",
        description="Analyze a normalized Solana scan context for privacy risks.",
    )
    parser.add_argument("context", help="Path to a scan context JSON file, or - for stdin")
    parser.add_argument("-o", "--output", help="Write the report here instead of stdout")
    parser.add_argument("--labels", help="Label table (YAML) overriding the configured one")
    parser.add_argument("--no-labels", action="store_true", help="Skip label lookup entirely")
    parser.add_argument(
        "--disable",
        action="append",
        default=[],
        metavar="DETECTOR",
        help="Disable a detector by function name (repeatable)",
    )
    return parser


def _read_context(source: str) -> ScanContext:
    if source == "-":
        raw = sys.stdin.read()
    else:
        raw = Path(source).read_text()
    return ScanContext.from_dict(json.loads(raw))


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    if args.labels:
        config.labels_path = Path(args.labels)
    for name in args.disable:
        if name not in config.disabled_detectors:
            config.disabled_detectors.append(name)

    errors = validate_config(config)
    if errors:
        for error in errors:
            logger.error("Config error: %s", error)
        return 2
    logging.getLogger().setLevel(config.log_level)

    try:
        context = _read_context(args.context)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.error("Could not load scan context from %s: %s", args.context, exc)
        return 1

    if not args.no_labels:
        provider = StaticLabelProvider(config.labels_path)
        context = attach_labels(context, provider)

    evaluator = PrivacyEvaluator(disabled=config.disabled_detectors)
    report = scan(context, evaluator=evaluator)

    indent = config.json_indent or None
    output = json.dumps(report.to_dict(), indent=indent)
    if args.output:
        Path(args.output).write_text(output + "\n")
        logger.info("Report written to %s", args.output)
    else:
        sys.stdout.write(output + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
