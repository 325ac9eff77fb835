"""
Command line entry point.

    python -m alert_sentry process alerts.json
    python -m alert_sentry process alerts.json --window 120 --json
    python -m alert_sentry rules --rules-file rules.yaml
"""

import argparse
import json
import sys
from typing import List, Optional

from .alerts.rules import load_rules_from_file
from .config import EngineConfig
from .errors import AlertSentryError
from .logging_config import get_logger, setup_logging
from .pipeline import ProcessingPipeline

logger = get_logger(__name__)


def _read_batch(path: str) -> list:
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

    if isinstance(data, dict) and "alerts" in data:
        data = data["alerts"]
    if not isinstance(data, list):
        raise ValueError("Input must be a JSON array of alerts or an object with an 'alerts' array")
    return data


def _build_config(args) -> EngineConfig:
    config = EngineConfig.from_env()
    overrides = {}
    if getattr(args, "window", None) is not None:
        overrides["deduplication_window"] = args.window
    if getattr(args, "rules_file", None):
        overrides["suppression_rules"] = load_rules_from_file(args.rules_file)
    if getattr(args, "keywords", None):
        overrides["critical_keywords"] = frozenset(k.strip() for k in args.keywords.split(",") if k.strip())
    return config.with_overrides(**overrides) if overrides else config


def cmd_process(args) -> int:
    batch = _read_batch(args.input)
    pipeline = ProcessingPipeline(_build_config(args))
    result = pipeline.process_alerts(batch)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return 0

    metrics = result.metrics
    print(f"Received:   {result.original_count}")
    print(f"Duplicates: {metrics.duplicates}")
    print(f"Suppressed: {metrics.suppressed}")
    print(f"Escalated:  {len(result.processed_alerts)}")
    print(f"Reduction:  {result.reduction_percentage}%")
    for alert in result.processed_alerts:
        print(f"  [{alert.get('severity') or '?'}] {alert.get('type') or 'UNKNOWN'}: {alert.get('message') or ''}")
    return 0


def cmd_rules(args) -> int:
    config = _build_config(args)
    for position, rule in enumerate(config.suppression_rules, 1):
        print(f"{position:2d}. {rule.name} - {rule.reason}")
    print(f"Critical keywords: {', '.join(sorted(config.critical_keywords))}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="alert-sentry", description="Alert deduplication and noise suppression")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    parser.add_argument("--log-format", choices=["console", "json"], default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="Process a JSON batch of alerts")
    process.add_argument("input", help="JSON file, or - for stdin")
    process.add_argument("--window", type=float, help="Deduplication window in seconds")
    process.add_argument("--rules-file", help="YAML suppression rule definitions")
    process.add_argument("--keywords", help="Comma separated critical keywords")
    process.add_argument("--json", action="store_true", help="Print the full result as JSON")
    process.set_defaults(func=cmd_process)

    rules = subparsers.add_parser("rules", help="List the active suppression rules")
    rules.add_argument("--rules-file", help="YAML suppression rule definitions")
    rules.set_defaults(func=cmd_rules)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=args.log_level, fmt=args.log_format)

    try:
        return args.func(args)
    except (AlertSentryError, OSError, ValueError) as e:
        logger.error(f"[CLI] {e}")
        return 1
