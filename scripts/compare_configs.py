#!/usr/bin/env python3
"""
Config Compare Utility Script

Compare (or validate) two env / JSON / YAML config files from the command line.

Usage:
    python scripts/compare_configs.py .env.staging .env.production
    python scripts/compare_configs.py app.prod.yaml app.stage.yaml --strict --json
    python scripts/compare_configs.py left.json right.json --validate --fail-on-high

Exit codes:
    0  success
    1  high-severity findings/issues with --fail-on-high
    2  usage, I/O, rule file or size-limit error
"""

import sys
import json
import logging
import argparse
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

from configdiff.config import Config, detect_format
from configdiff.line_resolver import resolve_finding_lines
from configdiff.logging_config import setup_logging
from configdiff.models import ConfigDiffError, Severity
from configdiff.parsers import ENV_PROFILES
from configdiff.pipeline import (
    CompareResult, ValidationReport, build_parse_options, compare_configs, validate_configs,
)
from configdiff.redaction import redact_for_display
from configdiff.rules import DEFAULT_RULES, load_rules

logger = logging.getLogger("configdiff.cli")

EXIT_OK = 0
EXIT_HIGH = 1
EXIT_ERROR = 2

SEVERITY_ICONS = {
    Severity.HIGH: "🔴",
    Severity.MEDIUM: "🟠",
    Severity.LOW: "🔵",
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare two config files and flag risky changes")
    parser.add_argument("left", help="Left (baseline) config file")
    parser.add_argument("right", help="Right (candidate) config file")
    parser.add_argument("--format", choices=["env", "json", "yaml"], default=None,
                        help="Config format (default: detected from the left file name)")
    parser.add_argument("--profile", choices=sorted(ENV_PROFILES), default=None,
                        help="Env parser profile (default: dotenv)")
    parser.add_argument("--strict", action="store_true", help="Treat duplicate YAML keys as errors")
    parser.add_argument("--array-mode", choices=["index", "stringify", "ignore"], default="index",
                        help="How JSON/YAML arrays are flattened")
    parser.add_argument("--expand", action="store_true", help="Expand $VAR / ${VAR} in env values")
    parser.add_argument("--rules", default=None, help="YAML rule file (default: CONFIGDIFF_RULES_FILE or built-in)")
    parser.add_argument("--validate", action="store_true", help="Validate each side instead of comparing")
    parser.add_argument("--show-values", action="store_true", help="List changed/added/removed values (redacted)")
    parser.add_argument("--reveal", action="store_true", help="With --show-values, print raw values")
    parser.add_argument("--fail-on-high", action="store_true", help="Exit 1 when high-severity results exist")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8-sig") as f:
        return f.read()


def _print_compare(result: CompareResult, args, left_text: str, right_text: str) -> None:
    diff = result.diff
    print(f"\n📄 {args.left} → {args.right} ({result.format.value})")
    print(f"   ~ changed: {len(diff.changed)}   + added: {len(diff.added)}   "
          f"- removed: {len(diff.removed)}   = unchanged: {len(diff.unchanged)}")

    for label, side in (("Left", result.left), ("Right", result.right)):
        for warning in side.warnings:
            print(f"   ⚠️  {label}: {warning}")

    if args.show_values:
        print("\n📋 Changes:")

        def show(key: str, value: str) -> str:
            return value if args.reveal else redact_for_display(key, value).redacted

        for entry in diff.changed:
            print(f"   ~ {entry.key}: {show(entry.key, entry.from_value)} → {show(entry.key, entry.to_value)}")
        for entry in diff.added:
            print(f"   + {entry.key}: {show(entry.key, entry.value)}")
        for entry in diff.removed:
            print(f"   - {entry.key}: {show(entry.key, entry.value)}")

    print(f"\n🔍 Findings ({len(result.findings)}):")
    if not result.findings:
        print("   ✅ No risk findings")
    profile = result.left.meta.profile
    for finding in result.findings:
        hint = resolve_finding_lines(finding, left_text, right_text, result.format.value, profile)
        where = "/".join(
            f"{side}{line}" for side, line in (("L", hint.left_line), ("R", hint.right_line)) if line
        )
        suffix = f"  [{where}]" if where else ""
        print(f"   {SEVERITY_ICONS[finding.severity]} {finding.severity.value.upper():<6} "
              f"{finding.key}: {finding.message}{suffix}")

    for warning in result.warnings:
        print(f"   ⚠️  {warning}")
    print()


def _print_validation(report: ValidationReport, args) -> None:
    for label, path, side in (("Left", args.left, report.left), ("Right", args.right, report.right)):
        status = "✅ ok" if side.ok else f"❌ failed: {side.error}"
        print(f"\n📄 {label}: {path} - {status} ({side.meta.get('parsed_keys', 0)} keys)")
        for issue in side.issues:
            line = f" (line {issue.line})" if issue.line else ""
            key = f"{issue.key}: " if issue.key else ""
            print(f"   {SEVERITY_ICONS[issue.severity]} {issue.severity.value.upper():<6} {key}{issue.message}{line}")
    totals = report.totals
    print(f"\n📊 Totals: {totals['high']} high, {totals['medium']} medium, {totals['low']} low\n")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING", stream=sys.stderr)

    config = Config()
    fmt = args.format or detect_format(args.left)

    try:
        left_text = _read(args.left)
        right_text = _read(args.right)
    except OSError as e:
        print(f"❌ Cannot read input: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        rules_file = args.rules or config.rules_file
        rules = load_rules(rules_file) if rules_file else DEFAULT_RULES

        options = build_parse_options(
            profile=args.profile,
            yaml_strict=args.strict,
            array_mode=args.array_mode,
            max_keys=config.max_keys,
            max_input_bytes=config.max_input_bytes,
            expand_variables=True if args.expand else None,
        )

        if args.validate:
            report = validate_configs(
                left_text, right_text, fmt, options, rules,
                max_findings=config.max_findings, advisory_threshold=config.advisory_findings,
            )
            if args.json:
                print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
            else:
                _print_validation(report, args)
            has_high = report.has_high
        else:
            result = compare_configs(
                left_text, right_text, fmt, options, rules,
                max_findings=config.max_findings, advisory_threshold=config.advisory_findings,
                redact=args.json and not args.reveal,
            )
            if args.json:
                print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
            else:
                _print_compare(result, args, left_text, right_text)
            has_high = result.has_high
    except ConfigDiffError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.fail_on_high and has_high:
        return EXIT_HIGH
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
