"""
Compare / validate pipeline.

``compare_configs`` parses both sides, diffs them, evaluates the rule set
and (optionally) prepares redacted display values. ``validate_configs``
checks each side on its own. Both are synchronous, single-threaded and keep
no state between calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from configdiff.diff_engine import diff_entries
from configdiff.line_resolver import find_line_for_key
from configdiff.models import (
    ArrayMode, ConfigFormat, ConfigTooLargeError, DiffResult, IssueKind,
    ParsedConfig, RiskFinding, Severity,
)
from configdiff.parsers import DEFAULT_MAX_KEYS, ParseOptions, parse_config, resolve_env_options
from configdiff.redaction import RedactionOptions, redact_for_display
from configdiff.rules import (
    DEFAULT_ADVISORY_THRESHOLD, DEFAULT_MAX_FINDINGS, DEFAULT_RULES, RULESET_VERSION,
    RiskRule, apply_rules, diagnostics_to_findings, looks_like_production, scan_values,
)

logger = logging.getLogger(__name__)

SIDES = ("left", "right")


def build_parse_options(
    profile: Optional[str] = None,
    yaml_strict: bool = False,
    array_mode: str = "index",
    max_keys: int = DEFAULT_MAX_KEYS,
    max_input_bytes: Optional[int] = None,
    **env_overrides: Any,
) -> ParseOptions:
    """Assemble ParseOptions from flat values (HTTP payloads, CLI flags)."""
    return ParseOptions(
        env=resolve_env_options(profile, **env_overrides),
        array_mode=ArrayMode(array_mode),
        yaml_strict=yaml_strict,
        max_keys=max_keys,
        max_input_bytes=max_input_bytes,
    )


# ---------------------------------------------------------------------------
# Compare
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompareResult:
    format: ConfigFormat
    diff: DiffResult
    findings: Tuple[RiskFinding, ...]
    warnings: Tuple[str, ...]
    left: ParsedConfig
    right: ParsedConfig
    redacted_values: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None

    @property
    def has_high(self) -> bool:
        return any(f.severity is Severity.HIGH for f in self.findings)

    def to_dict(self) -> Dict[str, Any]:
        out = self.diff.to_dict()
        out["findings"] = [f.to_dict() for f in self.findings]
        out["warnings"] = list(self.warnings)
        out["left"] = self.left.side_summary()
        out["right"] = self.right.side_summary()
        out["meta"] = {
            "format": self.format.value,
            "profile": self.left.meta.profile,
            "ruleset_version": RULESET_VERSION,
        }
        if self.redacted_values is not None:
            out["redacted_values"] = self.redacted_values
        return out


def _redacted_values(
    diff: DiffResult, sensitive_only: bool, options: Optional[RedactionOptions],
) -> Dict[str, Dict[str, Dict[str, Any]]]:
    def show(key: str, value: str) -> Dict[str, Any]:
        return redact_for_display(key, value, sensitive_only=sensitive_only, options=options).to_dict()

    out: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for entry in diff.changed:
        out[entry.key] = {"from": show(entry.key, entry.from_value), "to": show(entry.key, entry.to_value)}
    for entry in diff.added + diff.removed:
        out[entry.key] = {"value": show(entry.key, entry.value)}
    return out


def compare_configs(
    left_text: str,
    right_text: str,
    fmt: str = "env",
    options: Optional[ParseOptions] = None,
    rules: Sequence[RiskRule] = DEFAULT_RULES,
    max_findings: int = DEFAULT_MAX_FINDINGS,
    advisory_threshold: int = DEFAULT_ADVISORY_THRESHOLD,
    redact: bool = False,
    sensitive_only: bool = False,
    redaction: Optional[RedactionOptions] = None,
) -> CompareResult:
    """
    Compare two config texts of the same format.

    Args:
        left_text: Baseline text
        right_text: Candidate text
        fmt: env / json / yaml
        options: Parse options shared by both sides
        rules: Rule set to evaluate; defaults to DEFAULT_RULES
        max_findings: Finding cap
        advisory_threshold: Finding count above which an advisory warning is added
        redact: Build ``redacted_values`` for added / removed / changed keys
        sensitive_only: When redacting, only mask keys that look sensitive
        redaction: Mask options

    Returns:
        CompareResult

    Raises:
        ConfigTooLargeError: either side exceeds the input or key cap
    """
    fmt = ConfigFormat(fmt)
    opts = options or ParseOptions()

    left = parse_config(left_text, fmt, opts)
    right = parse_config(right_text, fmt, opts)

    diff = diff_entries(left.values, right.values)
    diagnostics = diagnostics_to_findings(left, "Left") + diagnostics_to_findings(right, "Right")
    evaluation = apply_rules(
        diff,
        rules,
        max_findings=max_findings,
        advisory_threshold=advisory_threshold,
        extra_findings=diagnostics,
    )

    redacted = _redacted_values(diff, sensitive_only, redaction) if redact else None

    logger.info(
        f"Compared {fmt.value}: {len(diff.added)} added, {len(diff.removed)} removed, "
        f"{len(diff.changed)} changed, {len(diff.unchanged)} unchanged, "
        f"{len(evaluation.findings)} finding(s)"
    )
    return CompareResult(
        format=fmt,
        diff=diff,
        findings=evaluation.findings,
        warnings=evaluation.warnings,
        left=left,
        right=right,
        redacted_values=redacted,
    )


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationIssue:
    side: str
    severity: Severity
    message: str
    key: Optional[str] = None
    line: Optional[int] = None
    rule_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"side": self.side, "severity": self.severity.value, "message": self.message}
        if self.key is not None:
            out["key"] = self.key
        if self.line is not None:
            out["line"] = self.line
        if self.rule_id is not None:
            out["rule_id"] = self.rule_id
        return out


@dataclass(frozen=True)
class SideValidation:
    ok: bool
    issues: Tuple[ValidationIssue, ...]
    meta: Dict[str, Any]
    error: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ok": self.ok,
            "issues": [issue.to_dict() for issue in self.issues],
            "meta": dict(self.meta),
        }
        if self.error is not None:
            out["error"] = self.error
        if self.warnings:
            out["warnings"] = list(self.warnings)
        return out


@dataclass(frozen=True)
class ValidationReport:
    left: SideValidation
    right: SideValidation
    totals: Dict[str, int] = field(default_factory=dict)

    @property
    def has_high(self) -> bool:
        return self.totals.get(Severity.HIGH.value, 0) > 0

    def to_dict(self) -> Dict[str, Any]:
        return {"left": self.left.to_dict(), "right": self.right.to_dict(), "totals": dict(self.totals)}


def _side_meta(fmt: ConfigFormat, opts: ParseOptions, parsed_keys: int, line_count: int) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"format": fmt.value, "parsed_keys": parsed_keys, "line_count": line_count}
    if fmt is ConfigFormat.ENV:
        meta["profile"] = opts.env.profile
    return meta


def _parse_issues(side: str, parsed: ParsedConfig) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    for issue in parsed.issues:
        if issue.kind is IssueKind.ERROR:
            issues.append(ValidationIssue(side, Severity.HIGH, issue.message, line=issue.line))
        elif issue.code != "DUPLICATE_KEY":
            # Duplicate warnings are reported from parsed.duplicates below
            issues.append(ValidationIssue(side, Severity.MEDIUM, issue.message, line=issue.line))
    return issues


def _duplicate_issues(side: str, parsed: ParsedConfig) -> List[ValidationIssue]:
    issues = []
    for dup in parsed.duplicates:
        line = dup.lines[1] if len(dup.lines) > 1 else None
        where = f", line at {line}" if line is not None else ""
        issues.append(ValidationIssue(
            side,
            Severity.LOW,
            f"Duplicate key '{dup.key}' ({dup.occurrences} occurrences) - last value overrides earlier{where}",
            key=dup.key,
            line=line,
            rule_id="duplicate-key",
        ))
    return issues


def validate_side(
    side: str,
    text: str,
    fmt: str = "env",
    options: Optional[ParseOptions] = None,
    rules: Sequence[RiskRule] = DEFAULT_RULES,
    max_findings: int = DEFAULT_MAX_FINDINGS,
    advisory_threshold: int = DEFAULT_ADVISORY_THRESHOLD,
) -> SideValidation:
    """
    Validate one side on its own.

    A side is ``ok: false`` only on a hard failure (malformed JSON/YAML,
    strict-mode YAML duplicates, oversized input). Env files never fail
    hard; their bad lines become issues.
    """
    fmt = ConfigFormat(fmt)
    opts = options or ParseOptions()
    text = text or ""

    if not text.strip():
        return SideValidation(ok=True, issues=(), meta=_side_meta(fmt, opts, 0, 0))

    try:
        parsed = parse_config(text, fmt, opts)
    except ConfigTooLargeError as exc:
        logger.warning(f"Validate {side}: {exc}")
        message = str(exc)
        return SideValidation(
            ok=False,
            issues=(ValidationIssue(side, Severity.HIGH, message),),
            meta=_side_meta(fmt, opts, 0, 0),
            error=message,
        )

    meta = _side_meta(fmt, opts, len(parsed.values), parsed.meta.line_count)
    hard_failure = fmt is not ConfigFormat.ENV and not parsed.ok
    if hard_failure:
        errors = parsed.errors
        return SideValidation(
            ok=False,
            issues=tuple(ValidationIssue(side, Severity.HIGH, e.message, line=e.line) for e in errors),
            meta=meta,
            error=errors[0].message if errors else None,
        )

    issues = _parse_issues(side, parsed) + _duplicate_issues(side, parsed)

    production = looks_like_production(parsed.values)
    evaluation = scan_values(
        parsed.values,
        rules,
        production=production,
        max_findings=max_findings,
        advisory_threshold=advisory_threshold,
    )
    for finding in evaluation.findings:
        issues.append(ValidationIssue(
            side,
            finding.severity,
            finding.message,
            key=finding.key,
            line=find_line_for_key(finding.key, text, fmt.value, opts.env.profile),
            rule_id=finding.rule_id,
        ))

    logger.debug(
        f"Validated {side} ({fmt.value}): {len(parsed.values)} keys, {len(issues)} issue(s)"
        f"{', production-like' if production else ''}"
    )
    return SideValidation(ok=True, issues=tuple(issues), meta=meta, warnings=evaluation.warnings)


def validate_configs(
    left_text: str,
    right_text: str,
    fmt: str = "env",
    options: Optional[ParseOptions] = None,
    rules: Sequence[RiskRule] = DEFAULT_RULES,
    max_findings: int = DEFAULT_MAX_FINDINGS,
    advisory_threshold: int = DEFAULT_ADVISORY_THRESHOLD,
) -> ValidationReport:
    """Validate both sides independently and total the issues by severity."""
    results = [
        validate_side(side, text, fmt, options, rules, max_findings, advisory_threshold)
        for side, text in zip(SIDES, (left_text, right_text))
    ]

    totals = {severity.value: 0 for severity in Severity}
    for result in results:
        for issue in result.issues:
            totals[issue.severity.value] += 1

    logger.info(
        f"Validated {ConfigFormat(fmt).value}: "
        + ", ".join(f"{count} {name}" for name, count in totals.items())
    )
    return ValidationReport(left=results[0], right=results[1], totals=totals)
