"""
Risk rule engine.

Evaluates a rule set against a diff (or, for validation, against the keys
present on one side) and produces a deduplicated, severity-ordered and
capped list of findings.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from configdiff.models import (
    DiffResult, IssueKind, ParsedConfig, RiskFinding, RuleEvaluation, Severity,
)
from .default_rules import DEFAULT_RULES
from .definitions import RiskRule

logger = logging.getLogger(__name__)

DEFAULT_MAX_FINDINGS = 500
DEFAULT_ADVISORY_THRESHOLD = 200

NOTE_NEW_VALUE = "matches new value"
NOTE_OLD_VALUE = "matches old value"

# Leaf names that mark a side as a production environment
_ENVIRONMENT_KEYS = {"env", "environment", "stage", "app_env", "appenv", "app_environment", "node_env"}

Fingerprint = Tuple[str, Optional[str], str, Optional[str]]


class FindingCollector:
    """
    Accumulates findings with fingerprint deduplication.

    ``result()`` orders by severity (stable, so insertion order is kept within
    a severity) and applies the cap. Sorting happens before truncation, so a
    high finding produced late is never lost to earlier medium/low ones.
    """

    def __init__(
        self,
        max_findings: int = DEFAULT_MAX_FINDINGS,
        advisory_threshold: int = DEFAULT_ADVISORY_THRESHOLD,
        production: bool = False,
    ):
        self.max_findings = max(1, max_findings)
        self.advisory_threshold = advisory_threshold
        self.production = production
        self._seen: Set[Fingerprint] = set()
        self._findings: List[RiskFinding] = []

    def __len__(self) -> int:
        return len(self._findings)

    def add(self, finding: RiskFinding) -> bool:
        fingerprint = (finding.rule_id, finding.context, finding.key, finding.note)
        if fingerprint in self._seen:
            return False
        self._seen.add(fingerprint)
        self._findings.append(finding)
        return True

    def push(self, rule: RiskRule, key: str, context: str, note: Optional[str] = None) -> bool:
        severity = rule.severity
        if self.production and rule.production_severity is not None:
            severity = rule.production_severity
        base = rule.render(key)
        message = f"{base} ({context}; {note})" if note else f"{base} ({context})"
        return self.add(RiskFinding(
            key=key,
            severity=severity,
            rule_id=rule.id,
            message=message,
            context=context,
            note=note,
        ))

    def result(self) -> RuleEvaluation:
        ordered = sorted(self._findings, key=lambda f: -f.severity.rank)
        warnings: List[str] = []

        if len(ordered) > self.max_findings:
            dropped = len(ordered) - self.max_findings
            logger.warning(f"Risk findings capped at {self.max_findings} ({dropped} dropped)")
            warnings.append(
                f"Risk findings capped at {self.max_findings}. "
                "Showing the most severe first; narrow the inputs to see the rest."
            )
            ordered = ordered[:self.max_findings]
        elif len(ordered) > self.advisory_threshold:
            warnings.append("Large number of risk findings. Consider filtering.")

        return RuleEvaluation(findings=tuple(ordered), warnings=tuple(warnings))


def _evaluate_changed(collector: FindingCollector, rule: RiskRule, key: str, old: str, new: str) -> None:
    if not rule.matches_key(key):
        return
    if rule.value_pattern is None:
        collector.push(rule, key, "changed")
        return
    if rule.matches_value(new):
        collector.push(rule, key, "changed", NOTE_NEW_VALUE)
    elif rule.matches_value(old):
        collector.push(rule, key, "changed", NOTE_OLD_VALUE)


def apply_rules(
    diff: DiffResult,
    rules: Sequence[RiskRule] = DEFAULT_RULES,
    max_findings: int = DEFAULT_MAX_FINDINGS,
    advisory_threshold: int = DEFAULT_ADVISORY_THRESHOLD,
    extra_findings: Iterable[RiskFinding] = (),
) -> RuleEvaluation:
    """
    Evaluate ``rules`` against the added / removed / changed entries of a diff.

    Added and removed entries match when the key pattern and the value
    pattern (if any) both match. For changed entries a value rule is checked
    against the new value first and falls back to the old value, so a single
    finding says which side tripped it.

    Args:
        diff: Diff to evaluate (unchanged entries are never evaluated)
        rules: Rule set; defaults to DEFAULT_RULES
        max_findings: Hard cap on returned findings
        advisory_threshold: Count above which an advisory warning is added
        extra_findings: Findings produced elsewhere (parse diagnostics) that
            take part in dedup, ordering and capping

    Returns:
        RuleEvaluation with ordered findings and cap/advisory warnings
    """
    collector = FindingCollector(max_findings=max_findings, advisory_threshold=advisory_threshold)
    for finding in extra_findings:
        collector.add(finding)

    for rule in rules:
        if "added" in rule.applies_to:
            for entry in diff.added:
                if rule.matches(entry.key, entry.value):
                    collector.push(rule, entry.key, "added")
        if "removed" in rule.applies_to:
            for entry in diff.removed:
                if rule.matches(entry.key, entry.value):
                    collector.push(rule, entry.key, "removed")
        if "changed" in rule.applies_to:
            for entry in diff.changed:
                _evaluate_changed(collector, rule, entry.key, entry.from_value, entry.to_value)

    logger.debug(f"Rule evaluation produced {len(collector)} finding(s) from {len(rules)} rule(s)")
    return collector.result()


def looks_like_production(values: Mapping[str, str]) -> bool:
    """True when an environment-ish leaf key (ENV, NODE_ENV, stage, ...) mentions prod."""
    for key, value in values.items():
        leaf = key.rsplit(".", 1)[-1].lower()
        if leaf in _ENVIRONMENT_KEYS and "prod" in str(value).lower():
            return True
    return False


def scan_values(
    values: Mapping[str, str],
    rules: Sequence[RiskRule] = DEFAULT_RULES,
    production: Optional[bool] = None,
    max_findings: int = DEFAULT_MAX_FINDINGS,
    advisory_threshold: int = DEFAULT_ADVISORY_THRESHOLD,
) -> RuleEvaluation:
    """
    Evaluate rules against every key present on one side (context "present").

    ``production`` defaults to ``looks_like_production(values)``; when set,
    rules with a production severity are escalated.
    """
    if production is None:
        production = looks_like_production(values)
    collector = FindingCollector(
        max_findings=max_findings, advisory_threshold=advisory_threshold, production=production,
    )
    for rule in rules:
        if "present" not in rule.applies_to:
            continue
        for key in sorted(values):
            if rule.matches(key, values[key]):
                collector.push(rule, key, "present")
    return collector.result()


def diagnostics_to_findings(parsed: ParsedConfig, label: str) -> List[RiskFinding]:
    """
    Surface parse issues and duplicate keys of one side as findings.

    Errors are high, warnings low and duplicates medium. ``label`` ("Left" /
    "Right") is prefixed to every message so the side is visible.
    """
    side = label.lower()
    findings: List[RiskFinding] = []

    for issue in parsed.issues:
        is_error = issue.kind is IssueKind.ERROR
        if not is_error and issue.code == "DUPLICATE_KEY":
            # Reported once from parsed.duplicates below
            continue
        findings.append(RiskFinding(
            key=f"{side}:line:{issue.line}",
            severity=Severity.HIGH if is_error else Severity.LOW,
            rule_id="parse-error" if is_error else "parse-warning",
            message=f"{label}: {issue.kind.value.upper()} on line {issue.line}: {issue.message}",
            context="parse",
            note=side,
        ))

    for dup in parsed.duplicates:
        where = f" (lines {', '.join(str(n) for n in dup.lines)})" if dup.lines else ""
        findings.append(RiskFinding(
            key=dup.key,
            severity=Severity.MEDIUM,
            rule_id="duplicate-key",
            message=f"{label}: key appears {dup.occurrences} times{where}; last value wins.",
            context="duplicate",
            note=side,
        ))

    return findings
