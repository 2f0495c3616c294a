"""Tests for the core records."""

from configdiff.models import (
    ConfigFormat, DuplicateKey, IssueKind, ParseIssue, ParseMeta, ParsedConfig,
    RiskFinding, Severity, normalize_severity,
)


def test_severity_ordering():
    assert Severity.HIGH.rank > Severity.MEDIUM.rank > Severity.LOW.rank


def test_normalize_severity():
    assert normalize_severity("CRITICAL") is Severity.HIGH
    assert normalize_severity("warn") is Severity.MEDIUM
    assert normalize_severity("info") is Severity.LOW
    assert normalize_severity("whatever") is Severity.LOW
    assert normalize_severity(None) is Severity.LOW
    assert normalize_severity(Severity.MEDIUM) is Severity.MEDIUM


def test_parsed_config_summary():
    parsed = ParsedConfig(
        values={"A": "2"},
        duplicates=(DuplicateKey("A", 2, (1, 2)),),
        issues=(
            ParseIssue(3, IssueKind.WARNING, "odd line"),
            ParseIssue(4, IssueKind.ERROR, "bad line", code="EMPTY_KEY"),
        ),
        meta=ParseMeta(line_count=4, format=ConfigFormat.ENV, profile="dotenv"),
    )

    summary = parsed.side_summary()

    assert not parsed.ok
    assert summary["errors"] == [{"line": 4, "kind": "error", "message": "bad line", "code": "EMPTY_KEY"}]
    assert summary["duplicates"] == [{"key": "A", "occurrences": 2, "lines": [1, 2]}]
    assert summary["warnings"] == [
        "line 3: odd line",
        "Found 1 duplicate key(s). Last value wins.",
        "Found 1 parse error(s). Some lines were ignored.",
    ]
    assert summary["meta"] == {"line_count": 4, "format": "env", "profile": "dotenv"}


def test_finding_to_dict_omits_empty_fields():
    finding = RiskFinding("A", Severity.LOW, "r", "m")

    assert finding.to_dict() == {"key": "A", "severity": "low", "rule_id": "r", "message": "m"}
