"""End-to-end tests for compare_configs / validate_configs."""

import pytest

from configdiff.models import ConfigTooLargeError, Severity
from configdiff.pipeline import build_parse_options, compare_configs, validate_configs, validate_side
from configdiff.rules import RULESET_VERSION


class TestCompare:

    def test_plain_change_has_no_findings(self):
        result = compare_configs("A=1\nB=2\n", "A=1\nB=3\nC=4\n")

        assert [e.key for e in result.diff.changed] == ["B"]
        assert [e.key for e in result.diff.added] == ["C"]
        assert result.findings == ()
        assert not result.has_high

    def test_debug_flip_is_flagged(self):
        result = compare_configs("DEBUG=false\n", "DEBUG=true\n")

        assert [(f.rule_id, f.severity) for f in result.findings] == [("debug-true", Severity.HIGH)]
        assert result.has_high

    def test_json_nested_paths(self):
        result = compare_configs('{"app": {"debug": false}}', '{"app": {"debug": true}}', fmt="json")

        assert result.diff.changed[0].key == "app.debug"
        assert result.findings[0].rule_id == "debug-true"
        assert result.findings[0].note == "matches new value"

    def test_duplicate_keys_become_findings(self):
        result = compare_configs("A=1\nA=2\n", "A=2\n")

        assert result.diff.unchanged[0].key == "A"
        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.rule_id == "duplicate-key"
        assert finding.severity is Severity.MEDIUM
        assert finding.message.startswith("Left:")

    @pytest.mark.parametrize("fmt, left", [
        ("json", '{"a": 1, "a": 2}'),
        ("yaml", "a: 1\na: 2\n"),
    ])
    def test_structured_duplicates_become_one_finding(self, fmt, left):
        result = compare_configs(left, left, fmt=fmt)

        assert [(f.rule_id, f.severity) for f in result.findings] == [
            ("duplicate-key", Severity.MEDIUM),
            ("duplicate-key", Severity.MEDIUM),
        ]
        assert [f.note for f in result.findings] == ["left", "right"]

    def test_parse_errors_become_findings(self):
        result = compare_configs("A=1\n", '=oops\nA=1\n')

        assert [(f.rule_id, f.key) for f in result.findings] == [("parse-error", "right:line:1")]

    def test_redacted_values(self):
        result = compare_configs("API_TOKEN=abcdefghijklmnop\n", "", redact=True)

        assert result.redacted_values == {
            "API_TOKEN": {"value": {"original_length": 16, "redacted": "ab" + "•" * 10 + "mnop"}},
        }

    def test_sensitive_only_redaction(self):
        result = compare_configs("HOST=a.example\n", "HOST=b.example\n", redact=True, sensitive_only=True)

        assert result.redacted_values["HOST"]["to"]["redacted"] == "b.example"

    def test_no_redaction_by_default(self):
        assert compare_configs("A=1\n", "A=2\n").redacted_values is None

    def test_to_dict_shape(self):
        data = compare_configs("A=1\n", "A=2\n").to_dict()

        assert set(data) == {"added", "removed", "changed", "unchanged", "findings", "warnings", "left", "right", "meta"}
        assert data["meta"] == {"format": "env", "profile": "dotenv", "ruleset_version": RULESET_VERSION}
        assert data["changed"] == [{"key": "A", "from": "1", "to": "2"}]
        assert data["left"]["meta"]["format"] == "env"

    def test_input_too_large(self):
        options = build_parse_options(max_input_bytes=10)

        with pytest.raises(ConfigTooLargeError):
            compare_configs("A=1\n", "LONG_KEY=0123456789\n", options=options)

    def test_custom_rules(self, flag_true_rule):
        result = compare_configs("X=false\n", "X=true\n", rules=[flag_true_rule])

        assert [f.rule_id for f in result.findings] == ["flag-true"]

    def test_compose_profile(self):
        options = build_parse_options("compose")

        result = compare_configs("export A=1\n", "export A=1\n", options=options)

        assert result.left.meta.profile == "compose"
        assert [f.rule_id for f in result.findings] == ["parse-warning", "parse-warning"]


class TestValidate:

    def test_env_side_risks(self):
        report = validate_configs("JWT_SECRET=abc\nDEBUG=true\nCORS_ORIGINS=*\n", "")

        assert report.left.ok
        assert report.totals == {"high": 3, "medium": 0, "low": 0}
        assert report.has_high
        rule_lines = {issue.rule_id: issue.line for issue in report.left.issues}
        assert rule_lines == {"secret-present": 1, "debug-true": 2, "cors-wildcard": 3}
        assert report.left.meta["parsed_keys"] == 3
        assert report.left.meta["profile"] == "dotenv"

    def test_production_escalation(self):
        side = validate_side("right", "APP_ENV=production\nAPI_URL=http://localhost:3000\n")

        severities = {issue.rule_id: issue.severity for issue in side.issues}
        assert severities == {"localhost-in-value": Severity.HIGH, "http-url": Severity.HIGH}

    def test_empty_side_is_ok(self):
        side = validate_side("left", "   \n")

        assert side.ok
        assert side.issues == ()
        assert side.meta["parsed_keys"] == 0

    def test_env_bad_line_is_medium_but_ok(self):
        side = validate_side("left", "bad line\nA=1\n")

        assert side.ok
        assert [(i.severity, i.line) for i in side.issues] == [(Severity.MEDIUM, 1)]

    def test_invalid_json_side(self):
        report = validate_configs('{"a": ', '{"a": 1}', fmt="json")

        assert not report.left.ok
        assert report.left.error.startswith("Invalid JSON")
        assert report.right.ok
        assert report.totals["high"] == 1

    def test_non_object_json_root(self):
        side = validate_side("left", "[1, 2]", fmt="json")

        assert side.ok
        assert [(i.severity, i.message) for i in side.issues] == [
            (Severity.MEDIUM, "JSON root is a array (usually you want an object)"),
        ]

    def test_yaml_duplicate_is_low(self):
        side = validate_side("left", "a: 1\na: 2\n", fmt="yaml")

        assert len(side.issues) == 1
        issue = side.issues[0]
        assert issue.severity is Severity.LOW
        assert issue.rule_id == "duplicate-key"
        assert issue.line == 2
        assert issue.message == "Duplicate key 'a' (2 occurrences) - last value overrides earlier, line at 2"

    def test_json_duplicate_is_reported_once_as_low(self):
        report = validate_configs('{"a": 1, "a": 2}', "", fmt="json")

        issues = [i for i in report.left.issues if "Duplicate key 'a'" in i.message]
        assert len(issues) == 1
        assert issues[0].severity is Severity.LOW
        assert issues[0].rule_id == "duplicate-key"
        assert report.totals == {"high": 0, "medium": 0, "low": 1}

    def test_strict_yaml_duplicate_is_hard_failure(self):
        options = build_parse_options(yaml_strict=True)

        side = validate_side("left", "a: 1\na: 2\n", fmt="yaml", options=options)

        assert not side.ok
        assert "line at 2" in side.error

    def test_key_cap_fails_the_side(self):
        options = build_parse_options(max_keys=2)

        side = validate_side("left", '{"a": 1, "b": 2, "c": 3}', fmt="json", options=options)

        assert not side.ok
        assert "too large" in side.error
        assert side.issues[0].severity is Severity.HIGH

    def test_report_to_dict(self):
        data = validate_configs("A=1\n", "B=2\n").to_dict()

        assert data["left"]["ok"] is True
        assert data["totals"] == {"high": 0, "medium": 0, "low": 0}
