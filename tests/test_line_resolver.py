"""Tests for best-effort line lookup."""

import pytest

from configdiff.line_resolver import (
    extract_line_range,
    find_line_for_key,
    resolve_finding_lines,
    resolve_line,
    resolve_line_range,
)
from configdiff.models import RiskFinding, Severity


@pytest.mark.parametrize("record, expected", [
    ({"line": 7}, (7, 7)),
    ({"loc": {"line": 3}}, (3, 3)),
    ({"location": {"line": 5}}, (5, 5)),
    ({"key": "line 3-7"}, (3, 7)),
    ({"key": "left:line:12"}, (12, 12)),
    ({"path": "R12"}, (12, 12)),
    ({"message": "Duplicate key 'a' line at 3, again on line 9"}, (9, 9)),
    ({"message": "see L4-6"}, (4, 6)),
    ({"message": "range line 8-2"}, (8, 8)),
    ({"message": "nothing useful"}, None),
    ({"line": 0}, None),
    ({"line": True}, None),
])
def test_extract_line_range(record, expected):
    assert extract_line_range(record) == expected


def test_direct_field_wins_over_message():
    assert extract_line_range({"line": 2, "message": "line 9"}) == (2, 2)


def test_find_line_for_env_key():
    text = "# A=0\nB=1\nexport A=2\n"

    assert find_line_for_key("A", text, "env") == 3
    assert find_line_for_key("A", text, "env", "compose") is None
    assert find_line_for_key("missing", text, "env") is None


def test_find_line_for_yaml_and_json_leaf():
    yaml_text = "app:\n  name: x\n  debug: true\n"
    json_text = '{\n  "app": {\n    "debug": true\n  }\n}'

    assert find_line_for_key("app.debug", yaml_text, "yaml") == 3
    assert find_line_for_key("app.debug", json_text, "json") == 3
    assert find_line_for_key("items[0]", "items:\n  - a\n", "yaml") == 1


def test_resolve_line_falls_back_to_source_scan():
    record = {"key": "DEBUG", "message": "Debug mode appears enabled."}

    assert resolve_line_range(record, "A=1\nDEBUG=true\n") == (2, 2)
    assert resolve_line(record, "A=1\n") is None


def test_resolve_line_accepts_objects():
    finding = RiskFinding("DEBUG", Severity.HIGH, "debug-true", "Debug on")

    assert resolve_line(finding, "DEBUG=1\n") == 1


def test_finding_present_on_both_sides():
    finding = {"key": "DEBUG", "message": "Debug mode appears enabled. (changed; matches new value)"}

    hint = resolve_finding_lines(finding, "A=1\nDEBUG=false\n", "DEBUG=true\n")

    assert (hint.left_line, hint.right_line) == (2, 1)


def test_finding_naming_one_side_only_reports_that_side():
    finding = {"key": "A", "message": "Left: key appears 2 times (lines 2, 3); last value wins."}

    hint = resolve_finding_lines(finding, "X=1\nA=1\nA=2\n", "A=3\n")

    assert (hint.left_line, hint.right_line) == (2, None)


def test_parse_finding_uses_line_from_key():
    finding = {"key": "right:line:4", "message": "Right: WARNING on line 4: Missing '='"}

    hint = resolve_finding_lines(finding, "", "A=1\nB=2\nC=3\nbad\n")

    assert hint.to_dict() == {"left_line": None, "right_line": 4}


def test_explicit_line_attaches_to_side_that_has_the_key():
    finding = {"key": "NEW", "line": 5, "message": "Something about NEW"}

    hint = resolve_finding_lines(finding, "A=1\n", "A=1\nNEW=1\n")

    assert (hint.left_line, hint.right_line) == (None, 5)
