"""Tests for the compare_configs command line script."""

import json

import pytest

from scripts import compare_configs as cli


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli, "load_dotenv", lambda *args, **kwargs: None)
    monkeypatch.delenv("CONFIGDIFF_RULES_FILE", raising=False)


def test_identical_files_exit_zero(write_file, capsys):
    left = write_file("a.env", "A=1\n")
    right = write_file("b.env", "A=1\n")

    assert cli.main([left, right, "--fail-on-high"]) == cli.EXIT_OK
    assert "No risk findings" in capsys.readouterr().out


def test_high_finding_with_fail_on_high(write_file, capsys):
    left = write_file("a.env", "DEBUG=false\n")
    right = write_file("b.env", "DEBUG=true\n")

    assert cli.main([left, right]) == cli.EXIT_OK
    assert cli.main([left, right, "--fail-on-high"]) == cli.EXIT_HIGH
    out = capsys.readouterr().out
    assert "debug-true" not in out
    assert "DEBUG: Debug mode appears enabled" in out
    assert "[L1/R1]" in out


def test_json_output_is_redacted(write_file, capsys):
    left = write_file("left.json", '{"api_token": "abcdefghijklmnop"}')
    right = write_file("right.json", "{}")

    assert cli.main([left, right, "--json"]) == cli.EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data["meta"]["format"] == "json"
    assert data["removed"] == [{"key": "api_token", "value": "abcdefghijklmnop"}]
    assert data["redacted_values"]["api_token"]["value"]["redacted"] == "ab" + "•" * 10 + "mnop"


def test_show_values_masks_by_default(write_file, capsys):
    left = write_file("a.env", "PASSWORD=hunter2hunter2\n")
    right = write_file("b.env", "PASSWORD=correcthorsebattery\n")

    cli.main([left, right, "--show-values"])
    masked = capsys.readouterr().out
    cli.main([left, right, "--show-values", "--reveal"])
    revealed = capsys.readouterr().out

    assert "hunter2hunter2" not in masked
    assert "hunter2hunter2 → correcthorsebattery" in revealed


def test_validate_json_output(write_file, capsys):
    left = write_file("a.yaml", "a: 1\na: 2\n")
    right = write_file("b.yaml", "debug: true\n")

    assert cli.main([left, right, "--validate", "--json", "--fail-on-high"]) == cli.EXIT_HIGH
    data = json.loads(capsys.readouterr().out)
    assert data["totals"] == {"high": 1, "medium": 0, "low": 1}


def test_strict_yaml_validation(write_file, capsys):
    left = write_file("a.yaml", "a: 1\na: 2\n")
    right = write_file("b.yaml", "a: 1\n")

    cli.main([left, right, "--validate", "--strict"])

    assert "❌ failed" in capsys.readouterr().out


def test_missing_file_exits_two(write_file, tmp_path, capsys):
    right = write_file("b.env", "A=1\n")

    assert cli.main([str(tmp_path / "missing.env"), right]) == cli.EXIT_ERROR
    assert "Cannot read input" in capsys.readouterr().err


def test_broken_rule_file_exits_two(write_file):
    left = write_file("a.env", "A=1\n")
    right = write_file("b.env", "A=2\n")
    rules = write_file("rules.yaml", "- id: x\n  severity: nope\n  message: m\n")

    assert cli.main([left, right, "--rules", rules]) == cli.EXIT_ERROR


def test_format_flag_overrides_detection(write_file, capsys):
    left = write_file("left.txt", "a: 1\n")
    right = write_file("right.txt", "a: 2\n")

    cli.main([left, right, "--format", "yaml", "--json"])

    assert json.loads(capsys.readouterr().out)["changed"] == [{"key": "a", "from": "1", "to": "2"}]
