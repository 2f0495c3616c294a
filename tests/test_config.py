"""Tests for environment-driven configuration."""

import pytest

from configdiff.config import MAX_KEYS_CEILING, Config, detect_format


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PORT", "LOG_LEVEL", "CONFIGDIFF_CORS_ORIGINS", "CONFIGDIFF_MAX_KEYS",
        "CONFIGDIFF_MAX_FINDINGS", "CONFIGDIFF_ADVISORY_FINDINGS", "CONFIGDIFF_RULES_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Config()

    assert config.port == 3000
    assert config.max_findings == 500
    assert config.advisory_findings == 200
    assert config.cors_origins == ["*"]
    assert config.rules_file is None
    config.validate()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("CONFIGDIFF_CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("CONFIGDIFF_MAX_KEYS", "5000000")

    config = Config()

    assert config.port == 8080
    assert config.cors_origins == ["https://a.example", "https://b.example"]
    assert config.max_keys == MAX_KEYS_CEILING


def test_non_integer_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("PORT", "abc")

    assert Config().port == 3000


def test_validate_rejects_bad_limits():
    with pytest.raises(ValueError, match="advisory_findings"):
        Config(max_findings=100, advisory_findings=100).validate()
    with pytest.raises(ValueError, match="port"):
        Config(port=0).validate()


def test_validate_rejects_missing_rules_file(tmp_path):
    with pytest.raises(ValueError, match="rules_file"):
        Config(rules_file=str(tmp_path / "absent.yaml")).validate()


@pytest.mark.parametrize("name, expected", [
    (".env", "env"),
    (".env.production", "env"),
    ("prod.env", "env"),
    ("config/app.json", "json"),
    ("app.yml", "yaml"),
    ("app.YAML", "yaml"),
    ("notes.txt", "env"),
])
def test_detect_format(name, expected):
    assert detect_format(name) == expected


def test_key_ceiling_is_shared_with_flattening():
    from configdiff.parsers import flatten

    assert MAX_KEYS_CEILING is flatten.MAX_KEYS_CEILING
