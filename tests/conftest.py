"""Shared fixtures for the ConfigDiff test suite."""

import pytest

from configdiff.config import Config
from configdiff.rules import make_rule


@pytest.fixture
def flag_true_rule():
    """Value-only rule matching a literal ``true``."""
    return make_rule("flag-true", "high", "Flag is on.", value=r"^true$")


@pytest.fixture
def catch_all_rule():
    """Rule that matches every key, used to drive the finding cap."""
    return make_rule("catch-all", "high", template="Key '{key}' touched.")


@pytest.fixture
def test_config():
    """Config with explicit limits, independent of the caller's environment."""
    return Config(
        log_level="WARNING",
        cors_origins=["*"],
        max_keys=200_000,
        max_findings=500,
        advisory_findings=200,
        max_input_bytes=5 * 1024 * 1024,
        rules_file=None,
        sequencer_capacity=16,
    )


@pytest.fixture
def write_file(tmp_path):
    """Write ``content`` to ``tmp_path / name`` and return the path as a string."""
    def _write(name: str, content: str) -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return str(path)
    return _write
