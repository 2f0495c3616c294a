"""Tests for logging setup."""

import io
import logging
import sys

import pytest

from configdiff.logging_config import get_component_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    monkeypatch.delenv("CONFIGDIFF_LOG_LEVEL", raising=False)
    yield
    logging.basicConfig(force=True, handlers=[logging.NullHandler()])


def test_setup_logging_writes_to_stream():
    stream = io.StringIO()
    setup_logging("WARNING", stream=stream)

    get_component_logger("pipeline").warning("capped")
    get_component_logger("pipeline").info("hidden")

    output = stream.getvalue()
    assert "| WARNING  | configdiff.pipeline  | capped" in output
    assert "hidden" not in output


def test_component_level_override(monkeypatch):
    monkeypatch.setenv("CONFIGDIFF_LOG_LEVEL", "DEBUG")
    setup_logging("WARNING", stream=io.StringIO())

    assert logging.getLogger("configdiff.rules").level == logging.DEBUG
    assert logging.getLogger("uvicorn.access").level == logging.WARNING


def test_component_logger_name():
    assert get_component_logger("sequencing").name == "configdiff.sequencing"


class _TerminalStream(io.StringIO):
    def isatty(self):
        return True


def test_colors_follow_the_handler_stream(monkeypatch):
    monkeypatch.setattr(sys, "stdout", io.StringIO())
    terminal = _TerminalStream()
    setup_logging("INFO", stream=terminal)

    get_component_logger("api").warning("colored")

    assert "\033[33m" in terminal.getvalue()


def test_no_colors_when_handler_stream_is_not_a_terminal(monkeypatch):
    monkeypatch.setattr(sys, "stdout", _TerminalStream())
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)

    get_component_logger("api").warning("plain")

    assert "\033[" not in stream.getvalue()
