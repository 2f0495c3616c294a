"""Configuration management for the ConfigDiff service."""

import os
import logging
from typing import List, Optional
from dataclasses import dataclass, field
from pathlib import Path

from configdiff.parsers.flatten import MAX_KEYS_CEILING

logger = logging.getLogger(__name__)

# Supported input formats and the file extensions they are sniffed from
FORMAT_EXTENSIONS = {
    ".env": "env",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}; using {default}")
        return default


def _list_env(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def detect_format(filename: str, default: str = "env") -> str:
    """
    Guess the config format from a file name.

    ``.env``-style names (``.env``, ``.env.production``, ``prod.env``) map to env.
    """
    name = Path(filename).name.lower()
    if name.startswith(".env") or name.endswith(".env"):
        return "env"
    return FORMAT_EXTENSIONS.get(Path(name).suffix, default)


@dataclass
class Config:
    """Central configuration for the pipeline, the API server and the CLI."""

    # Server
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _int_env("PORT", 3000))
    cors_origins: List[str] = field(default_factory=lambda: _list_env("CONFIGDIFF_CORS_ORIGINS", "*"))

    # Pipeline limits
    max_keys: int = field(default_factory=lambda: min(_int_env("CONFIGDIFF_MAX_KEYS", 200_000), MAX_KEYS_CEILING))
    max_findings: int = field(default_factory=lambda: _int_env("CONFIGDIFF_MAX_FINDINGS", 500))
    advisory_findings: int = field(default_factory=lambda: _int_env("CONFIGDIFF_ADVISORY_FINDINGS", 200))
    max_input_bytes: int = field(default_factory=lambda: _int_env("CONFIGDIFF_MAX_INPUT_BYTES", 5 * 1024 * 1024))

    # Rules
    rules_file: Optional[str] = field(default_factory=lambda: os.getenv("CONFIGDIFF_RULES_FILE") or None)

    # Request sequencing
    sequencer_capacity: int = field(default_factory=lambda: _int_env("CONFIGDIFF_SEQUENCER_CAPACITY", 1024))

    def validate(self) -> None:
        """Validate configuration and raise errors for invalid values."""
        invalid = [
            name for name, value in (
                ("port", self.port),
                ("max_keys", self.max_keys),
                ("max_findings", self.max_findings),
                ("advisory_findings", self.advisory_findings),
                ("max_input_bytes", self.max_input_bytes),
                ("sequencer_capacity", self.sequencer_capacity),
            )
            if value <= 0
        ]
        if self.advisory_findings >= self.max_findings:
            invalid.append("advisory_findings (must be below max_findings)")
        if self.rules_file and not Path(self.rules_file).is_file():
            invalid.append(f"rules_file ({self.rules_file} not found)")

        if invalid:
            raise ValueError(f"Invalid configuration fields: {invalid}")
