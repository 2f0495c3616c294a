"""
Config Parsers

Reduce raw env / JSON / YAML text into a flat key -> string map plus parse
diagnostics. ``parse_config`` dispatches on the format id.
"""

from dataclasses import dataclass, field
from typing import Optional

from configdiff.models import ArrayMode, ConfigFormat, ConfigTooLargeError, ParsedConfig
from .env_parser import parse_env
from .json_parser import parse_json
from .yaml_parser import parse_yaml
from .flatten import DEFAULT_MAX_KEYS, stable_string
from .profiles import ENV_PROFILES, EnvParseOptions, get_profile, resolve_env_options


@dataclass(frozen=True)
class ParseOptions:
    """Format-specific options for one parse call."""
    env: EnvParseOptions = field(default_factory=EnvParseOptions)
    array_mode: ArrayMode = ArrayMode.INDEX
    yaml_strict: bool = False
    max_keys: int = DEFAULT_MAX_KEYS
    max_input_bytes: Optional[int] = None


def parse_config(text: str, fmt, options: Optional[ParseOptions] = None) -> ParsedConfig:
    """
    Parse one side of a comparison.

    Raises:
        ConfigTooLargeError: input exceeds the byte cap or the flattened key cap
    """
    opts = options or ParseOptions()
    fmt = ConfigFormat(fmt)
    text = text or ""

    if opts.max_input_bytes is not None:
        size = len(text.encode("utf-8"))
        if size > opts.max_input_bytes:
            raise ConfigTooLargeError(
                f"Input too large ({size} bytes > {opts.max_input_bytes} bytes).", opts.max_input_bytes
            )

    if fmt is ConfigFormat.ENV:
        return parse_env(text, opts.env)
    if fmt is ConfigFormat.JSON:
        return parse_json(text, array_mode=opts.array_mode, max_keys=opts.max_keys)
    return parse_yaml(text, array_mode=opts.array_mode, max_keys=opts.max_keys, strict=opts.yaml_strict)


__all__ = [
    'parse_config',
    'parse_env',
    'parse_json',
    'parse_yaml',
    'ParseOptions',
    'EnvParseOptions',
    'ENV_PROFILES',
    'get_profile',
    'resolve_env_options',
    'stable_string',
    'DEFAULT_MAX_KEYS',
]
