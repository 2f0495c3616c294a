"""
Env parser profiles.

A profile is a named preset of ``EnvParseOptions``. Callers pick a profile
and may still override individual toggles.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

DEFAULT_PROFILE = "dotenv"


@dataclass(frozen=True)
class EnvParseOptions:
    profile: str = DEFAULT_PROFILE
    allow_export_prefix: bool = True
    allow_empty_values: bool = True
    allow_duplicate_keys: bool = True
    # Strip `KEY=value # comment` outside of quotes
    strip_inline_comments: bool = True
    # Quoted values may span lines until the closing quote
    allow_multiline: bool = True
    # Expand $VAR / ${VAR} from already-parsed keys and expand_from
    expand_variables: bool = False
    expand_from: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EnvProfile:
    id: str
    label: str
    options: EnvParseOptions


ENV_PROFILES: Dict[str, EnvProfile] = {
    "dotenv": EnvProfile(
        id="dotenv",
        label="Dotenv (.env) - allow `export KEY=...`",
        options=EnvParseOptions(profile="dotenv"),
    ),
    "compose": EnvProfile(
        id="compose",
        label="Docker Compose env_file - KEY=VALUE only",
        options=EnvParseOptions(
            profile="compose",
            allow_export_prefix=False,
            allow_multiline=False,
        ),
    ),
}


def get_profile(profile_id: Optional[str]) -> EnvProfile:
    """Return the named profile; unknown or empty ids fall back to dotenv."""
    return ENV_PROFILES.get((profile_id or DEFAULT_PROFILE).lower(), ENV_PROFILES[DEFAULT_PROFILE])


def resolve_env_options(profile_id: Optional[str] = None, **overrides) -> EnvParseOptions:
    """
    Build parse options from a profile plus explicit overrides.

    Overrides set to ``None`` are ignored so callers can pass optional
    request fields straight through.
    """
    base = get_profile(profile_id).options
    changes = {name: value for name, value in overrides.items() if value is not None}
    return replace(base, **changes) if changes else base
