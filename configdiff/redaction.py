"""
Value redaction for display.

Two strategies, picked by sniffing the value:

- URL / connection strings keep their scheme and host (so environments stay
  recognizable) and mask credentials, path and query.
- Everything else keeps a short prefix/suffix and masks the middle. Short
  values are replaced by a fixed-length mask so their length is not leaked.

Pure functions; nothing here logs or stores the values it sees.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlsplit

from configdiff.models import RedactedValue

_URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*://")

# Marks a key as holding secret material (env keys and flattened paths
# alike: JWT_SECRET, auth.jwt.secret). Secret words match anywhere; `key`
# only as a whole segment (auth.key, SIGNING_KEY, AWS_ACCESS_KEY_ID).
# Shared with the validate-mode secret-presence rule.
SENSITIVE_KEY_PATTERN = (
    r"(?:secret|token|password|passwd|pwd|jwt|private|api_key|apikey|access_key|accesskey"
    r"|authorization|bearer|session|cookie|signature|hmac|cert|dsn|smtp_pass)"
    r"|(?:^|[._\]])key(?:$|_|\[)"
    r"|-key(?:$|\[)"
)
_SENSITIVE_KEY_RE = re.compile(SENSITIVE_KEY_PATTERN, re.IGNORECASE)
_INDEX_RE = re.compile(r"\[\d+\]")


@dataclass(frozen=True)
class RedactionOptions:
    mask_char: str = "•"
    reveal_first: int = 2
    reveal_last: int = 4
    min_mask_length: int = 8


DEFAULT_REDACTION = RedactionOptions()


def leaf_key(path: str) -> str:
    """Last segment of a dot path with array indexes removed."""
    return _INDEX_RE.sub("", path or "").split(".")[-1]


def is_sensitive_key(key: str) -> bool:
    """
    Heuristic: does this key (env name or flattened path) hold a secret?

    Matches common secret words anywhere in the key, plus ``key`` used as a
    whole segment (``auth.key``, ``AWS_ACCESS_KEY_ID``, ``SIGNING_KEY``).
    """
    return bool(_SENSITIVE_KEY_RE.search(key or ""))


def looks_like_url(value: str) -> bool:
    return bool(_URL_SCHEME_RE.match(value)) or "://" in value


def _basic_mask(value: str, opts: RedactionOptions) -> RedactedValue:
    length = len(value)
    if length <= opts.min_mask_length:
        return RedactedValue(original_length=length, redacted=opts.mask_char * opts.min_mask_length)

    # At least four characters always stay masked
    visible = max(0, length - 4)
    reveal_first = min(max(0, opts.reveal_first), visible)
    reveal_last = min(max(0, opts.reveal_last), visible - reveal_first)
    first = value[:reveal_first]
    last = value[length - reveal_last:] if reveal_last else ""
    mask_len = max(4, length - reveal_first - reveal_last)
    return RedactedValue(original_length=length, redacted=f"{first}{opts.mask_char * mask_len}{last}")


def _split_url(value: str):
    """urlsplit that only succeeds on something with a scheme and a host."""
    try:
        parts = urlsplit(value)
        port = parts.port
    except ValueError:
        return None, None
    if not parts.scheme or not parts.hostname:
        return None, None
    return parts, port


def _redact_url(value: str, opts: RedactionOptions) -> RedactedValue:
    parts, port = _split_url(value)
    if parts is None:
        index = value.find("://")
        if index > 0:
            prefix, rest = value[:index + 3], value[index + 3:]
            masked = _basic_mask(rest, replace(opts, reveal_first=0)).redacted
            return RedactedValue(original_length=len(value), redacted=prefix + masked)
        return _basic_mask(value, opts)

    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    if port is not None:
        host = f"{host}:{port}"

    credentials = f"{opts.mask_char * 6}@" if (parts.username or parts.password) else ""
    path = "/…" if parts.path and parts.path != "/" else ""
    query = "?…" if (parts.query or parts.fragment) else ""
    return RedactedValue(
        original_length=len(value),
        redacted=f"{parts.scheme}://{credentials}{host}{path}{query}",
    )


def redact_value(value: str, options: Optional[RedactionOptions] = None) -> RedactedValue:
    """
    Mask a value for display.

    Args:
        value: Raw value (may be a secret)
        options: Mask character and reveal lengths; defaults to DEFAULT_REDACTION

    Returns:
        RedactedValue with the original length and the masked text
    """
    opts = options or DEFAULT_REDACTION
    value = value or ""
    if looks_like_url(value):
        return _redact_url(value, opts)
    return _basic_mask(value, opts)


def redact_for_display(
    key: str,
    value: str,
    sensitive_only: bool = False,
    options: Optional[RedactionOptions] = None,
) -> RedactedValue:
    """Redact ``value`` unless ``sensitive_only`` is set and the key looks harmless."""
    value = value or ""
    if not value or (sensitive_only and not is_sensitive_key(key)):
        return RedactedValue(original_length=len(value), redacted=value)
    return redact_value(value, options)
