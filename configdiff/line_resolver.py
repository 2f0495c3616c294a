"""
Best-effort source line lookup for issues and findings.

Strategies run in order and the first one that produces a line wins:

1. a numeric line already attached to the record (``line``, ``loc.line``,
   ``location.line``)
2. ``line N`` / ``line N-M`` / ``LN`` / ``RN`` in the key-like field
3. the same patterns in the free-text message, last mention wins
4. a textual scan of the source for an assignment of the record's key

Nothing here feeds back into diff or rule results; every strategy returns
None rather than guessing.
"""

import re
from typing import Any, Callable, List, Mapping, Optional, Tuple

from configdiff.models import LineHint
from .redaction import leaf_key

LineRange = Tuple[int, int]
Strategy = Callable[[Any], Optional[LineRange]]

_KEYISH_FIELDS = ("key", "path", "name", "id")
_MESSAGE_FIELDS = ("message", "error", "details", "msg", "text")

# "line 3-7", "line: 4", "left:line:12"
_KEY_RANGE_RE = re.compile(r"line[:\s]+(\d+)\s*[-–]\s*(\d+)", re.IGNORECASE)
_KEY_LINE_RE = re.compile(r"line[:\s]+(\d+)", re.IGNORECASE)
_BARE_LINE_RE = re.compile(r"^[LR]?(\d+)$", re.IGNORECASE)

# "line 3", "line at 3", "line 3-7", "L3", "R3-5"; one alternation so that
# scanning left to right yields mentions in source order
_MESSAGE_LINE_RE = re.compile(
    r"\bline\s+(?:at\s+)?(\d+)(?:\s*[-–]\s*(\d+))?"
    r"|\b[LR](\d+)(?:\s*[-–]\s*(\d+))?\b",
    re.IGNORECASE,
)

_LEFT_RE = re.compile(r"\bleft\b", re.IGNORECASE)
_RIGHT_RE = re.compile(r"\bright\b", re.IGNORECASE)


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _first_text(record: Any, names) -> str:
    for name in names:
        value = _field(record, name)
        if value is not None and value != "":
            return str(value)
    return ""


def _positive(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _range(start: int, end: Optional[int]) -> Optional[LineRange]:
    if start <= 0:
        return None
    if end is None or end < start:
        return (start, start)
    return (start, end)


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def from_direct_field(record: Any) -> Optional[LineRange]:
    line = _positive(_field(record, "line"))
    if line is None:
        for container in ("loc", "location"):
            nested = _field(record, container)
            if nested is not None:
                line = _positive(_field(nested, "line"))
                if line is not None:
                    break
    return (line, line) if line is not None else None


def from_keyish_field(record: Any) -> Optional[LineRange]:
    keyish = _first_text(record, _KEYISH_FIELDS)
    if not keyish:
        return None

    match = _KEY_RANGE_RE.search(keyish)
    if match:
        return _range(int(match.group(1)), int(match.group(2)))
    match = _KEY_LINE_RE.search(keyish)
    if match:
        return _range(int(match.group(1)), None)
    match = _BARE_LINE_RE.match(keyish.strip())
    if match:
        return _range(int(match.group(1)), None)
    return None


def from_message(record: Any) -> Optional[LineRange]:
    message = _first_text(record, _MESSAGE_FIELDS)
    if not message:
        return None

    last = None
    for match in _MESSAGE_LINE_RE.finditer(message):
        last = match
    if last is None:
        return None

    if last.group(1) is not None:
        start, end = last.group(1), last.group(2)
    else:
        start, end = last.group(3), last.group(4)
    return _range(int(start), int(end) if end else None)


STRATEGIES: List[Strategy] = [from_direct_field, from_keyish_field, from_message]


def _key_pattern(key: str, fmt: str, profile: Optional[str]) -> Optional["re.Pattern[str]"]:
    if fmt == "env":
        prefix = r"(?:export\s+)?" if profile != "compose" else ""
        return re.compile(rf"^\s*{prefix}{re.escape(key)}\s*=", re.IGNORECASE)

    leaf = leaf_key(key)
    if not leaf:
        return None
    if fmt == "yaml":
        return re.compile(rf"^\s*(?:-\s+)?[\"']?{re.escape(leaf)}[\"']?\s*:", re.IGNORECASE)
    return re.compile(rf"\"\s*{re.escape(leaf)}\s*\"\s*:", re.IGNORECASE)


def find_line_for_key(key: str, source_text: str, fmt: str, profile: Optional[str] = None) -> Optional[int]:
    """
    Scan ``source_text`` for the first line that assigns ``key``.

    env matches the full key (with an optional ``export`` under dotenv);
    YAML and JSON match the leaf segment of a flattened path.
    """
    if not key or not source_text:
        return None
    pattern = _key_pattern(key, str(getattr(fmt, "value", fmt)), profile)
    if pattern is None:
        return None

    lines = source_text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    for number, line in enumerate(lines, start=1):
        if line.lstrip().startswith("#"):
            continue
        if pattern.search(line):
            return number
    return None


def extract_line_range(record: Any) -> Optional[LineRange]:
    """Run the record-only strategies (no source scan)."""
    for strategy in STRATEGIES:
        found = strategy(record)
        if found is not None:
            return found
    return None


def resolve_line_range(
    record: Any,
    source_text: str = "",
    fmt: str = "env",
    profile: Optional[str] = None,
) -> Optional[LineRange]:
    """
    Resolve the (start, end) line range for an issue or finding.

    ``record`` may be a mapping or any object with the relevant attributes.
    """
    found = extract_line_range(record)
    if found is not None:
        return found

    key = _first_text(record, ("key", "path", "name"))
    line = find_line_for_key(key, source_text, fmt, profile)
    return (line, line) if line is not None else None


def resolve_line(
    record: Any,
    source_text: str = "",
    fmt: str = "env",
    profile: Optional[str] = None,
) -> Optional[int]:
    found = resolve_line_range(record, source_text, fmt, profile)
    return found[0] if found is not None else None


def resolve_finding_lines(
    finding: Any,
    left_text: str,
    right_text: str,
    fmt: str = "env",
    profile: Optional[str] = None,
) -> LineHint:
    """
    Resolve where a compare finding sits on each side.

    When the message names exactly one side ("Left: ...") only that side is
    reported, even if the key also exists on the other one.
    """
    message = _first_text(finding, _MESSAGE_FIELDS)
    mentions_left = bool(_LEFT_RE.search(message))
    mentions_right = bool(_RIGHT_RE.search(message))
    only_left = mentions_left and not mentions_right
    only_right = mentions_right and not mentions_left

    explicit = extract_line_range(finding)
    if explicit is not None:
        if only_left:
            return LineHint(left_line=explicit[0])
        if only_right:
            return LineHint(right_line=explicit[0])

    key = _first_text(finding, ("key",))
    left_line = find_line_for_key(key, left_text, fmt, profile) if key else None
    right_line = find_line_for_key(key, right_text, fmt, profile) if key else None

    if only_left:
        return LineHint(left_line=left_line)
    if only_right:
        return LineHint(right_line=right_line)

    if explicit is not None:
        line = explicit[0]
        if left_line and not right_line:
            return LineHint(left_line=line)
        if right_line and not left_line:
            return LineHint(right_line=line)
        return LineHint(left_line=line, right_line=line)

    return LineHint(left_line=left_line, right_line=right_line)
