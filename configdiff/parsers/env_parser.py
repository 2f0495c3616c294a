"""
.env Parser

Line-oriented parser for dotenv / docker-compose env_file text. Produces a
flat key -> value map plus duplicate tracking and per-line issues. One bad
line never aborts the parse: the line is reported and skipped.
"""

import re
import logging
from typing import Dict, List, Optional, Tuple

from configdiff.models import (
    ConfigFormat, DuplicateKey, IssueKind, ParseIssue, ParseMeta, ParsedConfig,
)
from .profiles import EnvParseOptions

logger = logging.getLogger(__name__)

_EXPORT_RE = re.compile(r"^export\s+", re.IGNORECASE)
_VAR_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")
_ESCAPE_RE = re.compile(r'\\([nrt"\\])')
_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}
_QUOTES = ("'", '"')


def _find_closing_quote(text: str, quote: str, start: int = 0) -> int:
    """Index of the closing ``quote`` in ``text`` from ``start``, or -1.

    Inside double quotes a backslash escapes the next character; single
    quotes are literal.
    """
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\" and quote == '"':
            i += 2
            continue
        if ch == quote:
            return i
        i += 1
    return -1


def strip_inline_comment(value: str) -> str:
    """
    Strip a trailing ``# comment`` or ``; comment`` that sits outside quotes.

    The comment marker must be preceded by whitespace, so ``URL=a#b`` keeps
    its fragment.
    """
    in_single = False
    in_double = False
    i = 0
    while i < len(value):
        ch = value[i]
        if in_double and ch == "\\":
            i += 2
            continue
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif not in_single and not in_double and ch in "#;" and i > 0 and value[i - 1] in " \t":
            return value[:i].rstrip()
        i += 1
    return value.rstrip()


def unquote_value(value: str) -> Tuple[str, Optional[str]]:
    """Unwrap a quoted value. Returns (value, quote char or None).

    Double-quoted values unescape ``\\n \\r \\t \\" \\\\``; single-quoted
    values are taken literally.
    """
    v = value.strip()
    if len(v) >= 2 and v[0] in _QUOTES and v[-1] == v[0]:
        quote = v[0]
        inner = v[1:-1]
        if quote == '"':
            inner = _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], inner)
        return inner, quote
    return v, None


def expand_variables(value: str, lookup: Dict[str, str]) -> str:
    """Resolve ``$VAR`` / ``${VAR}``; unresolved references stay untouched."""
    def _sub(match: "re.Match[str]") -> str:
        name = match.group(1) or match.group(2)
        return lookup.get(name, match.group(0))
    return _VAR_RE.sub(_sub, value)


def parse_env(text: str, options: Optional[EnvParseOptions] = None) -> ParsedConfig:
    """
    Parse .env text into a ParsedConfig.

    Args:
        text: Raw file contents
        options: Parse toggles; defaults to the dotenv profile

    Returns:
        ParsedConfig with values (last write wins), duplicates and issues
    """
    opts = options or EnvParseOptions()
    lines = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")

    values: Dict[str, str] = {}
    issues: List[ParseIssue] = []
    seen_lines: Dict[str, List[int]] = {}

    def issue(line_no: int, kind: IssueKind, code: str, message: str) -> None:
        issues.append(ParseIssue(line=line_no, kind=kind, message=message, code=code))

    i = 0
    while i < len(lines):
        line_no = i + 1
        raw = lines[i]
        i += 1

        if line_no == 1:
            raw = raw.lstrip("\ufeff")
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue

        working = stripped
        if opts.allow_export_prefix:
            match = _EXPORT_RE.match(working)
            if match:
                working = working[match.end():]

        eq = working.find("=")
        if eq < 0:
            issue(line_no, IssueKind.WARNING, "INVALID_LINE", "Missing '=' (expected KEY=VALUE); line skipped")
            continue

        key = working[:eq].strip()
        value = working[eq + 1:]

        if not key:
            issue(line_no, IssueKind.ERROR, "EMPTY_KEY", "Empty key before '='; line skipped")
            continue

        if any(ch.isspace() for ch in key):
            issue(line_no, IssueKind.WARNING, "KEY_WHITESPACE",
                  f"Key contains whitespace; env keys typically do not. Interpreting key as '{key}'")

        opened = value.lstrip()
        if opened[:1] in _QUOTES and _find_closing_quote(opened, opened[0], 1) < 0:
            quote = opened[0]
            if not opts.allow_multiline:
                issue(line_no, IssueKind.WARNING, "UNTERMINATED_QUOTE",
                      f"Unterminated {quote} quote; value taken literally")
            else:
                parts = [value]
                closed = False
                while i < len(lines):
                    parts.append(lines[i])
                    i += 1
                    if _find_closing_quote(parts[-1], quote) >= 0:
                        closed = True
                        break
                if not closed:
                    issue(line_no, IssueKind.ERROR, "UNTERMINATED_QUOTE",
                          f"Unterminated quoted value for '{key}' (multiline); entry dropped")
                    continue
                value = "\n".join(parts)

        value = strip_inline_comment(value) if opts.strip_inline_comments else value.rstrip()
        final, quote = unquote_value(value)

        if not opts.allow_empty_values and not final:
            issue(line_no, IssueKind.WARNING, "EMPTY_VALUE", f"Empty value not allowed for '{key}'; line skipped")
            continue

        seen_lines.setdefault(key, []).append(line_no)
        if not opts.allow_duplicate_keys and key in values:
            issue(line_no, IssueKind.ERROR, "DUPLICATE_KEY", f"Duplicate key '{key}'; first value kept")
            continue

        if opts.expand_variables and quote != "'":
            final = expand_variables(final, {**dict(opts.expand_from), **values})

        values[key] = final

    duplicates = tuple(
        DuplicateKey(key=key, occurrences=len(key_lines), lines=tuple(key_lines))
        for key, key_lines in seen_lines.items()
        if len(key_lines) > 1
    )

    logger.debug(
        f"Parsed env text: {len(values)} keys, {len(duplicates)} duplicates, "
        f"{len(issues)} issues ({opts.profile})"
    )

    return ParsedConfig(
        values=values,
        duplicates=duplicates,
        issues=tuple(issues),
        meta=ParseMeta(line_count=len(lines), format=ConfigFormat.ENV, profile=opts.profile),
    )
