"""JSON parser: standard parse, then flatten to dot/bracket paths."""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from configdiff.models import (
    ArrayMode, ConfigFormat, IssueKind, ParseIssue, ParseMeta, ParsedConfig,
)
from .flatten import Flattener, count_lines, hard_failure, root_type_name

logger = logging.getLogger(__name__)


class _PairsDict(dict):
    """dict that remembers which keys appeared more than once in the source object."""

    duplicate_counts: Dict[str, int]


def _pairs_hook(pairs: List[Tuple[str, Any]]) -> _PairsDict:
    out = _PairsDict()
    counts: Dict[str, int] = {}
    for key, value in pairs:
        if key in out:
            counts[key] = counts.get(key, 1) + 1
        out[key] = value
    out.duplicate_counts = counts
    return out


def parse_json(
    text: str,
    array_mode: ArrayMode = ArrayMode.INDEX,
    max_keys: Optional[int] = None,
) -> ParsedConfig:
    """
    Parse JSON text and flatten it.

    Malformed JSON yields a hard failure (empty values, one error issue
    carrying the decoder's line). Exceeding ``max_keys`` raises
    ConfigTooLargeError.
    """
    source = text or ""
    line_count = count_lines(source)

    if not source.strip():
        return ParsedConfig(values={}, duplicates=(), issues=(),
                            meta=ParseMeta(line_count=line_count, format=ConfigFormat.JSON))

    try:
        document = json.loads(source, object_pairs_hook=_pairs_hook)
    except json.JSONDecodeError as exc:
        logger.debug(f"JSON decode failed at line {exc.lineno}: {exc.msg}")
        return hard_failure(
            ConfigFormat.JSON, exc.lineno,
            f"Invalid JSON: {exc.msg} (line {exc.lineno} column {exc.colno})", line_count,
        )
    except RecursionError:
        return hard_failure(ConfigFormat.JSON, 1, "Invalid JSON: document is nested too deeply", line_count)

    flattener = Flattener("JSON", array_mode=array_mode, max_keys=max_keys)
    issues: List[ParseIssue] = []

    if not isinstance(document, dict):
        issues.append(ParseIssue(
            line=1,
            kind=IssueKind.WARNING,
            message=f"JSON root is a {root_type_name(document)} (usually you want an object)",
        ))

    try:
        values = flattener.flatten(document)
    except RecursionError:
        return hard_failure(ConfigFormat.JSON, 1, "Invalid JSON: document is nested too deeply", line_count)

    issues.extend(flattener.issues)
    duplicates = flattener.duplicates()
    for dup in duplicates:
        issues.append(ParseIssue(
            line=1,
            kind=IssueKind.WARNING,
            message=f"Duplicate key '{dup.key}' ({dup.occurrences} occurrences) - last value wins",
            code="DUPLICATE_KEY",
        ))

    logger.debug(f"Parsed JSON: {len(values)} keys, {len(duplicates)} duplicates")
    return ParsedConfig(
        values=values,
        duplicates=duplicates,
        issues=tuple(issues),
        meta=ParseMeta(line_count=line_count, format=ConfigFormat.JSON),
    )
