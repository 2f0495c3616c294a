"""
Document flattening shared by the JSON and YAML parsers.

Nested documents become a flat ``path -> string`` map using dot/bracket
paths (``db.host``, ``items[0].id``). Mapping keys are visited in sorted
order so structurally identical documents produce identical key sequences.
"""

import base64
import datetime
import json
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from configdiff.models import (
    ArrayMode, ConfigFormat, ConfigTooLargeError, DuplicateKey, IssueKind,
    ParseIssue, ParseMeta, ParsedConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_KEYS = 200_000
MAX_KEYS_CEILING = 1_000_000
ROOT_PATH = "$"


def clamp_max_keys(max_keys: Optional[int]) -> int:
    return max(1, min(max_keys or DEFAULT_MAX_KEYS, MAX_KEYS_CEILING))


def count_lines(text: str) -> int:
    return len((text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n"))


def stable_key(key: Any) -> str:
    """String form of a mapping key (YAML keys may be ints, bools, dates)."""
    return key if isinstance(key, str) else stable_string(key)


def _normalize(value: Any, active: Set[int]) -> Any:
    """JSON-serializable copy with string keys; cycles become a marker."""
    if isinstance(value, dict):
        if id(value) in active:
            return "<recursive>"
        active.add(id(value))
        try:
            return {stable_key(k): _normalize(v, active) for k, v in value.items()}
        finally:
            active.discard(id(value))
    if isinstance(value, (list, tuple)):
        if id(value) in active:
            return "<recursive>"
        active.add(id(value))
        try:
            return [_normalize(v, active) for v in value]
        finally:
            active.discard(id(value))
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return stable_string(value)


def stable_string(value: Any) -> str:
    """Lossless, canonical string form of a parsed value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return json.dumps(value)
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(
            _normalize(value, set()), sort_keys=True, ensure_ascii=False, separators=(",", ":")
        )
    return str(value)


def hard_failure(
    fmt: ConfigFormat,
    line: int,
    message: str,
    line_count: int,
    duplicates: Tuple[DuplicateKey, ...] = (),
) -> ParsedConfig:
    """Structurally unparsable side: empty values plus a single error issue."""
    return ParsedConfig(
        values={},
        duplicates=duplicates,
        issues=(ParseIssue(line=max(1, line), kind=IssueKind.ERROR, message=message),),
        meta=ParseMeta(line_count=line_count, format=fmt),
    )


class Flattener:
    """
    Walks a parsed document and emits leaf paths.

    Emission is capped at ``max_keys``; exceeding it raises
    ConfigTooLargeError rather than silently truncating.
    """

    def __init__(self, label: str, array_mode: ArrayMode = ArrayMode.INDEX, max_keys: Optional[int] = None):
        self.label = label
        self.array_mode = ArrayMode(array_mode)
        self.max_keys = clamp_max_keys(max_keys)
        self.values: Dict[str, str] = {}
        self.collisions: Dict[str, int] = {}
        self.issues: List[ParseIssue] = []
        self._emitted = 0
        self._active: Set[int] = set()

    def emit(self, path: str, value: Any) -> None:
        self._emitted += 1
        if self._emitted > self.max_keys:
            raise ConfigTooLargeError(
                f"{self.label} too large (>{self.max_keys} flattened keys).", self.max_keys
            )
        if path in self.values:
            self.collisions[path] = self.collisions.get(path, 1) + 1
        self.values[path] = stable_string(value)

    def record_duplicate(self, path: str, occurrences: int) -> None:
        self.collisions[path] = max(self.collisions.get(path, 1), occurrences)

    def flatten(self, node: Any, path: str = "") -> Dict[str, str]:
        self._visit(node, path)
        return self.values

    def duplicates(self) -> Tuple[DuplicateKey, ...]:
        return tuple(
            DuplicateKey(key=key, occurrences=count)
            for key, count in sorted(self.collisions.items())
        )

    def _visit(self, node: Any, path: str) -> None:
        if isinstance(node, dict):
            self._visit_mapping(node, path)
        elif isinstance(node, (list, tuple)):
            self._visit_sequence(node, path)
        else:
            self.emit(path or ROOT_PATH, node)

    def _visit_mapping(self, node: Dict[Any, Any], path: str) -> None:
        if not node:
            self.emit(path or ROOT_PATH, node)
            return
        if not self._enter(node, path):
            return
        try:
            for key, count in getattr(node, "duplicate_counts", {}).items():
                self.record_duplicate(f"{path}.{key}" if path else key, count)
            items = sorted(((stable_key(k), v) for k, v in node.items()), key=lambda kv: kv[0])
            for key, value in items:
                self._visit(value, f"{path}.{key}" if path else key)
        finally:
            self._active.discard(id(node))

    def _visit_sequence(self, node: Any, path: str) -> None:
        if self.array_mode is ArrayMode.IGNORE:
            return
        if self.array_mode is ArrayMode.STRINGIFY or not node:
            self.emit(path or ROOT_PATH, node)
            return
        if not self._enter(node, path):
            return
        try:
            for index, item in enumerate(node):
                self._visit(item, f"{path}[{index}]" if path else f"{ROOT_PATH}[{index}]")
        finally:
            self._active.discard(id(node))

    def _enter(self, node: Any, path: str) -> bool:
        if id(node) in self._active:
            self.issues.append(ParseIssue(
                line=1,
                kind=IssueKind.WARNING,
                message=f"Recursive reference at '{path or ROOT_PATH}' was not expanded",
            ))
            return False
        self._active.add(id(node))
        return True


def root_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__
