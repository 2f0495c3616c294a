"""
YAML parser with duplicate-key detection.

A standard YAML load silently overwrites duplicate mapping keys, so the
document is composed into a node tree first. The tree is walked for
duplicates (with line numbers from the key nodes' source offsets) before
it is constructed into Python values with merge keys (``<<``) applied.
"""

import bisect
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

from configdiff.models import (
    ArrayMode, ConfigFormat, DuplicateKey, IssueKind, ParseIssue, ParseMeta, ParsedConfig,
)
from .flatten import ROOT_PATH, Flattener, count_lines, hard_failure, root_type_name

logger = logging.getLogger(__name__)

MERGE_TAG = "tag:yaml.org,2002:merge"


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that tolerates application tags (``!Ref``, ``!env``, ...)."""


def _construct_unknown(loader: ConfigLoader, node: yaml.Node) -> Any:
    if isinstance(node, yaml.ScalarNode):
        return loader.construct_scalar(node)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_mapping(node, deep=True)


ConfigLoader.add_constructor(None, _construct_unknown)


def build_line_starts(text: str) -> List[int]:
    """Character offset at which each line starts (line 1 starts at 0)."""
    starts = [0]
    offset = text.find("\n")
    while offset >= 0:
        starts.append(offset + 1)
        offset = text.find("\n", offset + 1)
    return starts


def offset_to_line(offset: int, line_starts: List[int]) -> int:
    """1-based line containing ``offset`` (binary search over line starts)."""
    if offset <= 0:
        return 1
    return max(1, bisect.bisect_right(line_starts, offset))


def _error_line(exc: yaml.YAMLError) -> int:
    mark = getattr(exc, "problem_mark", None) or getattr(exc, "context_mark", None)
    return mark.line + 1 if mark is not None else 1


class DuplicateKeyCollector:
    """Walks a composed node tree recording mapping keys seen more than once."""

    def __init__(self, line_starts: List[int]):
        self.line_starts = line_starts
        self.occurrence_lines: Dict[str, List[int]] = {}
        self._visited: Set[int] = set()

    def collect(self, node: Optional[yaml.Node], path: str = "") -> None:
        if node is None or id(node) in self._visited:
            return
        # Aliases share node objects; walking each node once keeps this linear
        self._visited.add(id(node))

        if isinstance(node, yaml.MappingNode):
            self._collect_mapping(node, path)
        elif isinstance(node, yaml.SequenceNode):
            for index, item in enumerate(node.value):
                self.collect(item, f"{path}[{index}]" if path else f"{ROOT_PATH}[{index}]")

    def _collect_mapping(self, node: yaml.MappingNode, path: str) -> None:
        seen: Dict[str, List[int]] = {}
        for key_node, value_node in node.value:
            if key_node.tag == MERGE_TAG or (isinstance(key_node, yaml.ScalarNode) and key_node.value == "<<"):
                merged = value_node.value if isinstance(value_node, yaml.SequenceNode) else [value_node]
                for item in merged:
                    self.collect(item, path)
                continue
            if not isinstance(key_node, yaml.ScalarNode):
                continue

            key = key_node.value
            line = offset_to_line(key_node.start_mark.index, self.line_starts)
            seen.setdefault(key, []).append(line)
            self.collect(value_node, f"{path}.{key}" if path else key)

        for key, lines in seen.items():
            if len(lines) > 1:
                self.occurrence_lines[f"{path}.{key}" if path else key] = lines

    def duplicates(self) -> Tuple[DuplicateKey, ...]:
        return tuple(
            DuplicateKey(key=key, occurrences=len(lines), lines=tuple(lines))
            for key, lines in sorted(self.occurrence_lines.items())
        )


def _duplicate_line(dup: DuplicateKey) -> int:
    # Line of the first repeated occurrence
    return dup.lines[1] if len(dup.lines) > 1 else (dup.lines[0] if dup.lines else 1)


def parse_yaml(
    text: str,
    array_mode: ArrayMode = ArrayMode.INDEX,
    max_keys: Optional[int] = None,
    strict: bool = False,
) -> ParsedConfig:
    """
    Parse YAML text and flatten it.

    Args:
        text: Raw YAML
        array_mode: index / stringify / ignore
        max_keys: Flattened key cap (ConfigTooLargeError when exceeded)
        strict: Treat duplicate mapping keys as a hard parse error

    Returns:
        ParsedConfig; invalid syntax or strict-mode duplicates give empty
        values and a single error issue
    """
    source = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    line_count = count_lines(source)
    meta = ParseMeta(line_count=line_count, format=ConfigFormat.YAML)

    if not source.strip():
        return ParsedConfig(values={}, duplicates=(), issues=(), meta=meta)

    loader = ConfigLoader(source)
    try:
        try:
            root = loader.get_single_node()
        except yaml.YAMLError as exc:
            logger.debug(f"YAML compose failed: {exc}")
            return hard_failure(ConfigFormat.YAML, _error_line(exc), f"Invalid YAML: {exc}", line_count)

        collector = DuplicateKeyCollector(build_line_starts(source))
        try:
            collector.collect(root)
        except RecursionError:
            return hard_failure(ConfigFormat.YAML, 1, "Invalid YAML: document is nested too deeply", line_count)
        duplicates = collector.duplicates()

        if strict and duplicates:
            listed = ", ".join(f"'{d.key}' line at {_duplicate_line(d)}" for d in duplicates)
            logger.debug(f"Strict YAML rejected {len(duplicates)} duplicate key(s)")
            return hard_failure(
                ConfigFormat.YAML,
                _duplicate_line(duplicates[0]),
                f"Duplicate keys are not allowed in strict YAML mode: {listed}",
                line_count,
                duplicates=duplicates,
            )

        if root is None:
            document: Any = None
        else:
            try:
                document = loader.construct_document(root)
            except yaml.YAMLError as exc:
                return hard_failure(ConfigFormat.YAML, _error_line(exc), f"Invalid YAML: {exc}", line_count)
            except RecursionError:
                return hard_failure(ConfigFormat.YAML, 1, "Invalid YAML: document is nested too deeply", line_count)
    finally:
        loader.dispose()

    issues: List[ParseIssue] = [
        ParseIssue(
            line=_duplicate_line(dup),
            kind=IssueKind.WARNING,
            message=(
                f"Duplicate key '{dup.key}' ({dup.occurrences} occurrences) - "
                f"last value overrides earlier, line at {_duplicate_line(dup)}"
            ),
            code="DUPLICATE_KEY",
        )
        for dup in duplicates
    ]

    if document is None:
        return ParsedConfig(values={}, duplicates=duplicates, issues=tuple(issues), meta=meta)

    if not isinstance(document, dict):
        issues.append(ParseIssue(
            line=1,
            kind=IssueKind.WARNING,
            message=f"YAML root is a {root_type_name(document)} (usually you want a mapping)",
        ))

    flattener = Flattener("YAML", array_mode=array_mode, max_keys=max_keys)
    try:
        values = flattener.flatten(document)
    except RecursionError:
        return hard_failure(ConfigFormat.YAML, 1, "Invalid YAML: document is nested too deeply", line_count)
    issues.extend(flattener.issues)

    # Distinct keys can still collide once stringified (``1`` vs ``"1"``)
    known = {dup.key for dup in duplicates}
    collisions = tuple(dup for dup in flattener.duplicates() if dup.key not in known)
    if collisions:
        duplicates = tuple(sorted(duplicates + collisions, key=lambda d: d.key))

    logger.debug(f"Parsed YAML: {len(values)} keys, {len(duplicates)} duplicate key(s)")
    return ParsedConfig(values=values, duplicates=duplicates, issues=tuple(issues), meta=meta)
