"""Core data model for the ConfigDiff pipeline.

Every record here is produced fresh per comparison/validation call and is
never mutated after construction. ``to_dict()`` projections use the same
key names the HTTP surface returns.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ConfigDiffError(Exception):
    """Base error for the ConfigDiff library."""


class ConfigTooLargeError(ConfigDiffError):
    """Input exceeded a hard size limit (flattened key count or raw bytes)."""

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class RuleDefinitionError(ConfigDiffError):
    """A risk rule definition is malformed (bad regex, unknown severity, ...)."""


class Severity(str, Enum):
    """Finding severity. Totally ordered: HIGH > MEDIUM > LOW."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}

SEVERITY_ALIASES = {
    "high": Severity.HIGH,
    "critical": Severity.HIGH,
    "crit": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "med": Severity.MEDIUM,
    "warn": Severity.MEDIUM,
    "warning": Severity.MEDIUM,
    "low": Severity.LOW,
    "info": Severity.LOW,
    "informational": Severity.LOW,
}


def normalize_severity(value: Any) -> Severity:
    """Map any severity-ish string onto high/medium/low (unknown -> low)."""
    if isinstance(value, Severity):
        return value
    return SEVERITY_ALIASES.get(str(value or "").strip().lower(), Severity.LOW)


class IssueKind(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ConfigFormat(str, Enum):
    ENV = "env"
    JSON = "json"
    YAML = "yaml"


class ArrayMode(str, Enum):
    """How JSON/YAML arrays are flattened."""
    INDEX = "index"
    STRINGIFY = "stringify"
    IGNORE = "ignore"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseIssue:
    line: int
    kind: IssueKind
    message: str
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"line": self.line, "kind": self.kind.value, "message": self.message}
        if self.code:
            out["code"] = self.code
        return out


@dataclass(frozen=True)
class DuplicateKey:
    key: str
    occurrences: int
    lines: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "occurrences": self.occurrences, "lines": list(self.lines)}


@dataclass(frozen=True)
class ParseMeta:
    line_count: int
    format: ConfigFormat
    profile: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"line_count": self.line_count, "format": self.format.value}
        if self.profile is not None:
            out["profile"] = self.profile
        return out


@dataclass(frozen=True)
class ParsedConfig:
    """Result of parsing one side. ``values`` is key -> string, last write wins."""
    values: Dict[str, str]
    duplicates: Tuple[DuplicateKey, ...]
    issues: Tuple[ParseIssue, ...]
    meta: ParseMeta

    @property
    def ok(self) -> bool:
        return not any(issue.kind is IssueKind.ERROR for issue in self.issues)

    @property
    def errors(self) -> List[ParseIssue]:
        return [issue for issue in self.issues if issue.kind is IssueKind.ERROR]

    @property
    def warnings(self) -> List[str]:
        out = [f"line {i.line}: {i.message}" for i in self.issues if i.kind is IssueKind.WARNING]
        if self.duplicates:
            out.append(f"Found {len(self.duplicates)} duplicate key(s). Last value wins.")
        errors = self.errors
        if errors:
            out.append(f"Found {len(errors)} parse error(s). Some lines were ignored.")
        return out

    def side_summary(self) -> Dict[str, Any]:
        return {
            "errors": [e.to_dict() for e in self.errors],
            "duplicates": [d.to_dict() for d in self.duplicates],
            "warnings": self.warnings,
            "meta": self.meta.to_dict(),
        }


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValueEntry:
    """An added, removed or unchanged entry."""
    key: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "value": self.value}


@dataclass(frozen=True)
class ChangedEntry:
    key: str
    from_value: str
    to_value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "from": self.from_value, "to": self.to_value}


@dataclass(frozen=True)
class DiffResult:
    added: Tuple[ValueEntry, ...]
    removed: Tuple[ValueEntry, ...]
    changed: Tuple[ChangedEntry, ...]
    unchanged: Tuple[ValueEntry, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": [e.to_dict() for e in self.added],
            "removed": [e.to_dict() for e in self.removed],
            "changed": [e.to_dict() for e in self.changed],
            "unchanged": [e.to_dict() for e in self.unchanged],
        }


# ---------------------------------------------------------------------------
# Rules & findings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StaticMessage:
    text: str
    kind: str = field(default="static", init=False)

    def render(self, key: str) -> str:
        return self.text


@dataclass(frozen=True)
class TemplatedMessage:
    """Message rendered per key; ``{key}`` is the only placeholder."""
    template: str
    kind: str = field(default="templated", init=False)

    def render(self, key: str) -> str:
        return self.template.replace("{key}", key)


@dataclass(frozen=True)
class RiskFinding:
    key: str
    severity: Severity
    rule_id: str
    message: str
    context: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "key": self.key,
            "severity": self.severity.value,
            "rule_id": self.rule_id,
            "message": self.message,
        }
        if self.context:
            out["context"] = self.context
        if self.note:
            out["note"] = self.note
        return out


@dataclass(frozen=True)
class RuleEvaluation:
    findings: Tuple[RiskFinding, ...]
    warnings: Tuple[str, ...]


# ---------------------------------------------------------------------------
# Redaction & line hints
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RedactedValue:
    original_length: int
    redacted: str

    def to_dict(self) -> Dict[str, Any]:
        return {"original_length": self.original_length, "redacted": self.redacted}


@dataclass(frozen=True)
class LineHint:
    left_line: Optional[int] = None
    right_line: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"left_line": self.left_line, "right_line": self.right_line}
