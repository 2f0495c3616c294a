"""Risk rule record and construction helpers."""

import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional, Pattern, Union

from configdiff.models import (
    SEVERITY_ALIASES, RuleDefinitionError, Severity, StaticMessage, TemplatedMessage, normalize_severity,
)

RuleMessage = Union[StaticMessage, TemplatedMessage]

# Contexts a rule can be evaluated in: the three diff buckets plus
# "present" (a key that simply exists on one side, used by validate)
DIFF_CONTEXTS = frozenset({"added", "removed", "changed"})
ALL_CONTEXTS = DIFF_CONTEXTS | {"present"}


@dataclass(frozen=True)
class RiskRule:
    """
    Declarative risk rule.

    A rule without ``key_pattern`` matches every key; a rule without
    ``value_pattern`` ignores the value. Patterns use search semantics.
    """
    id: str
    severity: Severity
    message: RuleMessage
    key_pattern: Optional[Pattern[str]] = None
    value_pattern: Optional[Pattern[str]] = None
    production_severity: Optional[Severity] = None
    applies_to: FrozenSet[str] = ALL_CONTEXTS

    def matches_key(self, key: str) -> bool:
        return self.key_pattern is None or self.key_pattern.search(key) is not None

    def matches_value(self, value: Optional[str]) -> bool:
        if self.value_pattern is None:
            return True
        if value is None:
            return False
        return self.value_pattern.search(value) is not None

    def matches(self, key: str, value: Optional[str]) -> bool:
        return self.matches_key(key) and self.matches_value(value)

    def render(self, key: str) -> str:
        return self.message.render(key)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "severity": self.severity.value}
        for name, pattern in (("key_pattern", self.key_pattern), ("value_pattern", self.value_pattern)):
            if pattern is not None:
                out[name] = pattern.pattern
                out[f"{name}_flags"] = "i" if pattern.flags & re.IGNORECASE else ""
        if isinstance(self.message, TemplatedMessage):
            out["message"] = {"kind": self.message.kind, "template": self.message.template}
        else:
            out["message"] = {"kind": self.message.kind, "text": self.message.text}
        if self.production_severity is not None:
            out["production_severity"] = self.production_severity.value
        out["applies_to"] = sorted(self.applies_to)
        return out


def _compile(pattern: Optional[str], flags: int, rule_id: str) -> Optional[Pattern[str]]:
    if pattern is None:
        return None
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise RuleDefinitionError(f"Rule '{rule_id}': invalid pattern {pattern!r}: {exc}") from exc


def _severity(value: Any, rule_id: str) -> Severity:
    # Aliases (critical, warn, info, ...) are accepted; anything else is a typo
    if not isinstance(value, Severity) and str(value).strip().lower() not in SEVERITY_ALIASES:
        raise RuleDefinitionError(f"Rule '{rule_id}': unknown severity {value!r}")
    return normalize_severity(value)


def make_rule(
    rule_id: str,
    severity: Union[str, Severity],
    message: Optional[str] = None,
    *,
    template: Optional[str] = None,
    key: Optional[str] = None,
    value: Optional[str] = None,
    flags: int = re.IGNORECASE,
    value_flags: Optional[int] = None,
    production_severity: Union[str, Severity, None] = None,
    applies_to: Iterable[str] = ALL_CONTEXTS,
) -> RiskRule:
    """Build a RiskRule from plain strings. Exactly one of message/template is required."""
    if not rule_id:
        raise RuleDefinitionError("Rule id must not be empty")
    if (message is None) == (template is None):
        raise RuleDefinitionError(f"Rule '{rule_id}': exactly one of message or template is required")

    contexts = frozenset(applies_to)
    unknown = contexts - ALL_CONTEXTS
    if unknown or not contexts:
        raise RuleDefinitionError(f"Rule '{rule_id}': invalid contexts {sorted(unknown) or '[]'}")

    return RiskRule(
        id=rule_id,
        severity=_severity(severity, rule_id),
        message=TemplatedMessage(template) if template is not None else StaticMessage(message),
        key_pattern=_compile(key, flags, rule_id),
        value_pattern=_compile(value, flags if value_flags is None else value_flags, rule_id),
        production_severity=(
            _severity(production_severity, rule_id) if production_severity is not None else None
        ),
        applies_to=contexts,
    )
