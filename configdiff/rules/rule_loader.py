"""
Load risk rules from a YAML file.

Expected layout (either a top-level list or a ``rules:`` key)::

    rules:
      - id: internal-hostname
        severity: medium
        value_pattern: '\\.corp\\.example\\.com'
        flags: i
        message: "Value references an internal hostname."
      - id: feature-flag-key
        severity: low
        key_pattern: '^FEATURE_'
        message_template: "Feature flag '{key}' changed."
        applies_to: [added, removed, changed]
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

import yaml

from configdiff.models import RuleDefinitionError
from .definitions import ALL_CONTEXTS, RiskRule, make_rule

logger = logging.getLogger(__name__)

_KNOWN_FIELDS = {
    "id", "severity", "key_pattern", "value_pattern", "flags",
    "message", "message_template", "production_severity", "applies_to",
}


def _flags(raw: Any, rule_id: str) -> int:
    text = str(raw or "")
    unknown = set(text) - {"i"}
    if unknown:
        raise RuleDefinitionError(f"Rule '{rule_id}': unsupported flags {''.join(sorted(unknown))!r}")
    return re.IGNORECASE if "i" in text else 0


def rule_from_dict(data: Dict[str, Any]) -> RiskRule:
    """Build one rule from a mapping; raises RuleDefinitionError on bad input."""
    if not isinstance(data, dict):
        raise RuleDefinitionError(f"Rule entries must be mappings, got {type(data).__name__}")

    rule_id = str(data.get("id") or "").strip()
    if not rule_id:
        raise RuleDefinitionError("Rule is missing an 'id'")

    extra = set(data) - _KNOWN_FIELDS
    if extra:
        raise RuleDefinitionError(f"Rule '{rule_id}': unknown field(s) {sorted(extra)}")
    if "severity" not in data:
        raise RuleDefinitionError(f"Rule '{rule_id}': missing 'severity'")

    applies_to = data.get("applies_to") or sorted(ALL_CONTEXTS)
    if isinstance(applies_to, str):
        applies_to = [applies_to]

    return make_rule(
        rule_id,
        data["severity"],
        data.get("message"),
        template=data.get("message_template"),
        key=data.get("key_pattern"),
        value=data.get("value_pattern"),
        flags=_flags(data.get("flags"), rule_id),
        production_severity=data.get("production_severity"),
        applies_to=applies_to,
    )


def rules_from_data(data: Any) -> Tuple[RiskRule, ...]:
    """Build a rule set from already-parsed YAML/JSON data."""
    if isinstance(data, dict):
        data = data.get("rules")
    if not isinstance(data, list):
        raise RuleDefinitionError("Rule file must contain a list of rules (or a 'rules:' list)")

    rules = tuple(rule_from_dict(item) for item in data)
    ids = [rule.id for rule in rules]
    repeated = sorted({rule_id for rule_id in ids if ids.count(rule_id) > 1})
    if repeated:
        raise RuleDefinitionError(f"Duplicate rule id(s): {repeated}")
    return rules


def load_rules(path: Union[str, Path]) -> Tuple[RiskRule, ...]:
    """
    Load a rule set from a YAML file.

    Raises:
        RuleDefinitionError: unreadable file, invalid YAML or malformed rule
    """
    rule_path = Path(path)
    try:
        with open(rule_path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise RuleDefinitionError(f"Cannot read rule file {rule_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RuleDefinitionError(f"Invalid YAML in rule file {rule_path}: {exc}") from exc

    rules = rules_from_data(data)
    logger.info(f"Loaded {len(rules)} rule(s) from {rule_path}")
    return rules


def rules_to_dicts(rules: Sequence[RiskRule]) -> List[Dict[str, Any]]:
    return [rule.to_dict() for rule in rules]
