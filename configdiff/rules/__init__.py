"""
Risk Rules

Declarative rule set plus the engine that evaluates it against a diff.
"""

from .definitions import ALL_CONTEXTS, DIFF_CONTEXTS, RiskRule, make_rule
from .default_rules import DEFAULT_RULES, RULESET_VERSION
from .engine import (
    DEFAULT_ADVISORY_THRESHOLD,
    DEFAULT_MAX_FINDINGS,
    FindingCollector,
    apply_rules,
    diagnostics_to_findings,
    looks_like_production,
    scan_values,
)
from .rule_loader import load_rules, rule_from_dict, rules_from_data, rules_to_dicts

__all__ = [
    'RiskRule',
    'make_rule',
    'ALL_CONTEXTS',
    'DIFF_CONTEXTS',
    'DEFAULT_RULES',
    'RULESET_VERSION',
    'DEFAULT_MAX_FINDINGS',
    'DEFAULT_ADVISORY_THRESHOLD',
    'FindingCollector',
    'apply_rules',
    'diagnostics_to_findings',
    'looks_like_production',
    'scan_values',
    'load_rules',
    'rule_from_dict',
    'rules_from_data',
    'rules_to_dicts',
]
