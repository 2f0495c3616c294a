"""
ConfigDiff - Config Diff & Risk Findings

Compares two env / JSON / YAML configs and flags risky changes.

Responsibilities:
- Parsing (dotenv / compose env files, JSON, YAML with duplicate detection)
- Key-level diff of flattened values
- Declarative risk rules (secrets, debug flags, CORS, localhost, ...)
- Redaction of values for display
- Line hints for issues and findings

Input: two config texts plus a format id
Output: diff buckets, ordered findings, per-side parse diagnostics
"""

from .models import (
    ConfigDiffError,
    ConfigTooLargeError,
    RuleDefinitionError,
    Severity,
    normalize_severity,
)
from .diff_engine import diff_entries
from .parsers import ParseOptions, parse_config
from .pipeline import (
    CompareResult,
    ValidationReport,
    build_parse_options,
    compare_configs,
    validate_configs,
)
from .redaction import is_sensitive_key, redact_value
from .line_resolver import resolve_finding_lines, resolve_line
from .rules import DEFAULT_RULES, RULESET_VERSION, apply_rules, load_rules
from .sequencing import RequestSequencer

__version__ = "1.0.0"

__all__ = [
    'ConfigDiffError',
    'ConfigTooLargeError',
    'RuleDefinitionError',
    'Severity',
    'normalize_severity',
    'diff_entries',
    'ParseOptions',
    'parse_config',
    'CompareResult',
    'ValidationReport',
    'build_parse_options',
    'compare_configs',
    'validate_configs',
    'is_sensitive_key',
    'redact_value',
    'resolve_finding_lines',
    'resolve_line',
    'DEFAULT_RULES',
    'RULESET_VERSION',
    'apply_rules',
    'load_rules',
    'RequestSequencer',
]
