"""
Default risk rule set.

Static, versioned data. The engine receives a rule set per call, so callers
(and tests) can substitute their own.
"""

from typing import Tuple

from configdiff.redaction import SENSITIVE_KEY_PATTERN
from .definitions import DIFF_CONTEXTS, RiskRule, make_rule

RULESET_VERSION = "2024.2"

# Key fragments shared by several rules
_SECRET_KEY = r"(SECRET|TOKEN|PASSWORD|PASS(WD)?|API[_-]?KEY|PRIVATE[_-]?KEY|ACCESS[_-]?KEY|JWT|CSRF)"
_DATABASE_KEY = (
    r"(DATABASE|DB(_|$)|DBURL|CONNECTION_STRING|REDIS|MONGO|MYSQL|POSTGRES|PGHOST|PGUSER|PGPASSWORD|RABBIT|KAFKA)"
)
# Leaf segment of an env key or a flattened path (`app.debug`, `DEBUG`)
_LEAF = r"(?:^|[.\]])"
_TRUTHY = r"^(true|1|yes|on)$"

DEFAULT_RULES: Tuple[RiskRule, ...] = (
    # -- Secrets / auth material --
    make_rule(
        "key-secret-like", "high",
        template="Sensitive key '{key}' changed/added/removed. Verify secrets and deployment settings.",
        key=r"(SECRET|TOKEN|PASSWORD|PASS(WD)?|API[_-]?KEY|PRIVATE[_-]?KEY|ACCESS[_-]?KEY|JWT|AUTH|SESSION|COOKIE|CSRF)",
        applies_to=DIFF_CONTEXTS,
    ),
    make_rule(
        "secret-present", "high",
        template="Secret present for sensitive key '{key}' (consider using a secret manager).",
        key=SENSITIVE_KEY_PATTERN,
        value=r"\S",
        applies_to={"present"},
    ),
    make_rule(
        "secret-empty", "high",
        "Sensitive-looking key is set but empty. This typically breaks auth or creates unsafe defaults.",
        key=_SECRET_KEY,
        value=r"^\s*$",
    ),
    make_rule(
        "pem-block-in-value", "high",
        "Value appears to contain a PEM/key/cert block. Treat as a secret leak and rotate immediately.",
        value=r"-----BEGIN [A-Z0-9 _-]+-----",
    ),
    make_rule(
        "aws-access-key-like", "high",
        "Value looks like an AWS Access Key ID. Treat as sensitive and rotate if this is real.",
        value=r"\b(AKIA|ASIA)[0-9A-Z]{16}\b",
        value_flags=0,
    ),
    make_rule(
        "stripe-key-like", "high",
        "Value looks like a Stripe secret key. Treat as sensitive and rotate if this is real.",
        value=r"\bsk_(?:live|test)_[0-9a-zA-Z]{10,}\b",
        value_flags=0,
    ),
    make_rule(
        "google-api-key-like", "high",
        "Value looks like a Google API key. Treat as sensitive and rotate if this is real.",
        value=r"\bAIza[0-9A-Za-z\-_]{20,}",
        value_flags=0,
    ),
    make_rule(
        "url-embedded-credentials", "high",
        "Value is a URL with embedded credentials. Move the password to a secret store.",
        value=r"\b(?:postgres|postgresql|mysql|mariadb|mongodb(?:\+srv)?|redis|rediss|amqps?|https?)://[^/\s:@]+:[^/\s@]+@",
    ),
    make_rule(
        "jwt-like-value", "medium",
        "Value looks like a JWT. Tokens should not be committed to configuration.",
        value=r"^[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}$",
        value_flags=0,
    ),
    make_rule(
        "opaque-token-like", "low",
        "Value looks like an opaque hex/base64 token. Confirm it is not a secret.",
        value=r"^(?:[0-9a-fA-F]{32,}|[A-Za-z0-9+/_-]{32,}={0,2})$",
        value_flags=0,
    ),
    # -- Databases / queues / caches --
    make_rule(
        "key-database-like", "high",
        template="Database/infrastructure key '{key}' changed. Confirm the environment targets the correct backend.",
        key=_DATABASE_KEY,
        applies_to=DIFF_CONTEXTS,
    ),
    make_rule(
        "infra-empty", "high",
        "Infrastructure key is set but empty. This typically breaks startup or routes to the wrong backend.",
        key=r"(DATABASE|DB(_|$)|DBURL|CONNECTION_STRING|REDIS|MONGO|MYSQL|POSTGRES|PGHOST|PGUSER|PGPASSWORD|RABBIT|KAFKA|S3|BUCKET)",
        value=r"^\s*$",
    ),
    # -- Debug / env mode / logging --
    make_rule(
        "debug-true", "high",
        "Debug mode appears enabled. Consider disabling for production environments.",
        key=_LEAF + r"(DEBUG|APP_DEBUG)$",
        value=_TRUTHY,
    ),
    make_rule(
        "node-env-nonprod", "medium",
        "Environment mode appears non-production. Double-check this is intended.",
        key=_LEAF + r"(NODE_ENV|ENV|APP_ENV)$",
        value=r"^(dev|development|test|testing|local|staging)$",
    ),
    make_rule(
        "loglevel-verbose", "medium",
        "Log level is very verbose. Consider reducing in production to avoid leaking sensitive data.",
        key=r"(LOG_LEVEL|LOGGER|LOGGING|LEVEL)$",
        value=r"^(debug|trace|silly|verbose)$",
    ),
    # -- CORS / URLs / hosts --
    make_rule(
        "cors-wildcard", "high",
        "CORS appears to allow wildcard '*'. This is usually unsafe for production APIs.",
        key=r"(CORS|ORIGIN|ORIGINS|ALLOWED_ORIGINS|ALLOW_ORIGINS)",
        value=r"(^|[,\s])\*($|[,\s])",
    ),
    make_rule(
        "localhost-in-value", "medium",
        "Value references localhost/loopback. Ensure this is correct for the target environment.",
        value=r"(localhost|127\.0\.0\.1|\[::1\]|0\.0\.0\.0)",
        production_severity="high",
    ),
    make_rule(
        "http-url", "medium",
        "Value uses http://. Prefer https:// for production environments.",
        key=r"(URL|URI|ORIGIN|ENDPOINT|HOST)",
        value=r"^http://",
        production_severity="high",
    ),
    # -- Footgun flags --
    make_rule(
        "disable-auth-flag", "high",
        "Auth/TLS safety flag appears enabled. Verify this is not set in production.",
        key=r"(DISABLE_AUTH|SKIP_AUTH|BYPASS_AUTH|NO_AUTH|ALLOW_INSECURE|INSECURE|DISABLE_TLS|SKIP_TLS_VERIFY)",
        value=_TRUTHY,
    ),
    # -- Placeholder values --
    make_rule(
        "placeholder-value", "high",
        "Value looks like a placeholder (e.g., 'changeme', 'TODO', 'your_api_key'). Replace before deploying.",
        value=r"\b(changeme|change_me|todo|tbd|replace_me|your[_-]?(api|secret|token|key)|example|dummy|xxx+)\b",
    ),
)
