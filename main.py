#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ConfigDiff - HTTP Server

Exposes the compare / validate pipeline over HTTP:
- Compare two configs (diff buckets, risk findings, redacted values)
- Validate each side on its own
- Redaction and line lookup helpers for UIs

Server configuration via environment variables (defaults to 0.0.0.0:3000).
Set HOST, PORT and CONFIGDIFF_* in .env to customize.
"""

import uvicorn
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from configdiff import __version__
from configdiff.config import Config
from configdiff.line_resolver import resolve_finding_lines, resolve_line_range
from configdiff.logging_config import setup_logging
from configdiff.models import ArrayMode, ConfigFormat, ConfigTooLargeError
from configdiff.parsers import ENV_PROFILES, ParseOptions
from configdiff.pipeline import build_parse_options, compare_configs, validate_configs
from configdiff.redaction import RedactionOptions, is_sensitive_key, redact_value
from configdiff.rules import DEFAULT_RULES, RULESET_VERSION, RiskRule, load_rules, rules_to_dicts
from configdiff.sequencing import RequestSequencer

logger = logging.getLogger("configdiff.api")

SERVICE_NAME = "ConfigDiff - Config Diff & Risk Findings"


# Request models
class ParseRequest(BaseModel):
    """Texts and parse options shared by compare and validate"""
    left: str = Field(default="", description="Left (baseline) config text")
    right: str = Field(default="", description="Right (candidate) config text")
    format: str = Field(default="env", description="Config format: env, json or yaml")
    profile: Optional[str] = Field(default=None, description="Env profile: dotenv or compose")
    yaml_strict: bool = Field(default=False, description="Treat duplicate YAML keys as errors")
    array_mode: str = Field(default="index", description="Array flattening: index, stringify or ignore")

    # Env toggles; unset values come from the profile
    allow_export_prefix: Optional[bool] = None
    allow_empty_values: Optional[bool] = None
    allow_duplicate_keys: Optional[bool] = None
    strip_inline_comments: Optional[bool] = None
    allow_multiline: Optional[bool] = None
    expand_variables: Optional[bool] = None
    expand_from: Optional[Dict[str, str]] = None

    # Sequencing ("last request wins")
    client_id: Optional[str] = Field(default=None, description="Caller id for stale-result detection")
    request_id: Optional[int] = Field(default=None, description="Caller-supplied increasing request id")

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        v = (v or "").strip().lower()
        if v not in {f.value for f in ConfigFormat}:
            raise ValueError('format must be one of: env, json, yaml')
        return v

    @field_validator('array_mode')
    @classmethod
    def validate_array_mode(cls, v):
        v = (v or "").strip().lower()
        if v not in {m.value for m in ArrayMode}:
            raise ValueError('array_mode must be one of: index, stringify, ignore')
        return v

    @field_validator('profile')
    @classmethod
    def validate_profile(cls, v):
        if v is None or not v.strip():
            return None
        v = v.strip().lower()
        if v not in ENV_PROFILES:
            raise ValueError(f'profile must be one of: {", ".join(ENV_PROFILES)}')
        return v

    def parse_options(self, config: Config) -> ParseOptions:
        return build_parse_options(
            profile=self.profile,
            yaml_strict=self.yaml_strict,
            array_mode=self.array_mode,
            max_keys=config.max_keys,
            max_input_bytes=config.max_input_bytes,
            allow_export_prefix=self.allow_export_prefix,
            allow_empty_values=self.allow_empty_values,
            allow_duplicate_keys=self.allow_duplicate_keys,
            strip_inline_comments=self.strip_inline_comments,
            allow_multiline=self.allow_multiline,
            expand_variables=self.expand_variables,
            expand_from=self.expand_from,
        )


class CompareRequest(ParseRequest):
    """Compare two configs"""
    redact: bool = Field(default=False, description="Include redacted display values")
    sensitive_only: bool = Field(default=False, description="Only redact keys that look sensitive")
    include_line_hints: bool = Field(default=False, description="Attach left/right line hints to findings")


class ValidateRequest(ParseRequest):
    """Validate both sides independently"""


class RedactRequest(BaseModel):
    """Redact one value for display"""
    value: str
    key: Optional[str] = None
    sensitive_only: bool = False
    mask_char: str = Field(default="•", min_length=1, max_length=1)
    reveal_first: int = Field(default=2, ge=0)
    reveal_last: int = Field(default=4, ge=0)
    min_mask_length: int = Field(default=8, ge=1)


class ResolveLineRequest(BaseModel):
    """Find the source line for an issue or finding"""
    record: Dict[str, Any] = Field(description="Issue or finding as returned by compare/validate")
    text: str = Field(default="", description="Source text for single-side lookups")
    left_text: Optional[str] = None
    right_text: Optional[str] = None
    format: str = "env"
    profile: Optional[str] = None

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        v = (v or "").strip().lower()
        if v not in {f.value for f in ConfigFormat}:
            raise ValueError('format must be one of: env, json, yaml')
        return v


def load_active_rules(config: Config) -> Sequence[RiskRule]:
    """Rule set from CONFIGDIFF_RULES_FILE, or the built-in defaults."""
    if not config.rules_file:
        return DEFAULT_RULES
    # RuleDefinitionError propagates: a broken rule file must stop startup
    rules = load_rules(config.rules_file)
    logger.info(f"✅ Using {len(rules)} custom rule(s) from {config.rules_file}")
    return rules


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the FastAPI application for ``config`` (defaults from the environment)."""
    config = config or Config()
    config.validate()

    rules = load_active_rules(config)
    sequencer = RequestSequencer(capacity=config.sequencer_capacity)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Compare env / JSON / YAML configs and flag risky changes",
        version=__version__,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials="*" not in config.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.rules = rules
    app.state.sequencer = sequencer

    def _begin(request: ParseRequest) -> Optional[int]:
        if not request.client_id:
            return request.request_id
        return sequencer.begin(request.client_id, request.request_id)

    def _stale(request: ParseRequest, request_id: Optional[int]) -> bool:
        if not request.client_id or request_id is None:
            return False
        return not sequencer.is_current(request.client_id, request_id)

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "ruleset_version": RULESET_VERSION,
            "rules": len(rules),
        }

    @app.get("/api/rules")
    def list_rules():
        """Active risk rule set"""
        return {
            "version": RULESET_VERSION if rules is DEFAULT_RULES else "custom",
            "source": config.rules_file or "default",
            "rules": rules_to_dicts(rules),
        }

    @app.get("/api/profiles")
    def list_profiles():
        """Env parser profiles and their default options"""
        profiles: List[Dict[str, Any]] = []
        for profile in ENV_PROFILES.values():
            options = profile.options
            profiles.append({
                "id": profile.id,
                "label": profile.label,
                "options": {
                    "allow_export_prefix": options.allow_export_prefix,
                    "allow_empty_values": options.allow_empty_values,
                    "allow_duplicate_keys": options.allow_duplicate_keys,
                    "strip_inline_comments": options.strip_inline_comments,
                    "allow_multiline": options.allow_multiline,
                    "expand_variables": options.expand_variables,
                },
            })
        return {"profiles": profiles}

    @app.post("/api/compare")
    def compare(request: CompareRequest):
        """
        Compare two configs.

        Returns the diff buckets, ordered findings, warnings and per-side
        parse summaries. When ``client_id`` is set and a newer request for the
        same client has started meanwhile, only ``{request_id, stale: true}``
        is returned.
        """
        request_id = _begin(request)
        try:
            result = compare_configs(
                request.left,
                request.right,
                request.format,
                request.parse_options(config),
                rules=rules,
                max_findings=config.max_findings,
                advisory_threshold=config.advisory_findings,
                redact=request.redact,
                sensitive_only=request.sensitive_only,
            )
        except ConfigTooLargeError as e:
            logger.warning(f"Compare rejected: {e}")
            raise HTTPException(status_code=413, detail=str(e))

        if _stale(request, request_id):
            return {"request_id": request_id, "stale": True}

        payload = result.to_dict()
        if request.include_line_hints:
            profile = result.left.meta.profile
            for finding, data in zip(result.findings, payload["findings"]):
                hint = resolve_finding_lines(finding, request.left, request.right, request.format, profile)
                data["lines"] = hint.to_dict()

        payload["request_id"] = request_id
        payload["stale"] = False
        return payload

    @app.post("/api/validate")
    def validate(request: ValidateRequest):
        """Validate each side on its own and total issues by severity"""
        request_id = _begin(request)
        report = validate_configs(
            request.left,
            request.right,
            request.format,
            request.parse_options(config),
            rules=rules,
            max_findings=config.max_findings,
            advisory_threshold=config.advisory_findings,
        )

        if _stale(request, request_id):
            return {"request_id": request_id, "stale": True}

        payload = report.to_dict()
        payload["request_id"] = request_id
        payload["stale"] = False
        return payload

    @app.post("/api/redact")
    def redact(request: RedactRequest):
        """Redact a single value"""
        options = RedactionOptions(
            mask_char=request.mask_char,
            reveal_first=request.reveal_first,
            reveal_last=request.reveal_last,
            min_mask_length=request.min_mask_length,
        )
        sensitive = is_sensitive_key(request.key) if request.key else None
        if request.sensitive_only and not sensitive:
            redacted = {"original_length": len(request.value), "redacted": request.value}
        else:
            redacted = redact_value(request.value, options).to_dict()
        redacted["sensitive_key"] = sensitive
        return redacted

    @app.post("/api/resolve-line")
    def resolve_line(request: ResolveLineRequest):
        """Best-effort line lookup for an issue (one side) or a finding (both sides)"""
        if request.left_text is not None or request.right_text is not None:
            hint = resolve_finding_lines(
                request.record,
                request.left_text or "",
                request.right_text or "",
                request.format,
                request.profile,
            )
            return hint.to_dict()

        found = resolve_line_range(request.record, request.text, request.format, request.profile)
        if found is None:
            return {"line": None, "line_end": None}
        return {"line": found[0], "line_end": found[1]}

    return app


app = create_app()


def main():
    """Start the ConfigDiff server"""
    config = app.state.config
    setup_logging(config.log_level)

    logger.info("=" * 80)
    logger.info(f"🚀 {SERVICE_NAME} v{__version__}")
    logger.info(f"   Rules: {len(app.state.rules)} (ruleset {RULESET_VERSION})")
    logger.info(f"   Limits: {config.max_keys} keys, {config.max_findings} findings, "
                f"{config.max_input_bytes} bytes per side")
    logger.info("📚 ENDPOINTS:")
    logger.info("   POST /api/compare       - Diff + risk findings")
    logger.info("   POST /api/validate      - Per-side validation")
    logger.info("   POST /api/redact        - Redact a value")
    logger.info("   POST /api/resolve-line  - Line lookup for issues/findings")
    logger.info("   GET  /api/rules         - Active rule set")
    logger.info("   GET  /api/profiles      - Env parser profiles")
    logger.info("   GET  /health            - Health check")
    logger.info("=" * 80)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
