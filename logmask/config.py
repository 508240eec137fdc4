"""
Configuration models using Pydantic.

MaskingConfig is the validated, immutable form of every MaskingEngine option.
Validation is exhaustive: a single bad entry rejects the whole configuration
with a ConfigurationError (never a raw pydantic ValidationError).

AuditSettings reads the audit rate limits from LOGMASK_AUDIT_* variables.
"""

import logging
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .audit import RATE_LIMIT_PROFILES
from .conditions import RULE_ERROR_POLICIES, ConditionalRule, normalize_rules
from .datatypes import parse_mask_table
from .errors import ConfigurationError, MaskingError
from .fields import FieldMaskConfig
from .paths import WILDCARD, split_path
from .patterns import PatternRule, PatternValidator, shared_validator
from .recovery import FailureMode

logger = logging.getLogger(__name__)

MIN_DEPTH = 1
MAX_DEPTH = 1000


def normalize_patterns(patterns: Any) -> dict[str, str]:
    """
    Accept a pattern -> replacement mapping, or an iterable of PatternRule or
    (pattern, replacement) pairs. Order is preserved.
    """
    if patterns is None:
        return {}
    if isinstance(patterns, dict):
        items: Iterable[Any] = patterns.items()
    elif isinstance(patterns, (list, tuple)):
        items = patterns
    else:
        raise ConfigurationError.invalid_type("patterns", "dict or list", patterns)

    normalized: dict[str, str] = {}
    for item in items:
        if isinstance(item, PatternRule):
            pattern, replacement = item.pattern, item.replacement
        elif isinstance(item, tuple) and len(item) == 2:
            pattern, replacement = item
        else:
            raise ConfigurationError.invalid_type("pattern rule", "PatternRule or (pattern, replacement)", item)
        if not isinstance(pattern, str):
            raise ConfigurationError.invalid_type("pattern", "string", pattern)
        if not pattern.strip():
            raise ConfigurationError.empty_value("regex pattern")
        if not isinstance(replacement, str):
            raise ConfigurationError.invalid_type("replacement", "string", replacement)
        normalized[pattern] = replacement
    return normalized


def _check_path(path: Any, allow_wildcard: bool = True) -> str:
    if not isinstance(path, str):
        raise ConfigurationError.invalid_type("field path", "string", path)
    if not path.strip():
        raise ConfigurationError.empty_value("field path")
    segments = split_path(path)
    if any(segment == "" for segment in segments):
        raise ConfigurationError.for_field_path(path, "Path segments cannot be empty")
    if not allow_wildcard and WILDCARD in segments:
        raise ConfigurationError.for_field_path(path, "Callback paths must be exact")
    return path


def _validator_from(info: ValidationInfo) -> PatternValidator:
    if info.context and info.context.get("validator") is not None:
        return info.context["validator"]
    return shared_validator


class MaskingConfig(BaseModel):
    """
    Immutable, validated engine configuration.

    Build with MaskingConfig.build(...) to get ConfigurationError on failure.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    patterns: dict[str, str] = Field(default_factory=dict)
    field_paths: dict[str, Any] = Field(default_factory=dict)
    custom_callbacks: dict[str, Any] = Field(default_factory=dict)
    audit_logger: Optional[Any] = None
    max_depth: int = 100
    data_type_masks: dict[str, str] = Field(default_factory=dict)
    conditional_rules: list[Any] = Field(default_factory=list)
    on_rule_error: str = "mask"
    failure_mode: FailureMode = FailureMode.FAIL_SAFE

    @field_validator("patterns", mode="before")
    @classmethod
    def validate_patterns(cls, value: Any, info: ValidationInfo) -> dict[str, str]:
        patterns = normalize_patterns(value)
        _validator_from(info).validate_all(patterns)
        return patterns

    @field_validator("field_paths", mode="before")
    @classmethod
    def validate_field_paths(cls, value: Any) -> dict[str, FieldMaskConfig]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigurationError.invalid_type("field_paths", "dict", value)
        return {_check_path(path): FieldMaskConfig.coerce(config) for path, config in value.items()}

    @field_validator("custom_callbacks", mode="before")
    @classmethod
    def validate_callbacks(cls, value: Any) -> dict[str, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigurationError.invalid_type("custom_callbacks", "dict", value)
        callbacks = {}
        for path, callback in value.items():
            _check_path(path, allow_wildcard=False)
            if not callable(callback):
                raise ConfigurationError.for_field_path(path, "Callback must be callable")
            callbacks[path] = callback
        return callbacks

    @field_validator("audit_logger", mode="before")
    @classmethod
    def validate_audit_logger(cls, value: Any) -> Any:
        if value is not None and not callable(value):
            raise ConfigurationError.invalid_type("audit_logger", "callable or None", value)
        return value

    @field_validator("max_depth", mode="before")
    @classmethod
    def validate_max_depth(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError.invalid_type("max_depth", "int", value)
        if not MIN_DEPTH <= value <= MAX_DEPTH:
            raise ConfigurationError.for_parameter(
                "max_depth", value, f"Must be between {MIN_DEPTH} and {MAX_DEPTH}"
            )
        return value

    @field_validator("data_type_masks", mode="before")
    @classmethod
    def validate_data_type_masks(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigurationError.invalid_type("data_type_masks", "dict", value)
        return {kind.value: spec for kind, spec in parse_mask_table(value).items()}

    @field_validator("conditional_rules", mode="before")
    @classmethod
    def validate_conditional_rules(cls, value: Any) -> list[ConditionalRule]:
        return normalize_rules(value)

    @field_validator("on_rule_error", mode="before")
    @classmethod
    def validate_on_rule_error(cls, value: Any) -> str:
        if value not in RULE_ERROR_POLICIES:
            raise ConfigurationError.for_parameter(
                "on_rule_error", value, f"Must be one of: {', '.join(RULE_ERROR_POLICIES)}"
            )
        return value

    @field_validator("failure_mode", mode="before")
    @classmethod
    def validate_failure_mode(cls, value: Any) -> FailureMode:
        return FailureMode.parse(value)

    @classmethod
    def build(cls, validator: Optional[PatternValidator] = None, **options: Any) -> "MaskingConfig":
        """
        Validate options into a MaskingConfig.

        Raises:
            ConfigurationError: On the first invalid option.
        """
        try:
            return cls.model_validate(options, context={"validator": validator})
        except ValidationError as e:
            raise _configuration_error(e) from None


def _configuration_error(error: ValidationError) -> MaskingError:
    first = error.errors()[0]
    original = (first.get("ctx") or {}).get("error")
    if isinstance(original, MaskingError):
        return original
    location = ".".join(str(part) for part in first.get("loc", ())) or "configuration"
    return ConfigurationError.for_parameter(location, first.get("input"), first.get("msg", str(error)))


class AuditSettings(BaseSettings):
    """Audit rate limits loaded from the environment (LOGMASK_AUDIT_*)."""

    model_config = SettingsConfigDict(env_prefix="LOGMASK_AUDIT_", extra="ignore")

    max_requests: int = Field(default=100, ge=1, le=1_000_000)
    window_seconds: int = Field(default=60, ge=1, le=86_400)
    cleanup_interval: int = Field(default=300, ge=60, le=604_800)
    profile: Optional[str] = Field(
        default=None,
        description="Named limits: strict, default, relaxed, testing",
    )

    @field_validator("profile")
    @classmethod
    def validate_profile(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in RATE_LIMIT_PROFILES:
            raise ValueError(f"Unknown audit profile '{value}', expected one of: {', '.join(RATE_LIMIT_PROFILES)}")
        return value
