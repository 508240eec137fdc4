"""
Error taxonomy for the masking engine.

Only configuration errors are allowed to escape from a constructor. Everything
raised while a record is being masked is caught at the smallest scope and
turned into an audit event, so one broken rule never breaks logging.

Hierarchy:
    MaskingError
    ├── ConfigurationError (also a ValueError)
    │   ├── InvalidRegexPatternError
    │   └── InvalidRateLimitConfigurationError
    ├── PatternEvaluationError
    ├── MaskingOperationError
    └── AuditSinkError
"""

import json
from typing import Any, Optional


def _preview(value: Any, limit: int = 100) -> str:
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, ensure_ascii=False, default=repr)
        except (TypeError, ValueError):
            return f"[{type(value).__name__}]"
    return text[:limit] + ("..." if len(text) > limit else "")


class MaskingError(Exception):
    """
    Base class for all errors raised by logmask.

    Every error has:
    - code: stable machine-readable string (snake_case)
    - context: structured details, rendered after the message
    """

    code: str = "masking_error"

    def __init__(self, message: str = "", context: Optional[dict[str, Any]] = None):
        self.message = message
        self.context = dict(context or {})
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.context:
            return self.message
        parts = []
        for key, value in self.context.items():
            try:
                encoded = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError):
                encoded = "[unserializable]"
            parts.append(f"{key}: {encoded}")
        return f"{self.message} [Context: {', '.join(parts)}]"

    @classmethod
    def with_context(cls, message: str, context: dict[str, Any]) -> "MaskingError":
        return cls(message, context)


class ConfigurationError(MaskingError, ValueError):
    """Invalid engine configuration. Raised at construction time only."""

    code = "configuration_error"

    @classmethod
    def for_parameter(cls, name: str, value: Any, reason: str) -> "ConfigurationError":
        return cls(
            f"Invalid configuration parameter '{name}': {reason}",
            {"parameter": name, "value": _preview(value)},
        )

    @classmethod
    def invalid_type(cls, name: str, expected: str, actual: Any) -> "ConfigurationError":
        actual_type = type(actual).__name__
        return cls(
            f"Invalid type for {name}: expected {expected}, got {actual_type}",
            {"parameter": name, "expected": expected, "actual": actual_type},
        )

    @classmethod
    def empty_value(cls, name: str) -> "ConfigurationError":
        return cls(f"{name.capitalize()} cannot be empty", {"parameter": name})

    @classmethod
    def for_field_path(cls, path: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid field path '{path}': {reason}", {"field_path": path})

    @classmethod
    def for_data_type_mask(cls, kind: str, mask: Any, reason: str) -> "ConfigurationError":
        return cls(
            f"Invalid data type mask for '{kind}': {reason}",
            {"data_type": kind, "mask": mask},
        )

    @classmethod
    def for_conditional_rule(cls, name: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid conditional rule '{name}': {reason}", {"rule": name})


class InvalidRegexPatternError(ConfigurationError):
    """A pattern is malformed, fails to compile, or is flagged as ReDoS-prone."""

    code = "invalid_regex_pattern"

    @classmethod
    def for_pattern(cls, pattern: str, reason: str) -> "InvalidRegexPatternError":
        return cls(
            f"Invalid regex pattern '{pattern}': {reason}",
            {"pattern": pattern, "reason": reason},
        )


class InvalidRateLimitConfigurationError(ConfigurationError):
    """Rate limiter limits or keys are out of range."""

    code = "invalid_rate_limit_configuration"


class PatternEvaluationError(MaskingError):
    """A compiled pattern failed while masking. The pattern is skipped."""

    code = "pattern_evaluation_error"

    @classmethod
    def for_pattern(cls, pattern: str, reason: str) -> "PatternEvaluationError":
        return cls(
            f"Pattern '{pattern}' failed during masking: {reason}",
            {"pattern": pattern},
        )


class MaskingOperationError(MaskingError):
    """A value could not be masked by a specific rule."""

    code = "masking_operation_failed"

    @classmethod
    def regex_masking_failed(cls, pattern: str, value: Any, reason: str) -> "MaskingOperationError":
        return cls(
            f"Regex masking failed for pattern '{pattern}': {reason}",
            {
                "operation_type": "regex_masking",
                "pattern": pattern,
                "input_preview": _preview(value),
            },
        )

    @classmethod
    def field_path_masking_failed(cls, path: str, value: Any, reason: str) -> "MaskingOperationError":
        return cls(
            f"Field path masking failed for path '{path}': {reason}",
            {
                "operation_type": "field_path_masking",
                "field_path": path,
                "value_type": type(value).__name__,
                "value_preview": _preview(value),
            },
        )

    @classmethod
    def custom_callback_failed(cls, path: str, value: Any, reason: str) -> "MaskingOperationError":
        return cls(
            f"Custom callback masking failed for path '{path}': {reason}",
            {
                "operation_type": "custom_callback",
                "field_path": path,
                "value_type": type(value).__name__,
                "value_preview": _preview(value),
            },
        )

    @classmethod
    def data_type_masking_failed(cls, kind: str, value: Any, reason: str) -> "MaskingOperationError":
        return cls(
            f"Data type masking failed for type '{kind}': {reason}",
            {
                "operation_type": "data_type_masking",
                "expected_type": kind,
                "actual_type": type(value).__name__,
            },
        )

    @classmethod
    def json_masking_failed(cls, candidate: str, reason: str) -> "MaskingOperationError":
        return cls(
            f"JSON masking failed: {reason}",
            {
                "operation_type": "json_masking",
                "json_preview": _preview(candidate, 200),
                "json_length": len(candidate),
            },
        )


class AuditSinkError(MaskingError):
    """The audit callback raised. Always swallowed, never aborts masking."""

    code = "audit_sink_error"


class StreamingOperationError(MaskingError):
    """A log file used by StreamingProcessor could not be opened."""

    code = "streaming_operation_error"

    @classmethod
    def cannot_open_input_file(cls, file_path: str, reason: str) -> "StreamingOperationError":
        return cls(
            f"Cannot open input file for streaming: {reason}",
            {"operation": "open_input_file", "file": file_path},
        )

    @classmethod
    def cannot_open_output_file(cls, file_path: str, reason: str) -> "StreamingOperationError":
        return cls(
            f"Cannot open output file for streaming: {reason}",
            {"operation": "open_output_file", "file": file_path},
        )
