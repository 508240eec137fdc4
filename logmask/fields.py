"""
Field-path and callback masking for context data.

Field rules target values by dot path ("user.password", "users.*.email") and
say what to do with them: remove the key, replace the value, run a single
regex over it, or hand it to the global pattern list. Callbacks bound to an
exact path take precedence over any field rule for that path.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from . import paths
from .datatypes import is_numeric
from .errors import ConfigurationError, MaskingError, MaskingOperationError
from .patterns import PatternValidator, shared_validator
from .sanitize import sanitize_error_message
from .values import ValueKind, kind_of, stringify, values_differ

logger = logging.getLogger(__name__)

DEFAULT_REGEX_REPLACEMENT = "***MASKED***"

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}


class _Removed:
    """Marker returned when a value is to be deleted rather than replaced."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REMOVED"

    def __bool__(self) -> bool:
        return False


REMOVED = _Removed()


class FieldMaskKind(str, Enum):
    REMOVE = "remove"
    REPLACE = "replace"
    MASK_REGEX = "mask_regex"
    USE_GLOBAL_PATTERNS = "use_global_patterns"


@dataclass(frozen=True)
class FieldMaskConfig:
    """
    What to do with the value at a field path.

    Build instances through the factories rather than the constructor:

        FieldMaskConfig.remove()
        FieldMaskConfig.replace("[REDACTED]")
        FieldMaskConfig.regex_mask("/\\d{4}$/", "****")
        FieldMaskConfig.use_global_patterns()
    """

    kind: FieldMaskKind
    replacement: Optional[str] = None
    pattern: Optional[str] = None

    @classmethod
    def remove(cls) -> "FieldMaskConfig":
        return cls(FieldMaskKind.REMOVE)

    @classmethod
    def replace(cls, replacement: str) -> "FieldMaskConfig":
        if not isinstance(replacement, str):
            raise ConfigurationError.invalid_type("replacement", "string", replacement)
        return cls(FieldMaskKind.REPLACE, replacement=replacement)

    @classmethod
    def regex_mask(
        cls,
        pattern: str,
        replacement: str = DEFAULT_REGEX_REPLACEMENT,
        validator: Optional[PatternValidator] = None,
    ) -> "FieldMaskConfig":
        """
        Raises:
            ConfigurationError: If the pattern or replacement is empty.
            InvalidRegexPatternError: If the pattern is invalid or unsafe.
        """
        if not isinstance(pattern, str) or not pattern.strip():
            raise ConfigurationError.empty_value("regex pattern")
        if not isinstance(replacement, str) or not replacement.strip():
            raise ConfigurationError.empty_value("replacement string")
        (validator or shared_validator).validate_all([pattern])
        return cls(FieldMaskKind.MASK_REGEX, replacement=replacement, pattern=pattern)

    @classmethod
    def use_global_patterns(cls) -> "FieldMaskConfig":
        return cls(FieldMaskKind.USE_GLOBAL_PATTERNS)

    @classmethod
    def coerce(cls, config: Union["FieldMaskConfig", str]) -> "FieldMaskConfig":
        """Accept a config or a plain string, which means replace()."""
        if isinstance(config, FieldMaskConfig):
            return config
        if isinstance(config, str):
            return cls.replace(config)
        raise ConfigurationError.invalid_type("field mask config", "FieldMaskConfig or string", config)

    @property
    def should_remove(self) -> bool:
        return self.kind is FieldMaskKind.REMOVE

    @property
    def has_regex_pattern(self) -> bool:
        return self.kind is FieldMaskKind.MASK_REGEX

    def to_dict(self) -> dict[str, Optional[str]]:
        return {"type": self.kind.value, "replacement": self.replacement, "pattern": self.pattern}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldMaskConfig":
        """
        Rebuild a config from to_dict() output.

        Raises:
            ConfigurationError: On an unknown type or missing replacement.
        """
        raw_type = data.get("type", FieldMaskKind.REPLACE.value)
        try:
            kind = FieldMaskKind(raw_type)
        except ValueError:
            valid = ", ".join(k.value for k in FieldMaskKind)
            raise ConfigurationError.for_parameter(
                "type", raw_type, f"Must be one of: {valid}"
            ) from None

        if kind is FieldMaskKind.REMOVE:
            return cls.remove()
        if kind is FieldMaskKind.USE_GLOBAL_PATTERNS:
            return cls.use_global_patterns()
        if kind is FieldMaskKind.MASK_REGEX:
            return cls.regex_mask(
                data.get("pattern") or "",
                data.get("replacement") or DEFAULT_REGEX_REPLACEMENT,
            )
        replacement = data.get("replacement")
        if replacement is None or replacement == "":
            raise ConfigurationError.for_parameter(
                "replacement", replacement, "Replacement value cannot be null or empty for REPLACE type"
            )
        return cls.replace(replacement)


def reparse_literal(literal: str, original: Any) -> Any:
    """
    Convert a replacement literal into the original value's kind when it
    can be read as one, otherwise keep it as a string.

    Example:
        reparse_literal("0", 42)        # 0
        reparse_literal("1.5", 9.99)    # 1.5
        reparse_literal("false", True)  # False
        reparse_literal("N/A", 42)      # "N/A"
    """
    kind = kind_of(original)
    if kind is ValueKind.INTEGER and is_numeric(literal):
        try:
            return int(literal.strip())
        except ValueError:
            return int(float(literal))
    if kind is ValueKind.DOUBLE and is_numeric(literal):
        return float(literal)
    if kind is ValueKind.BOOLEAN:
        word = literal.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return literal


class ContextProcessor:
    """
    Applies field rules and callbacks to a context, in place.

    Both entry points return the set of concrete paths they visited so later
    stages can leave those values alone.

    Args:
        field_paths: Dot path (may contain "*") -> FieldMaskConfig or string.
        custom_callbacks: Exact dot path -> callable(value) returning the mask.
        audit_logger: Optional (path, original, masked) callback.
        pattern_masker: Applies the global pattern list to a string, or None
            when no global patterns are configured.
        validator: Validator used to compile MASK_REGEX patterns.
    """

    def __init__(
        self,
        field_paths: Optional[dict[str, Union[FieldMaskConfig, str]]] = None,
        custom_callbacks: Optional[dict[str, Callable[[Any], Any]]] = None,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
        pattern_masker: Optional[Callable[[str], str]] = None,
        validator: Optional[PatternValidator] = None,
    ):
        self.field_paths = {
            path: FieldMaskConfig.coerce(config) for path, config in (field_paths or {}).items()
        }
        self.custom_callbacks = dict(custom_callbacks or {})
        self.audit_logger = audit_logger
        self.pattern_masker = pattern_masker
        self._validator = validator or shared_validator

    def _audit(self, path: str, original: Any, masked: Any) -> None:
        if self.audit_logger is not None:
            self.audit_logger(path, original, masked)

    def resolve_targets(self, context: dict[str, Any]) -> dict[str, FieldMaskConfig]:
        """
        Map each concrete path present in context to the rule that governs it.

        Exact rules beat wildcard rules for the same concrete path; among
        wildcard rules the first declared wins. Paths bound to a callback
        are left to process_custom_callbacks().
        """
        exact = {path for path in self.field_paths if not paths.is_wildcard(path)}
        targets: dict[str, FieldMaskConfig] = {}
        for pattern, config in self.field_paths.items():
            if pattern in exact:
                concrete = [pattern] if paths.has(context, pattern) else []
            else:
                concrete = [p for p in paths.expand(context, pattern) if p not in exact]
            for path in concrete:
                if path in self.custom_callbacks or path in targets:
                    continue
                targets[path] = config
        return targets

    def mask_field_paths(self, context: dict[str, Any]) -> set[str]:
        """
        Apply field rules to context in place.

        Returns:
            The concrete paths that were handled. A rule that fails is audited
            as "<path>_masking_error" and its path is left unprocessed.
        """
        processed: set[str] = set()
        removals: list[str] = []

        for path, config in self.resolve_targets(context).items():
            value = paths.get(context, path)
            try:
                masked = self.mask_value(path, value, config)
            except MaskingError as e:
                logger.error(f"Field rule for '{path}' failed: {e}")
                self._audit(f"{path}_masking_error", value, sanitize_error_message(str(e)))
                continue

            if masked is REMOVED:
                removals.append(path)
                self._audit(path, value, None)
            elif values_differ(value, masked):
                paths.set_path(context, path, masked)
                self._audit(path, value, masked)
            processed.add(path)

        # Deleting from the end keeps earlier list indices valid
        for path in reversed(removals):
            paths.delete(context, path)
        return processed

    def process_custom_callbacks(self, context: dict[str, Any], processed: Optional[set[str]] = None) -> set[str]:
        """
        Run callbacks on their exact paths, in place.

        A callback that raises is audited as "<path>_callback_error" with a
        sanitized message; its path still counts as processed.
        """
        already = processed or set()
        handled: set[str] = set()

        for path, callback in self.custom_callbacks.items():
            if path in already or not paths.has(context, path):
                continue
            value = paths.get(context, path)
            try:
                masked = callback(value)
            except Exception as e:
                message = sanitize_error_message(str(e))
                logger.warning(f"Callback for '{path}' failed: {message}")
                self._audit(f"{path}_callback_error", value, f"Callback failed: {message}")
                handled.add(path)
                continue

            if values_differ(value, masked):
                paths.set_path(context, path, masked)
                self._audit(path, value, masked)
            handled.add(path)

        return handled

    def mask_value(self, path: str, value: Any, config: FieldMaskConfig) -> Any:
        """
        Compute the masked value for one path.

        Returns:
            REMOVED for removal, otherwise the replacement value.

        Raises:
            MaskingOperationError: If the rule cannot be applied to the value.
        """
        if config.kind is FieldMaskKind.REMOVE:
            return REMOVED
        if config.kind is FieldMaskKind.REPLACE:
            return reparse_literal(config.replacement or "", value)
        if config.kind is FieldMaskKind.MASK_REGEX:
            return self._regex_mask(path, value, config)
        if config.kind is FieldMaskKind.USE_GLOBAL_PATTERNS:
            return self._global_mask(path, value)
        raise MaskingOperationError.field_path_masking_failed(path, value, f"Unknown rule type {config.kind}")

    def _regex_mask(self, path: str, value: Any, config: FieldMaskConfig) -> Any:
        text = stringify(value)
        rule = self._validator.compile_rule(config.pattern, config.replacement or DEFAULT_REGEX_REPLACEMENT)
        try:
            masked = rule.sub(text)
        except (re.error, RecursionError, IndexError) as e:
            raise MaskingOperationError.regex_masking_failed(config.pattern, value, str(e)) from e
        return value if masked == text else masked

    def _global_mask(self, path: str, value: Any) -> Any:
        if self.pattern_masker is None:
            raise MaskingOperationError.field_path_masking_failed(
                path, value, "UseGlobalPatterns requires at least one global pattern"
            )
        text = stringify(value)
        masked = self.pattern_masker(text)
        return value if masked == text else masked
