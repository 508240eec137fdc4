"""
MaskingEngineBuilder - Fluent construction of MaskingEngine.

Example:
    engine = (
        MaskingEngineBuilder()
        .with_default_patterns()
        .add_pattern("/ORDER-\\d+/", "ORDER-***")
        .add_field_path("user.password", FieldMaskConfig.remove())
        .add_conditional_rule("errors_only", min_level_rule("ERROR"))
        .build()
    )

Unlike MaskingEngine(), a builder starts with no patterns at all; call
with_default_patterns() to include the built-in profile.
"""

from typing import Any, Callable, Optional, Union

from .audit import AuditLogger
from .conditions import Predicate
from .engine import MaskingEngine
from .fields import FieldMaskConfig
from .patterns import PatternValidator
from .plugins import MaskingPlugin, PluginAwareEngine, sort_plugins
from .profiles import default_patterns
from .recovery import FailureMode, FallbackMaskStrategy


class MaskingEngineBuilder:
    """Collects engine options; nothing is validated until build()."""

    def __init__(self):
        self._patterns: dict[str, str] = {}
        self._field_paths: dict[str, Union[FieldMaskConfig, str]] = {}
        self._callbacks: dict[str, Callable[[Any], Any]] = {}
        self._data_type_masks: dict[str, str] = {}
        self._conditional_rules: dict[str, Predicate] = {}
        self._audit_logger: Optional[AuditLogger] = None
        self._max_depth = 100
        self._on_rule_error = "mask"
        self._validator: Optional[PatternValidator] = None
        self._failure_mode: Union[FailureMode, str] = FailureMode.FAIL_SAFE
        self._fallback: Optional[FallbackMaskStrategy] = None
        self._plugins: list[MaskingPlugin] = []

    def with_patterns(self, patterns: dict[str, str]) -> "MaskingEngineBuilder":
        """Replace all patterns collected so far."""
        self._patterns = dict(patterns)
        return self

    def add_pattern(self, pattern: str, replacement: str) -> "MaskingEngineBuilder":
        self._patterns[pattern] = replacement
        return self

    def add_patterns(self, patterns: dict[str, str]) -> "MaskingEngineBuilder":
        self._patterns.update(patterns)
        return self

    def with_default_patterns(self) -> "MaskingEngineBuilder":
        self._patterns.update(default_patterns())
        return self

    def add_field_path(self, path: str, config: Union[FieldMaskConfig, str]) -> "MaskingEngineBuilder":
        self._field_paths[path] = config
        return self

    def add_field_paths(self, field_paths: dict[str, Union[FieldMaskConfig, str]]) -> "MaskingEngineBuilder":
        self._field_paths.update(field_paths)
        return self

    def add_callback(self, path: str, callback: Callable[[Any], Any]) -> "MaskingEngineBuilder":
        self._callbacks[path] = callback
        return self

    def with_data_type_masks(self, masks: dict[str, str]) -> "MaskingEngineBuilder":
        self._data_type_masks.update(masks)
        return self

    def add_data_type_mask(self, kind: str, mask: str) -> "MaskingEngineBuilder":
        self._data_type_masks[kind] = mask
        return self

    def add_conditional_rule(self, name: str, predicate: Predicate) -> "MaskingEngineBuilder":
        self._conditional_rules[name] = predicate
        return self

    def with_rule_error_policy(self, on_rule_error: str) -> "MaskingEngineBuilder":
        self._on_rule_error = on_rule_error
        return self

    def with_audit_logger(self, audit_logger: Optional[AuditLogger]) -> "MaskingEngineBuilder":
        self._audit_logger = audit_logger
        return self

    def with_max_depth(self, max_depth: int) -> "MaskingEngineBuilder":
        self._max_depth = max_depth
        return self

    def with_validator(self, validator: PatternValidator) -> "MaskingEngineBuilder":
        self._validator = validator
        return self

    def with_failure_mode(self, failure_mode: Union[FailureMode, str]) -> "MaskingEngineBuilder":
        self._failure_mode = failure_mode
        return self

    def with_fallback(self, fallback: FallbackMaskStrategy) -> "MaskingEngineBuilder":
        self._fallback = fallback
        return self

    def add_plugin(self, plugin: MaskingPlugin) -> "MaskingEngineBuilder":
        self._plugins.append(plugin)
        return self

    @property
    def plugins(self) -> list[MaskingPlugin]:
        return list(self._plugins)

    def build(self) -> MaskingEngine:
        """
        Build the engine, merging plugin patterns and field rules in
        ascending plugin priority.

        Raises:
            ConfigurationError: If any collected option is invalid.
        """
        patterns = dict(self._patterns)
        field_paths = dict(self._field_paths)
        for plugin in sort_plugins(self._plugins):
            patterns.update(plugin.get_patterns())
            field_paths.update(plugin.get_field_configs())

        return MaskingEngine(
            patterns=patterns,
            field_paths=field_paths,
            custom_callbacks=self._callbacks,
            audit_logger=self._audit_logger,
            max_depth=self._max_depth,
            data_type_masks=self._data_type_masks,
            conditional_rules=self._conditional_rules,
            on_rule_error=self._on_rule_error,
            validator=self._validator,
            failure_mode=self._failure_mode,
            fallback=self._fallback,
        )

    def build_with_plugins(self) -> Union[MaskingEngine, PluginAwareEngine]:
        """Build the engine, wrapped in plugin hooks when any plugin is registered."""
        engine = self.build()
        if not self._plugins:
            return engine
        return PluginAwareEngine(engine, self._plugins)
