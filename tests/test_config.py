"""
Tests for MaskingConfig and AuditSettings.
"""

import pytest
from pydantic import ValidationError

from logmask.conditions import ConditionalRule
from logmask.config import AuditSettings, MaskingConfig, normalize_patterns
from logmask.errors import ConfigurationError, InvalidRegexPatternError
from logmask.fields import FieldMaskConfig
from logmask.patterns import PatternRule, PatternValidator
from logmask.recovery import FailureMode


class TestMaskingConfig:
    """Test suite for constructor-time validation."""

    def test_defaults(self):
        """An empty configuration has no patterns and standard limits."""
        config = MaskingConfig.build()
        assert config.patterns == {}
        assert config.max_depth == 100
        assert config.on_rule_error == "mask"

    def test_patterns_preserve_order(self):
        """Pattern order is significant and must be kept."""
        patterns = {"/b/": "2", "/a/": "1", "/c/": "3"}
        assert list(MaskingConfig.build(patterns=patterns).patterns) == ["/b/", "/a/", "/c/"]

    def test_redos_pattern_rejected(self):
        """An unsafe pattern rejects the whole configuration."""
        with pytest.raises(InvalidRegexPatternError) as exc_info:
            MaskingConfig.build(patterns={"/\\d+/": "#", "/(a+)+/": "x"})
        assert "catastrophic backtracking" in str(exc_info.value)

    def test_uses_given_validator(self):
        """Verdicts land in the validator passed to build()."""
        validator = PatternValidator()
        MaskingConfig.build(validator=validator, patterns={"/\\d+/": "#"})
        assert validator.get_cache() == {"/\\d+/": True}

    def test_empty_pattern_rejected(self):
        """Blank patterns are a configuration error."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(patterns={"  ": "x"})

    def test_non_string_replacement_rejected(self):
        """Replacements must be strings."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(patterns={"/a/": 1})

    @pytest.mark.parametrize("depth", [0, 1001, "10", 5.0, True])
    def test_max_depth_range(self, depth):
        """max_depth must be an int between 1 and 1000."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(max_depth=depth)

    def test_max_depth_bounds_accepted(self):
        """1 and 1000 are both valid depths."""
        assert MaskingConfig.build(max_depth=1).max_depth == 1
        assert MaskingConfig.build(max_depth=1000).max_depth == 1000

    def test_field_paths_coerced(self):
        """String field configs become Replace configs."""
        config = MaskingConfig.build(field_paths={"a.b": "X"})
        assert config.field_paths == {"a.b": FieldMaskConfig.replace("X")}

    def test_field_path_empty_segment(self):
        """Paths with empty segments are rejected."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(field_paths={"a..b": "X"})

    def test_callback_must_be_callable(self):
        """Callbacks that cannot be called are rejected."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(custom_callbacks={"a": "not callable"})

    def test_callback_path_must_be_exact(self):
        """Wildcards are not allowed on callback paths."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(custom_callbacks={"users.*.id": str})

    def test_audit_logger_must_be_callable(self):
        """An audit logger that cannot be called is rejected."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(audit_logger="stdout")

    def test_unknown_type_mask_key(self):
        """Only known value kinds can carry a type mask."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(data_type_masks={"complex": "x"})

    def test_type_mask_aliases_normalized(self):
        """Kind aliases map to their canonical name."""
        config = MaskingConfig.build(data_type_masks={"int": "0"})
        assert config.data_type_masks == {"integer": "0"}

    def test_conditional_rules_normalized(self):
        """Predicates are wrapped as ConditionalRule."""
        config = MaskingConfig.build(conditional_rules={"always": lambda r: True})
        assert isinstance(config.conditional_rules[0], ConditionalRule)

    def test_invalid_rule_error_policy(self):
        """Unknown rule error policies are rejected."""
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(on_rule_error="ignore")

    def test_failure_mode_parsed(self):
        """Failure modes are accepted as strings and default to fail_safe."""
        assert MaskingConfig.build().failure_mode is FailureMode.FAIL_SAFE
        assert MaskingConfig.build(failure_mode="fail_open").failure_mode is FailureMode.FAIL_OPEN

    def test_invalid_failure_mode(self):
        with pytest.raises(ConfigurationError):
            MaskingConfig.build(failure_mode="explode")

    def test_frozen(self):
        """Configurations are immutable."""
        config = MaskingConfig.build()
        with pytest.raises(ValidationError):
            config.max_depth = 5


class TestNormalizePatterns:
    """Test suite for the accepted pattern shapes."""

    def test_rules_and_pairs(self):
        """PatternRules and (pattern, replacement) pairs can be mixed."""
        patterns = [PatternRule("/a/", "1", name="a"), ("/b/", "2")]
        assert normalize_patterns(patterns) == {"/a/": "1", "/b/": "2"}

    def test_rejects_other_shapes(self):
        """A bare string is not a pattern collection."""
        with pytest.raises(ConfigurationError):
            normalize_patterns("/a/")


class TestAuditSettings:
    """Test suite for environment-driven audit settings."""

    def test_defaults(self, monkeypatch):
        """Without environment variables the standard limits apply."""
        monkeypatch.delenv("LOGMASK_AUDIT_MAX_REQUESTS", raising=False)
        settings = AuditSettings()
        assert settings.max_requests == 100
        assert settings.window_seconds == 60
        assert settings.profile is None

    def test_reads_environment(self, monkeypatch):
        """LOGMASK_AUDIT_* variables are picked up."""
        monkeypatch.setenv("LOGMASK_AUDIT_PROFILE", "strict")
        monkeypatch.setenv("LOGMASK_AUDIT_CLEANUP_INTERVAL", "600")
        settings = AuditSettings()
        assert settings.profile == "strict"
        assert settings.cleanup_interval == 600

    def test_unknown_profile(self):
        """Only the named audit profiles are accepted."""
        with pytest.raises(ValidationError):
            AuditSettings(profile="chaotic")
