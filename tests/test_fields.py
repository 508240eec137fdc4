"""
Tests for FieldMaskConfig and ContextProcessor.

Tests cover:
- Config factories and dict round trips
- Remove / Replace / RegexMask / UseGlobalPatterns rules
- Wildcard resolution and exact-path precedence
- Custom callbacks and their failure handling
"""

import pytest

from logmask.errors import ConfigurationError, InvalidRegexPatternError
from logmask.fields import (
    REMOVED,
    ContextProcessor,
    FieldMaskConfig,
    FieldMaskKind,
    reparse_literal,
)


class TestFieldMaskConfig:
    """Test suite for FieldMaskConfig."""

    def test_factories(self):
        """Each factory produces the matching kind."""
        assert FieldMaskConfig.remove().should_remove is True
        assert FieldMaskConfig.replace("X").replacement == "X"
        assert FieldMaskConfig.regex_mask("/\\d+/").has_regex_pattern is True
        assert FieldMaskConfig.use_global_patterns().kind is FieldMaskKind.USE_GLOBAL_PATTERNS

    def test_regex_mask_default_replacement(self):
        """RegexMask defaults to "***MASKED***"."""
        assert FieldMaskConfig.regex_mask("/\\d+/").replacement == "***MASKED***"

    def test_regex_mask_rejects_unsafe_pattern(self):
        """Unsafe patterns are rejected when the config is built."""
        with pytest.raises(InvalidRegexPatternError):
            FieldMaskConfig.regex_mask("/(a+)+/")

    def test_regex_mask_rejects_empty(self):
        """RegexMask needs a pattern."""
        with pytest.raises(ConfigurationError):
            FieldMaskConfig.regex_mask("")

    def test_coerce_string(self):
        """A plain string means Replace."""
        assert FieldMaskConfig.coerce("[REDACTED]") == FieldMaskConfig.replace("[REDACTED]")

    def test_dict_round_trip(self):
        """to_dict() output rebuilds an equal config."""
        config = FieldMaskConfig.regex_mask("/\\d{4}$/", "****")
        assert FieldMaskConfig.from_dict(config.to_dict()) == config

    def test_from_dict_unknown_type(self):
        """Unknown rule types are rejected."""
        with pytest.raises(ConfigurationError):
            FieldMaskConfig.from_dict({"type": "scramble"})

    def test_from_dict_replace_needs_value(self):
        """A replace rule without a value is rejected."""
        with pytest.raises(ConfigurationError):
            FieldMaskConfig.from_dict({"type": "replace", "replacement": ""})

    def test_configs_are_immutable(self):
        """FieldMaskConfig cannot be changed after creation."""
        config = FieldMaskConfig.remove()
        with pytest.raises(AttributeError):
            config.kind = FieldMaskKind.REPLACE


class TestReparseLiteral:
    """Test suite for type-preserving replacement literals."""

    def test_numeric(self):
        """Numeric literals take the numeric type of the original."""
        assert reparse_literal("0", 42) == 0
        assert reparse_literal("1.5", 9.99) == 1.5

    def test_boolean_words(self):
        """Boolean words are accepted for bool originals."""
        assert reparse_literal("off", True) is False
        assert reparse_literal("yes", False) is True

    def test_fallback_to_string(self):
        """Literals that do not fit the original type stay strings."""
        assert reparse_literal("N/A", 42) == "N/A"
        assert reparse_literal("0", "text") == "0"


class TestMaskFieldPaths:
    """Test suite for field rules applied to a context."""

    def test_remove(self, audit_events, audit_logger):
        """Remove deletes the key and audits a None mask."""
        processor = ContextProcessor({"user.password": FieldMaskConfig.remove()}, audit_logger=audit_logger)
        context = {"user": {"password": "secret", "name": "Bob"}}

        processed = processor.mask_field_paths(context)

        assert context == {"user": {"name": "Bob"}}
        assert processed == {"user.password"}
        assert (audit_events[0].path, audit_events[0].masked) == ("user.password", None)

    def test_replace_keeps_numeric_type(self):
        """Replacing an int with a numeric literal yields an int."""
        processor = ContextProcessor({"count": FieldMaskConfig.replace("0")})
        context = {"count": 42}
        processor.mask_field_paths(context)
        assert context == {"count": 0}

    def test_regex_mask_on_string(self):
        """RegexMask replaces matches inside the value."""
        processor = ContextProcessor({"card": FieldMaskConfig.regex_mask("/\\d(?=\\d{4})/", "*")})
        context = {"card": "4111111111111111"}
        processor.mask_field_paths(context)
        assert context == {"card": "************1111"}

    def test_regex_mask_no_match_keeps_value(self, audit_events, audit_logger):
        """A regex that does not match leaves the value and emits nothing."""
        processor = ContextProcessor({"n": FieldMaskConfig.regex_mask("/x/")}, audit_logger=audit_logger)
        context = {"n": 5}
        assert processor.mask_field_paths(context) == {"n"}
        assert context == {"n": 5}
        assert audit_events == []

    def test_use_global_patterns(self):
        """UseGlobalPatterns delegates to the pattern masker."""
        processor = ContextProcessor(
            {"note": FieldMaskConfig.use_global_patterns()},
            pattern_masker=lambda text: text.replace("secret", "***"),
        )
        context = {"note": "a secret"}
        processor.mask_field_paths(context)
        assert context == {"note": "a ***"}

    def test_use_global_patterns_without_patterns(self, audit_events, audit_logger):
        """Without global patterns the rule fails, is audited, and the path stays unprocessed."""
        processor = ContextProcessor({"note": FieldMaskConfig.use_global_patterns()}, audit_logger=audit_logger)
        context = {"note": "a secret"}

        processed = processor.mask_field_paths(context)

        assert processed == set()
        assert context == {"note": "a secret"}
        assert audit_events[0].path == "note_masking_error"

    def test_wildcard_removal_in_lists(self):
        """Removing several list items via a wildcard keeps indices straight."""
        processor = ContextProcessor({"items.*": FieldMaskConfig.remove()})
        context = {"items": ["a", "b", "c"]}
        processor.mask_field_paths(context)
        assert context == {"items": []}

    def test_wildcard_over_objects(self):
        """"*" matches every key of an object."""
        processor = ContextProcessor({"users.*.email": "***"})
        context = {"users": [{"email": "a@x.com"}, {"email": "b@x.com", "id": 1}]}
        processor.mask_field_paths(context)
        assert context == {"users": [{"email": "***"}, {"email": "***", "id": 1}]}

    def test_exact_beats_wildcard(self):
        """An exact rule wins over a wildcard rule for the same path."""
        processor = ContextProcessor(
            {"users.*.email": "WILD", "users.0.email": "EXACT"}
        )
        context = {"users": [{"email": "a"}, {"email": "b"}]}
        processor.mask_field_paths(context)
        assert context == {"users": [{"email": "EXACT"}, {"email": "WILD"}]}

    def test_missing_paths_ignored(self):
        """Rules for absent paths do nothing."""
        processor = ContextProcessor({"absent.path": FieldMaskConfig.remove()})
        context = {"present": 1}
        assert processor.mask_field_paths(context) == set()
        assert context == {"present": 1}


class TestCustomCallbacks:
    """Test suite for callbacks."""

    def test_callback_applied(self, audit_events, audit_logger):
        """A callback result is stored and audited."""
        processor = ContextProcessor(custom_callbacks={"user.id": lambda v: f"id-{v}"}, audit_logger=audit_logger)
        context = {"user": {"id": 7}}

        handled = processor.process_custom_callbacks(context)

        assert context == {"user": {"id": "id-7"}}
        assert handled == {"user.id"}
        assert audit_events[0].path == "user.id"

    def test_callback_failure_audited(self, audit_events, audit_logger):
        """A raising callback keeps the value and is audited as <path>_callback_error."""

        def explode(value):
            raise RuntimeError("boom password=hunter2")

        processor = ContextProcessor(custom_callbacks={"token": explode}, audit_logger=audit_logger)
        context = {"token": "abc"}

        handled = processor.process_custom_callbacks(context)

        assert context == {"token": "abc"}
        assert handled == {"token"}
        event = audit_events[0]
        assert event.path == "token_callback_error"
        assert event.masked.startswith("Callback failed: boom")
        assert "hunter2" not in event.masked

    def test_callback_beats_field_rule(self):
        """Paths with a callback are not handled by field rules."""
        processor = ContextProcessor(
            {"token": FieldMaskConfig.remove()},
            custom_callbacks={"token": lambda v: "CB"},
        )
        context = {"token": "abc"}
        processed = processor.mask_field_paths(context)
        processor.process_custom_callbacks(context, processed)
        assert context == {"token": "CB"}

    def test_mask_value_remove_sentinel(self):
        """Remove rules yield the REMOVED sentinel."""
        processor = ContextProcessor()
        assert processor.mask_value("x", 1, FieldMaskConfig.remove()) is REMOVED
