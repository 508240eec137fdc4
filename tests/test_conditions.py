"""
Tests for the conditional gate and rule factories.
"""

import pytest

from logmask.conditions import (
    ConditionalGate,
    ConditionalRule,
    channel_rule,
    context_field_rule,
    context_value_rule,
    level_rule,
    min_level_rule,
    normalize_rules,
)
from logmask.errors import ConfigurationError
from logmask.records import Level


class TestConditionalGate:
    """Test suite for ConditionalGate."""

    def test_no_rules_always_applies(self, make_record):
        """An empty rule set masks every record."""
        gate = ConditionalGate()
        assert gate.should_apply(make_record()) is True
        assert bool(gate) is False

    def test_all_rules_must_pass(self, make_record):
        """Rules are AND-combined."""
        gate = ConditionalGate({"errors": min_level_rule("ERROR"), "api": channel_rule("api")})

        assert gate.should_apply(make_record(level=Level.ERROR, channel="api")) is True
        assert gate.should_apply(make_record(level=Level.ERROR, channel="web")) is False

    def test_skip_is_audited(self, make_record, audit_events, audit_logger):
        """A failing rule is named in a conditional_skip event."""
        gate = ConditionalGate({"only_errors": level_rule(Level.ERROR)}, audit_logger)

        assert gate.should_apply(make_record(level=Level.INFO)) is False
        event = audit_events[0]
        assert (event.path, event.original) == ("conditional_skip", "only_errors")
        assert event.masked == "Masking skipped due to conditional rule"

    def test_short_circuits(self, make_record):
        """Rules after the first failing one are not evaluated."""
        calls = []

        def second(record):
            calls.append(record)
            return True

        gate = ConditionalGate({"first": lambda r: False, "second": second})
        gate.should_apply(make_record())
        assert calls == []

    def test_raising_rule_masks_by_default(self, make_record, audit_events, audit_logger):
        """A raising rule counts as satisfied under the default policy."""

        def broken(record):
            raise RuntimeError("rule exploded")

        gate = ConditionalGate({"broken": broken}, audit_logger)

        assert gate.should_apply(make_record()) is True
        event = audit_events[0]
        assert (event.path, event.original) == ("conditional_error", "broken")
        assert event.masked == "Rule error: rule exploded"

    def test_raising_rule_with_skip_policy(self, make_record):
        """With on_rule_error='skip' a raising rule skips masking."""

        def broken(record):
            raise RuntimeError("rule exploded")

        gate = ConditionalGate({"broken": broken}, on_rule_error="skip")
        assert gate.should_apply(make_record()) is False

    def test_invalid_policy(self):
        """Only "mask" and "skip" are accepted."""
        with pytest.raises(ConfigurationError):
            ConditionalGate(on_rule_error="maybe")


class TestNormalizeRules:
    """Test suite for rule normalization."""

    def test_from_dict(self):
        """A name -> predicate mapping becomes named rules."""
        rules = normalize_rules({"a": lambda r: True})
        assert [rule.name for rule in rules] == ["a"]

    def test_from_list(self):
        """ConditionalRule instances are kept as they are."""
        rule = ConditionalRule("a", lambda r: True)
        assert normalize_rules([rule]) == [rule]

    def test_rejects_non_callable(self):
        """Predicates must be callable."""
        with pytest.raises(ConfigurationError):
            normalize_rules({"a": "yes"})

    def test_rejects_empty_name(self):
        """Rule names must not be blank."""
        with pytest.raises(ConfigurationError):
            normalize_rules({"  ": lambda r: True})


class TestRuleFactories:
    """Test suite for the built-in predicates."""

    def test_level_rule(self, make_record):
        """Matches only the listed levels."""
        rule = level_rule("ERROR", "CRITICAL")
        assert rule(make_record(level=Level.CRITICAL)) is True
        assert rule(make_record(level=Level.WARNING)) is False

    def test_min_level_rule(self, make_record):
        """Matches the given level and anything more severe."""
        rule = min_level_rule(Level.WARNING)
        assert rule(make_record(level=Level.ALERT)) is True
        assert rule(make_record(level=Level.NOTICE)) is False

    def test_context_field_rule(self, make_record):
        """Matches when the dot path exists in the context."""
        rule = context_field_rule("user.id")
        assert rule(make_record(context={"user": {"id": 1}})) is True
        assert rule(make_record(context={"user": {}})) is False

    def test_context_value_rule_is_type_strict(self, make_record):
        """1 and "1" are different values."""
        rule = context_value_rule("tenant", 1)
        assert rule(make_record(context={"tenant": 1})) is True
        assert rule(make_record(context={"tenant": "1"})) is False
