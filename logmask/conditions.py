"""
Conditional gate - decide whether a record is masked at all.

Rules are named predicates over a Record, combined with AND. With no rules
every record is masked. The first rule that returns False stops evaluation
and the record passes through untouched.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from . import paths
from .errors import ConfigurationError
from .records import Level, Record
from .sanitize import sanitize_error_message

logger = logging.getLogger(__name__)

Predicate = Callable[[Record], bool]

ON_ERROR_MASK = "mask"
ON_ERROR_SKIP = "skip"
RULE_ERROR_POLICIES = (ON_ERROR_MASK, ON_ERROR_SKIP)


@dataclass(frozen=True)
class ConditionalRule:
    name: str
    predicate: Predicate

    def __call__(self, record: Record) -> bool:
        return bool(self.predicate(record))


def normalize_rules(
    rules: Optional[Union[dict[str, Predicate], Iterable[ConditionalRule]]],
) -> list[ConditionalRule]:
    """
    Accept a name -> predicate mapping or a list of ConditionalRule.

    Raises:
        ConfigurationError: On empty names or non-callable predicates.
    """
    if rules is None:
        return []
    if isinstance(rules, dict):
        rules = [ConditionalRule(name, predicate) for name, predicate in rules.items()]

    normalized = []
    for rule in rules:
        if not isinstance(rule, ConditionalRule):
            raise ConfigurationError.invalid_type("conditional rule", "ConditionalRule", rule)
        if not isinstance(rule.name, str) or not rule.name.strip():
            raise ConfigurationError.for_conditional_rule(str(rule.name), "Rule name must be a non-empty string")
        if not callable(rule.predicate):
            raise ConfigurationError.for_conditional_rule(rule.name, "Rule must be callable")
        normalized.append(rule)
    return normalized


class ConditionalGate:
    """
    AND-combined predicates guarding the masking pipeline.

    Args:
        rules: Named predicates.
        audit_logger: Optional (path, original, masked) callback.
        on_rule_error: "mask" to treat a raising rule as satisfied,
            "skip" to treat it as failed and leave the record unmasked.

    Example:
        gate = ConditionalGate({"only_errors": min_level_rule("ERROR")})
        gate.should_apply(Record("boom", level=Level.ERROR))   # True
        gate.should_apply(Record("fine", level=Level.INFO))    # False
    """

    def __init__(
        self,
        rules: Optional[Union[dict[str, Predicate], Iterable[ConditionalRule]]] = None,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
        on_rule_error: str = ON_ERROR_MASK,
    ):
        if on_rule_error not in RULE_ERROR_POLICIES:
            raise ConfigurationError.for_parameter(
                "on_rule_error", on_rule_error, f"Must be one of: {', '.join(RULE_ERROR_POLICIES)}"
            )
        self.rules = normalize_rules(rules)
        self.audit_logger = audit_logger
        self.on_rule_error = on_rule_error

    def __bool__(self) -> bool:
        return bool(self.rules)

    def _audit(self, path: str, original: Any, masked: Any) -> None:
        if self.audit_logger is not None:
            self.audit_logger(path, original, masked)

    def should_apply(self, record: Record) -> bool:
        for rule in self.rules:
            try:
                satisfied = rule(record)
            except Exception as e:
                message = sanitize_error_message(str(e))
                logger.warning(f"Conditional rule '{rule.name}' raised: {message}")
                self._audit("conditional_error", rule.name, f"Rule error: {message}")
                if self.on_rule_error == ON_ERROR_SKIP:
                    return False
                continue

            if not satisfied:
                self._audit("conditional_skip", rule.name, "Masking skipped due to conditional rule")
                return False
        return True


def level_rule(*levels: Union[Level, int, str]) -> Predicate:
    """Mask only records at one of the given levels."""
    wanted = {Level.parse(level) for level in levels}
    return lambda record: Level.parse(record.level) in wanted


def min_level_rule(level: Union[Level, int, str]) -> Predicate:
    """Mask only records at or above the given level."""
    threshold = Level.parse(level)
    return lambda record: Level.parse(record.level) >= threshold


def channel_rule(*channels: str) -> Predicate:
    """Mask only records from one of the given channels."""
    wanted = set(channels)
    return lambda record: record.channel in wanted


def context_field_rule(path: str) -> Predicate:
    """Mask only records whose context has a value at path."""
    return lambda record: paths.has(record.context, path)


def context_value_rule(path: str, expected: Any) -> Predicate:
    """Mask only records whose context value at path equals expected (same type)."""

    def predicate(record: Record) -> bool:
        if not paths.has(record.context, path):
            return False
        actual = paths.get(record.context, path)
        return type(actual) is type(expected) and actual == expected

    return predicate
