"""Conditional wrapper: delegates to another strategy only when record-level conditions hold."""

import logging
from typing import Any, Callable, Iterable

from ..errors import MaskingOperationError
from ..records import Level, Record
from .base import AbstractMaskingStrategy, MaskingStrategy

logger = logging.getLogger(__name__)


class ConditionalMaskingStrategy(AbstractMaskingStrategy):
    """
    Wraps another strategy and only lets it apply when record-level
    conditions hold. A condition that raises counts as not satisfied.

    Example:
        strategy = ConditionalMaskingStrategy.for_levels(regex_strategy, ["ERROR", "CRITICAL"])
    """

    def __init__(
        self,
        wrapped: MaskingStrategy,
        conditions: dict[str, Callable[[Record], bool]],
        require_all: bool = True,
        priority: int = 70,
    ):
        self.wrapped = wrapped
        self.conditions = dict(conditions)
        self.require_all = require_all
        super().__init__(
            priority,
            {
                "wrapped_strategy": wrapped.name,
                "conditions": list(self.conditions),
                "require_all_conditions": require_all,
            },
        )

    @property
    def name(self) -> str:
        logic = "AND" if self.require_all else "OR"
        return (
            f"Conditional Masking ({len(self.conditions)} conditions, {logic} logic)"
            f" -> {self.wrapped.name}"
        )

    @property
    def condition_names(self) -> list[str]:
        return list(self.conditions)

    def validate(self) -> bool:
        if not self.conditions:
            return False
        if not all(callable(condition) for condition in self.conditions.values()):
            return False
        return self.wrapped.validate()

    def conditions_met(self, record: Record) -> bool:
        satisfied = 0
        for name, condition in self.conditions.items():
            try:
                result = condition(record) is True
            except Exception as e:
                logger.debug(f"Condition '{name}' raised, treated as unsatisfied: {e}")
                result = False
            if result:
                satisfied += 1
                if not self.require_all:
                    return True
            elif self.require_all:
                return False
        return satisfied == len(self.conditions) if self.require_all else satisfied > 0

    def should_apply(self, value: Any, path: str, record: Record) -> bool:
        return self.conditions_met(record) and self.wrapped.should_apply(value, path, record)

    def mask(self, value: Any, path: str, record: Record) -> Any:
        try:
            return self.wrapped.mask(value, path, record)
        except Exception as e:
            raise MaskingOperationError.custom_callback_failed(
                path, value, f"Conditional masking failed: {e}"
            ) from e

    @classmethod
    def for_levels(cls, strategy: MaskingStrategy, levels: Iterable[str], priority: int = 70) -> "ConditionalMaskingStrategy":
        wanted = {Level.parse(level) for level in levels}
        return cls(strategy, {"level": lambda record: record.level in wanted}, True, priority)

    @classmethod
    def for_channels(cls, strategy: MaskingStrategy, channels: Iterable[str], priority: int = 70) -> "ConditionalMaskingStrategy":
        wanted = set(channels)
        return cls(strategy, {"channel": lambda record: record.channel in wanted}, True, priority)

    @classmethod
    def for_context(cls, strategy: MaskingStrategy, required: dict[str, Any], priority: int = 70) -> "ConditionalMaskingStrategy":
        def condition(record: Record) -> bool:
            return all(
                key in record.context
                and type(record.context[key]) is type(expected)
                and record.context[key] == expected
                for key, expected in required.items()
            )

        return cls(strategy, {"context": condition}, True, priority)
