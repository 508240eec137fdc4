"""
StrategyManager - Priority-ordered, first-applicable-wins masking.

This is an opt-in alternative to MaskingEngine's fixed pipeline: each value
is handed to the highest-priority strategy that claims it, and only that one.
"""

import logging
import threading
from typing import Any, Iterable, Optional, Union

from .. import paths
from ..errors import ConfigurationError, MaskingError, MaskingOperationError
from ..fields import REMOVED, FieldMaskConfig
from ..records import Record
from ..values import copy_containers, values_differ
from .base import MaskingStrategy
from .data_type import DataTypeMaskingStrategy
from .field_path import FieldPathMaskingStrategy
from .regex import RegexMaskingStrategy

logger = logging.getLogger(__name__)

MESSAGE_PATH = "message"


def _priority_range(priority: int) -> str:
    if priority >= 90:
        return "90-100 (Critical)"
    if priority >= 80:
        return "80-89 (High)"
    if priority >= 60:
        return "60-79 (Medium-High)"
    if priority >= 40:
        return "40-59 (Medium)"
    if priority >= 20:
        return "20-39 (Low-Medium)"
    return "0-19 (Low)"


class StrategyManager:
    """
    Holds strategies and applies the first applicable one per value.

    The priority-sorted view is cached and rebuilt only after the collection
    changes. Strategies with equal priority keep their registration order.

    Example:
        manager = StrategyManager([
            RegexMaskingStrategy({"/\\d{3}-\\d{2}-\\d{4}/": "***SSN***"}),
            CallbackMaskingStrategy.constant("user.token", "***"),
        ])
        manager.mask_value("123-45-6789", "note", record)   # "***SSN***"
    """

    def __init__(self, strategies: Iterable[MaskingStrategy] = ()):
        self._lock = threading.RLock()
        self._strategies: list[MaskingStrategy] = []
        self._sorted: Optional[list[MaskingStrategy]] = None
        for strategy in strategies:
            self.add_strategy(strategy)

    def add_strategy(self, strategy: MaskingStrategy) -> "StrategyManager":
        """
        Raises:
            ConfigurationError: If strategy.validate() returns False.
        """
        if not strategy.validate():
            raise ConfigurationError.with_context(
                "Invalid masking strategy",
                {
                    "strategy_name": strategy.name,
                    "strategy_class": type(strategy).__name__,
                    "configuration": repr(strategy.configuration),
                },
            )
        with self._lock:
            self._strategies.append(strategy)
            self._sorted = None
        logger.debug(f"Registered strategy: {strategy.name}")
        return self

    def remove_strategy(self, strategy: MaskingStrategy) -> bool:
        with self._lock:
            for index, candidate in enumerate(self._strategies):
                if candidate is strategy:
                    del self._strategies[index]
                    self._sorted = None
                    return True
        return False

    def remove_strategies_by_class(self, cls: type) -> int:
        with self._lock:
            kept = [s for s in self._strategies if not isinstance(s, cls)]
            removed = len(self._strategies) - len(kept)
            if removed:
                self._strategies = kept
                self._sorted = None
        return removed

    def clear_strategies(self) -> "StrategyManager":
        with self._lock:
            self._strategies = []
            self._sorted = None
        return self

    @property
    def strategies(self) -> list[MaskingStrategy]:
        with self._lock:
            return list(self._strategies)

    def sorted_strategies(self) -> list[MaskingStrategy]:
        with self._lock:
            if self._sorted is None:
                self._sorted = sorted(self._strategies, key=lambda s: s.priority, reverse=True)
            return self._sorted

    def mask_value(self, value: Any, path: str, record: Record) -> Any:
        """
        Apply the first applicable strategy, or return value unchanged.

        Raises:
            MaskingOperationError: If a strategy fails, either deciding whether
                it applies or masking; the error names the strategy and the path.
        """
        for strategy in self.sorted_strategies():
            try:
                applies = strategy.should_apply(value, path, record)
            except Exception as e:
                raise MaskingOperationError.custom_callback_failed(
                    path, value, f"Strategy '{strategy.name}' failed in should_apply: {e}"
                ) from e
            if applies:
                try:
                    return strategy.mask(value, path, record)
                except Exception as e:
                    raise MaskingOperationError.custom_callback_failed(
                        path, value, f"Strategy '{strategy.name}' failed: {e}"
                    ) from e
        return value

    def has_applicable_strategy(self, value: Any, path: str, record: Record) -> bool:
        return any(s.should_apply(value, path, record) for s in self.sorted_strategies())

    def get_applicable_strategies(self, value: Any, path: str, record: Record) -> list[MaskingStrategy]:
        return [s for s in self.sorted_strategies() if s.should_apply(value, path, record)]

    def get_statistics(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "total_strategies": 0,
            "strategy_types": {},
            "priority_distribution": {},
            "strategies": [],
        }
        for strategy in self.strategies:
            class_name = type(strategy).__name__
            bucket = _priority_range(strategy.priority)
            stats["total_strategies"] += 1
            stats["strategy_types"][class_name] = stats["strategy_types"].get(class_name, 0) + 1
            stats["priority_distribution"][bucket] = stats["priority_distribution"].get(bucket, 0) + 1
            stats["strategies"].append(
                {
                    "name": strategy.name,
                    "class": class_name,
                    "priority": strategy.priority,
                    "configuration": strategy.configuration,
                }
            )
        return stats

    def validate_all_strategies(self) -> dict[str, str]:
        """Re-validate every strategy; returns name -> problem for failures."""
        errors = {}
        for strategy in self.strategies:
            try:
                if not strategy.validate():
                    errors[strategy.name] = "Strategy validation failed"
            except Exception as e:
                errors[strategy.name] = f"Validation error: {e}"
        return errors

    def process(self, record: Record) -> Record:
        """
        Mask the message and every context leaf of a record.

        Never raises: a value whose strategy fails is kept as it was and the
        failure is logged.
        """
        message = self._mask_safely(record.message, MESSAGE_PATH, record)
        if not isinstance(message, str):
            message = record.message

        context = copy_containers(record.context or {})
        removals = []
        for path, value in list(paths.iter_leaf_paths(context)):
            masked = self._mask_safely(value, path, record)
            if masked is REMOVED:
                removals.append(path)
            elif values_differ(value, masked):
                paths.set_path(context, path, masked)
        for path in reversed(removals):
            paths.delete(context, path)

        return record.with_(message=message, context=context)

    def _mask_safely(self, value: Any, path: str, record: Record) -> Any:
        try:
            return self.mask_value(value, path, record)
        except MaskingError as e:
            logger.warning(f"Strategy masking failed for '{path}': {e.message}")
            return value

    @classmethod
    def create_default(
        cls,
        regex_patterns: Optional[dict[str, str]] = None,
        field_configs: Optional[dict[str, Union[FieldMaskConfig, str]]] = None,
        type_masks: Optional[dict[str, str]] = None,
    ) -> "StrategyManager":
        manager = cls()
        if regex_patterns:
            manager.add_strategy(RegexMaskingStrategy(regex_patterns))
        if field_configs:
            manager.add_strategy(FieldPathMaskingStrategy(field_configs))
        if type_masks:
            manager.add_strategy(DataTypeMaskingStrategy(type_masks))
        return manager
