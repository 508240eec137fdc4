"""
Base Masking Strategy - Abstract base class for pluggable masking units.

A strategy decides for itself whether it applies to a (value, path, record)
triple and, if it does, produces the masked value. StrategyManager runs the
first applicable strategy in priority order.

Each strategy defines:
    - priority: Higher runs first
    - name: Human-readable description
    - should_apply(): Whether this strategy handles the value
    - mask(): Produce the masked value (fields.REMOVED to delete the field)
    - validate(): Whether the strategy is usable; checked at registration
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

from .. import paths
from ..datatypes import is_numeric
from ..errors import MaskingOperationError, _preview
from ..records import Record
from ..values import ValueKind, kind_of, stringify

_TRUE_WORDS = {"1", "true", "on", "yes"}


class MaskingStrategy(ABC):
    """
    Abstract base class for masking strategies.

    Example:
        class UpperCaseStrategy(AbstractMaskingStrategy):
            @property
            def name(self) -> str:
                return "upper"

            def should_apply(self, value, path, record) -> bool:
                return isinstance(value, str)

            def mask(self, value, path, record):
                return value.upper()
    """

    @property
    @abstractmethod
    def priority(self) -> int:
        """Ordering key; strategies with higher priority are tried first."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def should_apply(self, value: Any, path: str, record: Record) -> bool:
        pass

    @abstractmethod
    def mask(self, value: Any, path: str, record: Record) -> Any:
        """
        Raises:
            MaskingOperationError: If the value cannot be masked.
        """
        pass

    def validate(self) -> bool:
        return True

    @property
    def configuration(self) -> dict[str, Any]:
        return {}

    def __repr__(self) -> str:
        return f"<MaskingStrategy: {self.name} (priority {self.priority})>"


class AbstractMaskingStrategy(MaskingStrategy):
    """Shared priority/configuration storage and value helpers."""

    def __init__(self, priority: int = 50, configuration: Optional[dict[str, Any]] = None):
        self._priority = priority
        self._configuration = dict(configuration or {})

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def configuration(self) -> dict[str, Any]:
        return self._configuration

    @staticmethod
    def value_to_string(value: Any) -> str:
        return stringify(value)

    @staticmethod
    def path_matches(path: str, pattern: str) -> bool:
        return paths.path_matches(path, pattern)

    @staticmethod
    def path_allowed(path: str, include_paths: Iterable[str], exclude_paths: Iterable[str]) -> bool:
        """Exclusions win; with no inclusions every other path is allowed."""
        if any(paths.path_matches(path, pattern) for pattern in exclude_paths):
            return False
        include_paths = list(include_paths)
        if include_paths:
            return any(paths.path_matches(path, pattern) for pattern in include_paths)
        return True

    @staticmethod
    def value_preview(value: Any, limit: int = 100) -> str:
        try:
            return _preview(stringify(value), limit)
        except MaskingOperationError:
            return f"[{kind_of(value).value}]"

    @staticmethod
    def preserve_value_type(original: Any, masked: str) -> Any:
        """Convert a masked string back into the original value's kind when possible."""
        kind = kind_of(original)
        if kind is ValueKind.STRING:
            return masked
        if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
            try:
                decoded = json.loads(masked)
            except ValueError:
                return masked
            return decoded if kind_of(decoded) is kind else masked
        if kind is ValueKind.INTEGER and is_numeric(masked):
            try:
                return int(masked.strip())
            except ValueError:
                return int(float(masked))
        if kind is ValueKind.DOUBLE and is_numeric(masked):
            return float(masked)
        if kind is ValueKind.BOOLEAN:
            return masked.strip().lower() in _TRUE_WORDS
        return masked
