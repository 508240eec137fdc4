"""
Masking Strategies Package

Self-contained, priority-ranked masking units and the manager that runs
them. Use these when "first applicable strategy wins" suits you better than
MaskingEngine's fixed pipeline.

Available strategies (default priority):
    - FieldPathMaskingStrategy (80): FieldMaskConfig rules by path
    - ConditionalMaskingStrategy (70): Gates another strategy on the record
    - RegexMaskingStrategy (60): Ordered pattern table
    - CallbackMaskingStrategy (50): User callable on one path
    - DataTypeMaskingStrategy (40): Masks by value kind

To add a strategy, subclass AbstractMaskingStrategy and implement name,
should_apply() and mask().
"""

from .base import AbstractMaskingStrategy, MaskingStrategy
from .callback import CallbackMaskingStrategy
from .conditional import ConditionalMaskingStrategy
from .data_type import DataTypeMaskingStrategy
from .field_path import FieldPathMaskingStrategy
from .manager import StrategyManager
from .regex import RegexMaskingStrategy

__all__ = [
    "MaskingStrategy",
    "AbstractMaskingStrategy",
    "RegexMaskingStrategy",
    "FieldPathMaskingStrategy",
    "ConditionalMaskingStrategy",
    "CallbackMaskingStrategy",
    "DataTypeMaskingStrategy",
    "StrategyManager",
]
