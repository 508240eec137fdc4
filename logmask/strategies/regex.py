"""
RegexMaskingStrategy - Ordered pattern replacement over stringified values.

Applies to values on allowed paths that at least one pattern matches; the
result is converted back to the original value's type where it fits. Priority 60.
"""

import logging
import re
from typing import Any, Iterable, Optional

from ..errors import InvalidRegexPatternError, MaskingOperationError
from ..patterns import PatternValidator, shared_validator
from ..records import Record
from .base import AbstractMaskingStrategy

logger = logging.getLogger(__name__)


class RegexMaskingStrategy(AbstractMaskingStrategy):
    """
    Applies an ordered pattern -> replacement table to any value whose
    string form matches at least one pattern.

    Raises:
        InvalidRegexPatternError: At construction, for invalid or unsafe patterns.
    """

    def __init__(
        self,
        patterns: dict[str, str],
        include_paths: Iterable[str] = (),
        exclude_paths: Iterable[str] = (),
        priority: int = 60,
        validator: Optional[PatternValidator] = None,
    ):
        self.patterns = dict(patterns)
        self.include_paths = list(include_paths)
        self.exclude_paths = list(exclude_paths)
        super().__init__(
            priority,
            {
                "patterns": self.patterns,
                "include_paths": self.include_paths,
                "exclude_paths": self.exclude_paths,
            },
        )
        self._validator = validator or shared_validator
        self._validator.validate_all(self.patterns)
        self._rules = [self._validator.compile_rule(p, r) for p, r in self.patterns.items()]

    @property
    def name(self) -> str:
        return f"Regex Pattern Masking ({len(self.patterns)} patterns)"

    def validate(self) -> bool:
        if not self.patterns:
            return False
        try:
            self._validator.validate_all(self.patterns)
        except InvalidRegexPatternError:
            return False
        return True

    def should_apply(self, value: Any, path: str, record: Record) -> bool:
        if not self.path_allowed(path, self.include_paths, self.exclude_paths):
            return False
        try:
            text = self.value_to_string(value)
        except MaskingOperationError:
            return False
        return any(rule.search(text) for rule in self._rules)

    def mask(self, value: Any, path: str, record: Record) -> Any:
        text = self.value_to_string(value)
        for rule in self._rules:
            try:
                text = rule.sub(text)
            except (re.error, RecursionError, IndexError) as e:
                raise MaskingOperationError.regex_masking_failed(
                    rule.pattern, self.value_preview(value), f"Pattern execution failed: {e}"
                ) from e
        return self.preserve_value_type(value, text)
