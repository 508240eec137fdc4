"""
CallbackMaskingStrategy - A user function bound to one exact field path.

Factories cover the common cases: a constant replacement, a truncated digest
and partial masking that keeps the first and last characters. Priority 50.
"""

import hashlib
import json
import logging
from typing import Any, Callable, Iterable

from ..errors import MaskingOperationError
from ..records import Record
from ..values import ValueKind, kind_of
from .base import AbstractMaskingStrategy

logger = logging.getLogger(__name__)


def _scalar_text(value: Any, fallback: str) -> str:
    kind = kind_of(value)
    if kind is ValueKind.BOOLEAN:
        return "1" if value else ""
    if kind in (ValueKind.STRING, ValueKind.INTEGER, ValueKind.DOUBLE):
        return str(value)
    return fallback


class CallbackMaskingStrategy(AbstractMaskingStrategy):
    """
    Runs a user callable on the value at one field path.

    Example:
        CallbackMaskingStrategy.partial("user.card", visible_start=0, visible_end=4)
        # "4111111111111111" -> "************1111"
    """

    def __init__(
        self,
        field_path: str,
        callback: Callable[[Any], Any],
        priority: int = 50,
        exact_match: bool = True,
    ):
        self.field_path = field_path
        self.callback = callback
        self.exact_match = exact_match
        super().__init__(priority, {"field_path": field_path, "exact_match": exact_match, "priority": priority})

    @property
    def name(self) -> str:
        return f"Callback Masking ({self.field_path})"

    def validate(self) -> bool:
        return isinstance(self.field_path, str) and bool(self.field_path) and callable(self.callback)

    def should_apply(self, value: Any, path: str, record: Record) -> bool:
        if self.exact_match:
            return path == self.field_path
        return self.path_matches(path, self.field_path)

    def mask(self, value: Any, path: str, record: Record) -> Any:
        try:
            return self.callback(value)
        except Exception as e:
            raise MaskingOperationError.custom_callback_failed(
                path, value, f"Callback threw exception: {e}"
            ) from e

    @classmethod
    def for_paths(cls, field_paths: Iterable[str], callback: Callable[[Any], Any], priority: int = 50) -> list["CallbackMaskingStrategy"]:
        return [cls(path, callback, priority) for path in field_paths]

    @classmethod
    def constant(cls, field_path: str, replacement: str, priority: int = 50) -> "CallbackMaskingStrategy":
        return cls(field_path, lambda value: replacement, priority)

    @classmethod
    def hash(
        cls,
        field_path: str,
        algorithm: str = "sha256",
        truncate_length: int = 8,
        priority: int = 50,
    ) -> "CallbackMaskingStrategy":
        """Replace the value with a (truncated) hex digest of its text."""
        hashlib.new(algorithm)  # unknown algorithms fail here, not per value

        def digest(value: Any) -> str:
            text = _scalar_text(value, "")
            if kind_of(value) in (ValueKind.ARRAY, ValueKind.OBJECT):
                text = json.dumps(value, separators=(",", ":"), default=str)
            hexdigest = hashlib.new(algorithm, text.encode("utf-8")).hexdigest()
            return f"{hexdigest[:truncate_length]}..." if truncate_length > 0 else hexdigest

        return cls(field_path, digest, priority)

    @classmethod
    def partial(
        cls,
        field_path: str,
        visible_start: int = 2,
        visible_end: int = 2,
        mask_char: str = "*",
        priority: int = 50,
    ) -> "CallbackMaskingStrategy":
        """Keep the first and last few characters, mask the rest."""

        def mask_middle(value: Any) -> str:
            text = _scalar_text(value, "[OBJECT]")
            length = len(text)
            if length <= visible_start + visible_end:
                return mask_char * length
            end = text[length - visible_end:] if visible_end > 0 else ""
            return text[:visible_start] + mask_char * (length - visible_start - visible_end) + end

        return cls(field_path, mask_middle, priority)
