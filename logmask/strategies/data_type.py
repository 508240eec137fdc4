"""DataTypeMaskingStrategy - Masks values by kind through a DataTypeMasker. Priority 40."""

import logging
from typing import Any, Iterable, Optional

from ..datatypes import DataTypeMasker
from ..errors import ConfigurationError, MaskingOperationError
from ..records import Record
from ..values import kind_of
from .base import AbstractMaskingStrategy

logger = logging.getLogger(__name__)


class DataTypeMaskingStrategy(AbstractMaskingStrategy):
    """Replaces values by kind using a data type mask table."""

    def __init__(
        self,
        type_masks: dict[str, str],
        include_paths: Iterable[str] = (),
        exclude_paths: Iterable[str] = (),
        priority: int = 40,
    ):
        self.type_masks = dict(type_masks)
        self.include_paths = list(include_paths)
        self.exclude_paths = list(exclude_paths)
        super().__init__(
            priority,
            {
                "type_masks": self.type_masks,
                "include_paths": self.include_paths,
                "exclude_paths": self.exclude_paths,
            },
        )
        self._masker: Optional[DataTypeMasker] = None

    @property
    def masker(self) -> DataTypeMasker:
        if self._masker is None:
            self._masker = DataTypeMasker(self.type_masks)
        return self._masker

    @property
    def name(self) -> str:
        return f"Data Type Masking ({len(self.type_masks)} types: {', '.join(self.type_masks)})"

    def validate(self) -> bool:
        if not self.type_masks:
            return False
        try:
            self.masker
        except ConfigurationError:
            return False
        return True

    def should_apply(self, value: Any, path: str, record: Record) -> bool:
        if not self.path_allowed(path, self.include_paths, self.exclude_paths):
            return False
        return self.masker.handles(kind_of(value))

    def mask(self, value: Any, path: str, record: Record) -> Any:
        try:
            return self.masker.apply(value)
        except (TypeError, ValueError) as e:
            raise MaskingOperationError.data_type_masking_failed(
                kind_of(value).value, value, f"Failed to apply type mask: {e}"
            ) from e

    @classmethod
    def create_default(cls, custom_masks: Optional[dict[str, str]] = None, priority: int = 40) -> "DataTypeMaskingStrategy":
        masks = {
            "string": "***STRING***",
            "integer": "999",
            "double": "99.99",
            "boolean": "false",
            "array": "[]",
            "object": "{}",
            "NULL": "",
        }
        masks.update(custom_masks or {})
        return cls(masks, priority=priority)

    @classmethod
    def create_sensitive_only(cls, custom_masks: Optional[dict[str, str]] = None, priority: int = 40) -> "DataTypeMaskingStrategy":
        masks = {"string": "***MASKED***", "array": "[]", "object": "{}"}
        masks.update(custom_masks or {})
        return cls(masks, priority=priority)
