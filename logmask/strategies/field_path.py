"""
FieldPathMaskingStrategy - FieldMaskConfig rules keyed by dot path.

Exact paths win over wildcard paths. Remove rules yield the REMOVED
sentinel. Priority 80.
"""

import logging
from typing import Any, Callable, Optional, Union

from .. import paths
from ..errors import MaskingError, MaskingOperationError
from ..fields import ContextProcessor, FieldMaskConfig, FieldMaskKind
from ..patterns import shared_validator
from ..records import Record
from .base import AbstractMaskingStrategy

logger = logging.getLogger(__name__)


class FieldPathMaskingStrategy(AbstractMaskingStrategy):
    """
    Applies FieldMaskConfig rules by path. Exact paths are looked up before
    wildcard patterns. A Remove rule yields fields.REMOVED.
    """

    def __init__(
        self,
        field_configs: dict[str, Union[FieldMaskConfig, str]],
        priority: int = 80,
        pattern_masker: Optional[Callable[[str], str]] = None,
    ):
        self._raw_configs = dict(field_configs)
        super().__init__(
            priority,
            {
                "field_configs": {
                    path: config.to_dict() if isinstance(config, FieldMaskConfig) else config
                    for path, config in self._raw_configs.items()
                }
            },
        )
        self._processor: Optional[ContextProcessor] = None
        self._pattern_masker = pattern_masker

    @property
    def processor(self) -> ContextProcessor:
        if self._processor is None:
            self._processor = ContextProcessor(self._raw_configs, pattern_masker=self._pattern_masker)
        return self._processor

    @property
    def name(self) -> str:
        return f"Field Path Masking ({len(self._raw_configs)} fields)"

    def validate(self) -> bool:
        if not self._raw_configs:
            return False
        for path, config in self._raw_configs.items():
            if not isinstance(path, str) or not path:
                return False
            if not isinstance(config, (FieldMaskConfig, str)):
                return False
            if isinstance(config, FieldMaskConfig) and config.kind is FieldMaskKind.MASK_REGEX:
                if not config.pattern or not shared_validator.is_valid(config.pattern):
                    return False
        return True

    def config_for_path(self, path: str) -> Optional[FieldMaskConfig]:
        configs = self.processor.field_paths
        if path in configs:
            return configs[path]
        for pattern, config in configs.items():
            if paths.path_matches(path, pattern):
                return config
        return None

    def should_apply(self, value: Any, path: str, record: Record) -> bool:
        return self.config_for_path(path) is not None

    def mask(self, value: Any, path: str, record: Record) -> Any:
        config = self.config_for_path(path)
        if config is None:
            return value
        try:
            return self.processor.mask_value(path, value, config)
        except MaskingError as e:
            raise MaskingOperationError.field_path_masking_failed(path, value, e.message) from e
