"""
RecursiveMasker - Depth-limited traversal of nested values.

Strings go through the text masker (embedded JSON plus ordered patterns) and
fall back to the data type masker when unchanged. Nested containers are first
offered to the data type masker as a whole, and walked element by element when
that leaves them untouched. Containers at or beyond max_depth are returned as
they are and reported once as "max_depth_reached".
"""

import gc
import logging
from itertools import islice
from typing import Any, Callable, Iterable, Iterator, Optional

from .datatypes import DataTypeMasker
from .paths import join_path
from .values import kind_of, values_differ

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1000
GC_THRESHOLD = 10000

MAX_DEPTH_PATH = "max_depth_reached"


def _chunks(items: Iterable[Any], size: int) -> Iterator[list[Any]]:
    iterator = iter(items)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class RecursiveMasker:
    """
    Applies text and data type masking throughout a nested structure.

    Args:
        text_masker: Masks a single string (JSON-aware pattern stage).
        datatypes: Kind-based masker for non-string leaves and containers.
        audit_logger: Optional (path, original, masked) callback.
        max_depth: Containers at this depth are left untouched.
    """

    def __init__(
        self,
        text_masker: Callable[[str], str],
        datatypes: DataTypeMasker,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
        max_depth: int = 100,
    ):
        self._text_masker = text_masker
        self._datatypes = datatypes
        self.audit_logger = audit_logger
        self.max_depth = max_depth

    def mask(self, value: Any, depth: int = 0) -> Any:
        """
        Mask any value. A top-level container is always walked, never
        replaced by a data type mask.
        """
        if isinstance(value, str):
            return self._mask_string(value)
        if isinstance(value, (dict, list, tuple)):
            return self._walk(value, depth, None, frozenset())
        return self._datatypes.apply(value)

    def mask_context(self, context: dict[str, Any], processed: Optional[set[str]] = None) -> dict[str, Any]:
        """
        Mask a context, skipping paths already handled by field rules.

        Every changed leaf or replaced container is audited under its dot path.
        """
        return self._walk(context, 0, "", processed or set())

    def _audit(self, path: str, original: Any, masked: Any) -> None:
        if self.audit_logger is not None:
            self.audit_logger(path, original, masked)

    def _mask_string(self, value: str) -> Any:
        masked = self._text_masker(value)
        if masked != value:
            return masked
        return self._datatypes.apply(value)

    def _walk(self, container: Any, depth: int, path: Optional[str], processed: Any) -> Any:
        if depth >= self.max_depth:
            self._audit(MAX_DEPTH_PATH, depth, f"Recursion depth limit ({self.max_depth}) reached")
            return container
        if not container:
            return container

        size = len(container)
        pairs = container.items() if isinstance(container, dict) else enumerate(container)
        results: list[tuple[Any, Any]] = []

        for chunk in _chunks(pairs, CHUNK_SIZE):
            for key, item in chunk:
                child_path = join_path(path, key) if path is not None else None
                results.append((key, self._mask_child(item, depth, child_path, processed)))
            if size > GC_THRESHOLD:
                gc.collect()

        if isinstance(container, dict):
            return dict(results)
        masked = [item for _, item in results]
        return tuple(masked) if isinstance(container, tuple) else masked

    def _mask_child(self, value: Any, depth: int, path: Optional[str], processed: Any) -> Any:
        if path is not None and path in processed:
            return value

        if isinstance(value, (dict, list, tuple)):
            kind = kind_of(value)
            if self._datatypes.handles(kind) and not self._datatypes.is_recursive(kind):
                masked = self._datatypes.apply(value)
                if values_differ(value, masked):
                    if path is not None:
                        self._audit(path, value, masked)
                    return masked
            return self._walk(value, depth + 1, path, processed)

        if isinstance(value, str):
            masked = self._mask_string(value)
        else:
            masked = self._datatypes.apply(value)
        if path is not None and values_differ(value, masked):
            self._audit(path, value, masked)
        return masked
