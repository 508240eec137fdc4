"""
DataTypeMasker - Replace values by kind.

A mask table maps a value kind ("integer", "string", "array", ...) to a mask
spec string. Specs are parsed lazily, once per kind, into a resolver that
produces the masked value. Kinds without a configured spec pass through.

Sentinel specs:
    "preserve"   keep the original boolean or null
    "recursive"  mask the elements of an array/object instead of replacing it
"""

import copy
import json
import logging
import re
from typing import Any, Callable, Optional

from .errors import ConfigurationError
from .paths import join_path
from .values import ValueKind, kind_of, values_differ

logger = logging.getLogger(__name__)

PRESERVE = "preserve"
RECURSIVE = "recursive"

_NUMERIC = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")

Recurse = Callable[[Any], Any]
Resolver = Callable[[Any, Optional[Recurse]], Any]


def default_masks() -> dict[str, str]:
    """Return the default placeholder for every kind."""
    return {
        ValueKind.INTEGER.value: "***INT***",
        ValueKind.DOUBLE.value: "***FLOAT***",
        ValueKind.STRING.value: "***STRING***",
        ValueKind.BOOLEAN.value: "***BOOL***",
        ValueKind.NULL.value: "***NULL***",
        ValueKind.ARRAY.value: "***ARRAY***",
        ValueKind.OBJECT.value: "***OBJECT***",
        ValueKind.RESOURCE.value: "***RESOURCE***",
    }


def is_numeric(spec: str) -> bool:
    return bool(_NUMERIC.match(spec))


def _integer_resolver(spec: str) -> Resolver:
    if not is_numeric(spec):
        return lambda value, recurse: spec
    try:
        number = int(spec.strip())
    except ValueError:
        number = int(float(spec))
    return lambda value, recurse: number


def _double_resolver(spec: str) -> Resolver:
    if not is_numeric(spec):
        return lambda value, recurse: spec
    number = float(spec)
    return lambda value, recurse: number


def _boolean_resolver(spec: str) -> Resolver:
    if spec == PRESERVE:
        return lambda value, recurse: value
    if spec == "true":
        return lambda value, recurse: True
    if spec == "false":
        return lambda value, recurse: False
    return lambda value, recurse: spec


def _null_resolver(spec: str) -> Resolver:
    if spec in ("", PRESERVE):
        return lambda value, recurse: None
    return lambda value, recurse: spec


def _recursive_resolver(value: Any, recurse: Optional[Recurse]) -> Any:
    return recurse(value) if recurse is not None else value


def _template(template: Any) -> Resolver:
    # Every masked value gets its own copy so callers can mutate it freely
    return lambda value, recurse: copy.deepcopy(template)


def _try_json(spec: str, expected: type) -> Optional[Any]:
    try:
        parsed = json.loads(spec)
    except ValueError:
        return None
    return parsed if isinstance(parsed, expected) else None


def _array_resolver(spec: str) -> Resolver:
    stripped = spec.strip()
    if stripped == "[]":
        return _template([])
    if stripped == RECURSIVE:
        return _recursive_resolver
    if stripped.startswith("["):
        parsed = _try_json(stripped, list)
        if parsed is not None:
            return _template(parsed)
    if "," in spec:
        return _template([part.strip() for part in spec.split(",")])
    return _template([spec])


def _object_resolver(spec: str) -> Resolver:
    stripped = spec.strip()
    if stripped == "{}":
        return _template({})
    if stripped == RECURSIVE:
        return _recursive_resolver
    if stripped.startswith("{"):
        parsed = _try_json(stripped, dict)
        if parsed is not None:
            return _template(parsed)
    return _template({"masked": spec})


def _constant_resolver(spec: str) -> Resolver:
    return lambda value, recurse: spec


_RESOLVER_FACTORIES: dict[ValueKind, Callable[[str], Resolver]] = {
    ValueKind.INTEGER: _integer_resolver,
    ValueKind.DOUBLE: _double_resolver,
    ValueKind.BOOLEAN: _boolean_resolver,
    ValueKind.NULL: _null_resolver,
    ValueKind.ARRAY: _array_resolver,
    ValueKind.OBJECT: _object_resolver,
    ValueKind.STRING: _constant_resolver,
    ValueKind.RESOURCE: _constant_resolver,
}


def parse_mask_table(masks: Optional[dict[str, str]]) -> dict[ValueKind, str]:
    """
    Normalize a mask table, resolving kind aliases.

    Raises:
        ConfigurationError: On unknown kinds, non-string specs, or an empty
            spec for any kind other than NULL.
    """
    table: dict[ValueKind, str] = {}
    for key, spec in (masks or {}).items():
        try:
            kind = ValueKind.parse(key)
        except ValueError as e:
            raise ConfigurationError.for_data_type_mask(str(key), spec, str(e)) from None
        if not isinstance(spec, str):
            raise ConfigurationError.for_data_type_mask(
                kind.value, repr(spec), f"Mask must be a string, got {type(spec).__name__}"
            )
        if spec.strip() == "" and kind is not ValueKind.NULL:
            raise ConfigurationError.for_data_type_mask(kind.value, spec, "Mask cannot be empty")
        table[kind] = spec
    return table


class DataTypeMasker:
    """
    Applies kind-based masks to values and whole contexts.

    Example:
        masker = DataTypeMasker({"integer": "0", "string": "***"})
        masker.apply(42)         # 0
        masker.apply("secret")   # "***"
        masker.apply(1.5)        # 1.5 (no mask for double)
    """

    def __init__(
        self,
        masks: Optional[dict[str, str]] = None,
        audit_logger: Optional[Callable[[str, Any, Any], None]] = None,
    ):
        self._masks = parse_mask_table(masks)
        self._resolvers: dict[ValueKind, Resolver] = {}
        self.audit_logger = audit_logger

    @property
    def masks(self) -> dict[str, str]:
        return {kind.value: spec for kind, spec in self._masks.items()}

    def __bool__(self) -> bool:
        return bool(self._masks)

    def handles(self, kind: ValueKind) -> bool:
        return kind in self._masks

    def is_recursive(self, kind: ValueKind) -> bool:
        return self._masks.get(kind, "").strip() == RECURSIVE and kind in (
            ValueKind.ARRAY,
            ValueKind.OBJECT,
        )

    def _resolver(self, kind: ValueKind) -> Resolver:
        resolver = self._resolvers.get(kind)
        if resolver is None:
            resolver = _RESOLVER_FACTORIES[kind](self._masks[kind])
            self._resolvers[kind] = resolver
        return resolver

    def apply(self, value: Any, recurse: Optional[Recurse] = None) -> Any:
        """
        Mask a single value by its kind.

        Args:
            value: Any value.
            recurse: Called with the value for "recursive" array/object specs.

        Returns:
            The masked value, or the value itself when its kind has no mask.
        """
        if not self._masks:
            return value
        kind = kind_of(value)
        if kind not in self._masks:
            return value
        return self._resolver(kind)(value, recurse)

    def apply_to_context(
        self,
        context: dict[str, Any],
        processed: Optional[set[str]] = None,
        prefix: str = "",
        recurse: Optional[Recurse] = None,
    ) -> dict[str, Any]:
        """
        Mask every leaf of a context, skipping processed paths.

        Containers are walked rather than replaced; each changed leaf is
        audited under its dot path.
        """
        processed = processed or set()
        return {
            key: self._apply_at(value, join_path(prefix, key), processed, recurse)
            for key, value in context.items()
        }

    def _apply_at(self, value: Any, path: str, processed: set[str], recurse: Optional[Recurse]) -> Any:
        if path in processed:
            return value
        if isinstance(value, dict):
            return self.apply_to_context(value, processed, path, recurse)
        if isinstance(value, (list, tuple)):
            return [
                self._apply_at(item, join_path(path, index), processed, recurse)
                for index, item in enumerate(value)
            ]

        masked = self.apply(value, recurse)
        if values_differ(value, masked) and self.audit_logger is not None:
            self.audit_logger(path, value, masked)
        return masked
