"""
Value model.

Context data is made of plain Python values. ValueKind is the closed set of
tags every masking stage dispatches on; kind_of() classifies any value into
exactly one of them.
"""

import json
from enum import Enum
from typing import Any

from .errors import MaskingOperationError


class ValueKind(str, Enum):
    """Kind tags, named after the keys accepted in data type mask tables."""

    STRING = "string"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    NULL = "NULL"
    ARRAY = "array"
    OBJECT = "object"
    RESOURCE = "resource"

    @classmethod
    def parse(cls, name: str) -> "ValueKind":
        """Resolve a configuration key (canonical name or alias) to a kind."""
        if not isinstance(name, str):
            raise ValueError(f"Value kind must be a string, got {type(name).__name__}")
        try:
            return cls(name)
        except ValueError:
            pass
        alias = _ALIASES.get(name.lower())
        if alias is None:
            raise ValueError(f"Unknown value kind: {name!r}")
        return alias


_ALIASES: dict[str, ValueKind] = {
    "str": ValueKind.STRING,
    "int": ValueKind.INTEGER,
    "float": ValueKind.DOUBLE,
    "bool": ValueKind.BOOLEAN,
    "null": ValueKind.NULL,
    "none": ValueKind.NULL,
    "list": ValueKind.ARRAY,
    "tuple": ValueKind.ARRAY,
    "dict": ValueKind.OBJECT,
    "map": ValueKind.OBJECT,
}


def kind_of(value: Any) -> ValueKind:
    # bool is a subclass of int, so it has to be checked first
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.INTEGER
    if isinstance(value, float):
        return ValueKind.DOUBLE
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    if isinstance(value, dict):
        return ValueKind.OBJECT
    return ValueKind.RESOURCE


def copy_containers(value: Any) -> Any:
    # Leaves are shared; only dicts and lists are copied, so handles such as
    # locks and sockets are never deep-copied
    if isinstance(value, dict):
        return {key: copy_containers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [copy_containers(item) for item in value]
    return value


def stringify(value: Any) -> str:
    """
    Render a value as text for regex-based masking.

    Raises:
        MaskingOperationError: For unsupported handles that have no
            meaningful text form.
    """
    kind = kind_of(value)
    if kind is ValueKind.STRING:
        return value
    if kind is ValueKind.BOOLEAN:
        return "true" if value else "false"
    if kind in (ValueKind.INTEGER, ValueKind.DOUBLE):
        return str(value)
    if kind is ValueKind.NULL:
        return ""
    if kind in (ValueKind.ARRAY, ValueKind.OBJECT):
        try:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise MaskingOperationError.data_type_masking_failed(
                kind.value, value, f"Cannot convert value to string for masking: {e}"
            ) from e
    raise MaskingOperationError.data_type_masking_failed(
        kind.value, value, "Unsupported value type for string conversion"
    )


def values_differ(original: Any, masked: Any) -> bool:
    """Strict inequality: same payload with a different kind counts as a change."""
    if original is masked:
        return False
    if kind_of(original) is not kind_of(masked):
        return True
    return original != masked
