"""
Dot-path access into nested context data.

A path such as "user.addresses.0.street" walks dict keys and list indices.
In a pattern, a "*" segment matches exactly one segment at any position.
"""

from typing import Any, Iterator

WILDCARD = "*"

_MISSING = object()


def split_path(path: str) -> list[str]:
    return path.split(".") if path else []


def join_path(parent: str, key: Any) -> str:
    return f"{parent}.{key}" if parent else str(key)


def is_wildcard(pattern: str) -> bool:
    return WILDCARD in split_path(pattern)


def _child(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        if segment in container:
            return container[segment]
        # Non-string keys are addressed by their string form
        for key, value in container.items():
            if not isinstance(key, str) and str(key) == segment:
                return value
        return _MISSING
    if isinstance(container, (list, tuple)):
        try:
            index = int(segment)
        except ValueError:
            return _MISSING
        if 0 <= index < len(container):
            return container[index]
    return _MISSING


def _resolve_key(container: dict, segment: str) -> Any:
    if segment in container:
        return segment
    for key in container:
        if not isinstance(key, str) and str(key) == segment:
            return key
    return segment


def get(data: Any, path: str, default: Any = None) -> Any:
    current = data
    for segment in split_path(path):
        current = _child(current, segment)
        if current is _MISSING:
            return default
    return current


def has(data: Any, path: str) -> bool:
    if not path:
        return False
    current = data
    for segment in split_path(path):
        current = _child(current, segment)
        if current is _MISSING:
            return False
    return True


def set_path(data: dict, path: str, value: Any) -> None:
    """
    Set a value, creating intermediate dicts as needed.

    Existing lists are indexed in place; a segment that does not address an
    existing container replaces it with a dict.
    """
    segments = split_path(path)
    if not segments:
        raise KeyError("Cannot set an empty path")
    current: Any = data
    for segment in segments[:-1]:
        nxt = _child(current, segment)
        if not isinstance(nxt, (dict, list)):
            nxt = {}
            _assign(current, segment, nxt)
        current = nxt
    _assign(current, segments[-1], value)


def _assign(container: Any, segment: str, value: Any) -> None:
    if isinstance(container, list):
        index = int(segment)
        if index == len(container):
            container.append(value)
        else:
            container[index] = value
    else:
        container[_resolve_key(container, segment)] = value


def delete(data: Any, path: str) -> bool:
    """Remove the value at path. Returns False if it did not exist."""
    segments = split_path(path)
    if not segments:
        return False
    parent = get(data, ".".join(segments[:-1])) if len(segments) > 1 else data
    last = segments[-1]
    if isinstance(parent, dict):
        key = _resolve_key(parent, last)
        if key in parent:
            del parent[key]
            return True
        return False
    if isinstance(parent, list):
        try:
            index = int(last)
        except ValueError:
            return False
        if 0 <= index < len(parent):
            del parent[index]
            return True
    return False


def path_matches(path: str, pattern: str) -> bool:
    """
    Exact or wildcard match. "*" matches exactly one segment.

    Example:
        path_matches("users.0.email", "users.*.email")   # True
        path_matches("users.email", "users.*.email")     # False
    """
    if path == pattern:
        return True
    if WILDCARD not in pattern:
        return False
    path_segments = split_path(path)
    pattern_segments = split_path(pattern)
    if len(path_segments) != len(pattern_segments):
        return False
    return all(p == WILDCARD or p == s for s, p in zip(path_segments, pattern_segments))


def expand(data: Any, pattern: str) -> list[str]:
    """List the concrete paths present in data that match pattern, in data order."""
    results: list[str] = []

    def walk(node: Any, remaining: list[str], prefix: str) -> None:
        if not remaining:
            results.append(prefix)
            return
        head, rest = remaining[0], remaining[1:]
        if head == WILDCARD:
            for key, child in _children(node):
                walk(child, rest, join_path(prefix, key))
        else:
            child = _child(node, head)
            if child is not _MISSING:
                walk(child, rest, join_path(prefix, head))

    walk(data, split_path(pattern), "")
    return results


def _children(node: Any) -> Iterator[tuple[Any, Any]]:
    if isinstance(node, dict):
        yield from node.items()
    elif isinstance(node, (list, tuple)):
        yield from enumerate(node)


def iter_leaf_paths(data: Any, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """Yield (path, value) for every non-container value, depth first."""
    for key, child in _children(data):
        path = join_path(prefix, key)
        if isinstance(child, (dict, list, tuple)) and child:
            yield from iter_leaf_paths(child, path)
        else:
            yield path, child
