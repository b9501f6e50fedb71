from __future__ import annotations

from typing import Any

from .errors import InvalidPathError, PathConflictError


class _Missing:
    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def split_path(path: str) -> tuple[str, ...]:
    if not isinstance(path, str):
        raise TypeError(f"path must be a str, not {type(path).__name__}")
    if not path:
        raise InvalidPathError(path, "empty path")
    parts = tuple(path.split("."))
    if any(p == "" for p in parts):
        raise InvalidPathError(path, "empty segment")
    return parts


def _list_index(segment: str) -> int | None:
    if not segment.isdigit():
        return None
    return int(segment)


def _step(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment, MISSING)
    if isinstance(node, list):
        idx = _list_index(segment)
        if idx is None or idx >= len(node):
            return MISSING
        return node[idx]
    return MISSING


def resolve_for_read(doc: dict[str, Any], path: str) -> Any:
    """
    Return the value stored at ``path`` or ``MISSING``.

    Never mutates ``doc``; missing intermediates and scalars in the middle of
    the path both read as missing.
    """
    node: Any = doc
    for segment in split_path(path):
        node = _step(node, segment)
        if node is MISSING:
            return MISSING
    return node


def resolve_for_write(doc: dict[str, Any], path: str, value: Any) -> None:
    """
    Store ``value`` at ``path``.

    Missing intermediate segments are created as plain dicts. Running into a
    scalar or an unusable list index raises PathConflictError before anything
    is written.
    """
    parts = split_path(path)

    # Validate the whole walk first so a conflict never leaves half-built dicts behind.
    node: Any = doc
    for depth, segment in enumerate(parts[:-1]):
        nxt = _step(node, segment)
        if nxt is MISSING:
            if isinstance(node, list):
                raise PathConflictError(path, f"no list index {segment!r}")
            break
        if not isinstance(nxt, (dict, list)):
            where = ".".join(parts[: depth + 1])
            raise PathConflictError(path, f"{where!r} holds a {type(nxt).__name__}")
        node = nxt
    else:
        _assign(node, parts[-1], value, path)
        return

    node = doc
    for segment in parts[:-1]:
        if isinstance(node, dict):
            node = node.setdefault(segment, {})
        else:
            node = node[int(segment)]
    _assign(node, parts[-1], value, path)


def _assign(parent: Any, segment: str, value: Any, path: str) -> None:
    if isinstance(parent, dict):
        parent[segment] = value
        return
    idx = _list_index(segment)
    if idx is None or idx > len(parent):
        raise PathConflictError(path, f"no list index {segment!r}")
    if idx == len(parent):
        parent.append(value)
    else:
        parent[idx] = value


def resolve_for_delete(doc: dict[str, Any], path: str) -> bool:
    """Remove the value at ``path``. Returns False (and does nothing) if it is absent."""
    parts = split_path(path)
    node: Any = doc
    for segment in parts[:-1]:
        node = _step(node, segment)
        if node is MISSING:
            return False

    last = parts[-1]
    if isinstance(node, dict):
        if last not in node:
            return False
        del node[last]
        return True
    if isinstance(node, list):
        idx = _list_index(last)
        if idx is None or idx >= len(node):
            return False
        del node[idx]
        return True
    return False


def top_level_key(path: str) -> str:
    return split_path(path)[0]
