from __future__ import annotations

import copy
import json
import numbers
from typing import Any, TypedDict

from .dirty import DirtyTracker
from .dotted import MISSING, resolve_for_delete, resolve_for_read, resolve_for_write, split_path, top_level_key
from .errors import InvalidPathError, PathConflictError
from .events import EventChannel


class Entry(TypedDict):
    key: str
    data: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


class DocumentStore:
    """
    In-memory document plus the optional cache mirror.

    Mutations mark their top-level key dirty and publish on the event channel;
    persisting them is someone else's job.
    """

    def __init__(
        self,
        *,
        cache: bool = False,
        dirty: DirtyTracker | None = None,
        events: EventChannel | None = None,
    ) -> None:
        self.cache_enabled = cache
        self.dirty = dirty if dirty is not None else DirtyTracker()
        self.events = events if events is not None else EventChannel()
        self._data: dict[str, Any] = {}
        self._mirror: dict[str, Any] = {}

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    @property
    def mirror(self) -> dict[str, Any]:
        return self._mirror

    def _read_source(self) -> dict[str, Any]:
        return self._mirror if self.cache_enabled else self._data

    def _write(self, path: str, value: Any) -> None:
        if not self.cache_enabled:
            resolve_for_write(self._data, path, value)
            return
        # Neither side may share objects with the caller or with the other side.
        resolve_for_write(self._data, path, copy.deepcopy(value))
        resolve_for_write(self._mirror, path, copy.deepcopy(value))

    # --- reads -------------------------------------------------------

    def get(self, path: str, default: Any = None) -> Any:
        value = resolve_for_read(self._read_source(), path)
        return default if value is MISSING else value

    def has(self, path: str) -> bool:
        return resolve_for_read(self._read_source(), path) is not MISSING

    def all(self) -> list[Entry]:
        return [Entry(key=k, data=v) for k, v in self._data.items()]

    # --- writes ------------------------------------------------------

    def set(self, path: str, value: Any) -> None:
        self._write(path, value)
        self.dirty.mark(top_level_key(path))
        self.events.emit("change", path, value)

    def delete(self, path: str) -> bool:
        removed = resolve_for_delete(self._data, path)
        if self.cache_enabled:
            removed = resolve_for_delete(self._mirror, path) or removed
        if not removed:
            return False
        self.dirty.mark(top_level_key(path))
        self.events.emit("delete", path)
        return True

    def _apply_delta(self, key: str, amount: Any, sign: int) -> Any:
        if not isinstance(key, str):
            raise TypeError(f"key must be a str, not {type(key).__name__}")
        if split_path(key) != (key,):
            raise InvalidPathError(key, "add/subtract take a top-level key")
        if not _is_number(amount):
            raise TypeError(f"amount must be a number, not {type(amount).__name__}")
        current = self._data.get(key)
        if not current:
            current = 0
        elif not _is_number(current):
            raise TypeError(f"{key!r} holds a {type(current).__name__}, not a number")
        new_value = current + sign * amount
        self._data[key] = new_value
        if self.cache_enabled:
            self._mirror[key] = new_value
        self.dirty.mark(key)
        self.events.emit("change", key, new_value)
        return new_value

    def add(self, key: str, amount: Any) -> Any:
        return self._apply_delta(key, amount, 1)

    def subtract(self, key: str, amount: Any) -> Any:
        return self._apply_delta(key, amount, -1)

    def push(self, key: str, element: Any) -> list[Any]:
        current = resolve_for_read(self._data, key)
        if current is MISSING or current is None:
            current = []
        elif not isinstance(current, list):
            raise PathConflictError(key, f"holds a {type(current).__name__}, not a list")
        updated = [*current, element]
        self._write(key, updated)
        self.dirty.mark(top_level_key(key))
        self.events.emit("change", key, updated)
        return updated

    def clear(self) -> None:
        self.dirty.mark_many(self._data.keys())
        self._data = {}
        self._mirror = {}

    def replace(self, doc: dict[str, Any]) -> None:
        """Swap in a freshly loaded document; nothing is owed to disk afterwards."""
        self._data = doc
        self._mirror = copy.deepcopy(doc) if self.cache_enabled else {}
        self.dirty.clear()

    def snapshot_json(self) -> str:
        return json.dumps(self._data, indent=2, ensure_ascii=False)


__all__ = ["DocumentStore", "Entry", "MISSING"]
