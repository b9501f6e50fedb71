from __future__ import annotations

import itertools
from typing import Iterable, Iterator, Mapping


class DirtyTracker:
    """
    Top-level keys written since the last successful flush.

    Every mark stamps the key with a fresh sequence number. A flush takes a
    checkpoint before writing and commits it afterwards; commit only forgets
    keys whose stamp is unchanged, so keys re-marked mid-flush stay dirty.
    """

    def __init__(self) -> None:
        self._keys: dict[str, int] = {}
        self._seq = itertools.count(1)

    def mark(self, key: str) -> None:
        self._keys[key] = next(self._seq)

    def mark_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.mark(key)

    def checkpoint(self) -> dict[str, int]:
        return dict(self._keys)

    def commit(self, checkpoint: Mapping[str, int]) -> None:
        for key, stamp in checkpoint.items():
            if self._keys.get(key) == stamp:
                del self._keys[key]

    def clear(self) -> None:
        self._keys.clear()

    def __bool__(self) -> bool:
        return bool(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._keys))
