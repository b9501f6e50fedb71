from __future__ import annotations

from pathlib import Path
from typing import Protocol


class DocumentMedium(Protocol):
    """
    Where the serialized document lives: one blob, always rewritten in full.
    """

    @property
    def path(self) -> Path:
        ...

    def read(self) -> bytes | None:
        """Return the stored bytes, or None if nothing has been stored yet."""
        ...

    def write(self, payload: bytes) -> None:
        """Replace the stored bytes atomically."""
        ...


class SnapshotSink(Protocol):
    """Destination for snapshot copies of the backing medium."""

    def write(self, directory: Path, name: str, payload: bytes) -> Path:
        """Store ``payload`` as ``name`` under ``directory`` and return where it went."""
        ...
