from __future__ import annotations

from pathlib import Path

from .interfaces import DocumentMedium
from .json_store import atomic_write_bytes, read_bytes
from .locks import GLOBAL_PATH_LOCKS


class DiskJsonDocumentStore(DocumentMedium):
    """
    Stores a single JSON document on disk at a fixed path.

    - Returns None when the file is missing.
    - Writes atomically.
    - Blocking; callers on an event loop run it through asyncio.to_thread.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> bytes | None:
        lock = GLOBAL_PATH_LOCKS.lock_for(self._path)
        with lock:
            return read_bytes(self._path)

    def write(self, payload: bytes) -> None:
        lock = GLOBAL_PATH_LOCKS.lock_for(self._path)
        with lock:
            atomic_write_bytes(self._path, payload)
