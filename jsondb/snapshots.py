from __future__ import annotations

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import Callable

from .errors import PersistenceError, SnapshotError
from .events import EventChannel
from .gateway import PersistenceGateway
from .interfaces import SnapshotSink
from .json_store import atomic_write_bytes, encode_document
from .options import SnapshotOptions
from .paths import DEFAULT_SNAPSHOT_DIR, as_path, ensure_dir

logger = logging.getLogger(__name__)

_SNAPSHOT_NAME = re.compile(r"^snapshot-(\d+)(?:-(\d+))?\.[^.]+$")


class DirectorySnapshotSink(SnapshotSink):
    """Writes each snapshot as its own file; never overwrites an existing one."""

    def write(self, directory: Path, name: str, payload: bytes) -> Path:
        ensure_dir(directory)
        stem, dot, suffix = name.partition(".")
        n = 0
        while True:
            target = directory / (name if n == 0 else f"{stem}-{n}{dot}{suffix}")
            try:
                # Exclusive create claims the name; concurrent snapshots move on to the next counter.
                target.open("xb").close()
            except FileExistsError:
                n += 1
                continue
            break
        atomic_write_bytes(target, payload)
        return target


def _snapshot_order(path: Path) -> tuple[int, int]:
    m = _SNAPSHOT_NAME.match(path.name)
    if m is None:
        return (-1, -1)
    return (int(m.group(1)), int(m.group(2) or 0))


class SnapshotManager:
    """
    Copies the persisted file (not the in-memory document) into a backup directory.

    Destination: the ``path`` argument, else the configured snapshot path,
    else ``./backups/``.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        options: SnapshotOptions | None = None,
        *,
        sink: SnapshotSink | None = None,
        events: EventChannel | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._gateway = gateway
        self.options = options if options is not None else SnapshotOptions()
        self._sink = sink if sink is not None else DirectorySnapshotSink()
        self._events = events
        self._clock = clock

    def destination(self, path: str | Path | None = None) -> Path:
        return as_path(path or self.options.path, DEFAULT_SNAPSHOT_DIR)

    async def prepare(self) -> Path:
        """Create the configured snapshot directory up front."""
        directory = self.destination()
        try:
            return await asyncio.to_thread(ensure_dir, directory)
        except OSError as e:
            raise SnapshotError(f"Cannot create snapshot directory {directory}: {e}") from e

    def _file_name(self) -> str:
        suffix = self._gateway.medium.path.suffix or ".json"
        return f"snapshot-{int(self._clock() * 1000)}{suffix}"

    def _store(self, directory: Path, name: str, payload: bytes) -> Path:
        target = self._sink.write(directory, name, payload)
        if self.options.keep is not None:
            self._prune(directory, self.options.keep)
        return target

    @staticmethod
    def _prune(directory: Path, keep: int) -> list[Path]:
        snapshots = sorted(
            (p for p in directory.glob("snapshot-*") if _SNAPSHOT_NAME.match(p.name)),
            key=_snapshot_order,
        )
        stale = snapshots[:-keep]
        for p in stale:
            p.unlink(missing_ok=True)
        return stale

    async def make_snapshot(self, path: str | Path | None = None) -> Path:
        directory = self.destination(path)
        try:
            raw = await self._gateway.read_raw()
        except PersistenceError as e:
            raise SnapshotError(str(e)) from e
        if raw is None:
            raw = encode_document("{}", compress=self._gateway.compress)

        try:
            target = await asyncio.to_thread(self._store, directory, self._file_name(), raw)
        except OSError as e:
            raise SnapshotError(f"Cannot write snapshot into {directory}: {e}") from e

        logger.debug("SNAPSHOT: wrote %s", target)
        if self._events is not None:
            self._events.emit("snapshot", target)
        return target
