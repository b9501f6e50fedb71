from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from .dirty import DirtyTracker
from .disk_store import DiskJsonDocumentStore
from .document import DocumentStore, Entry
from .events import EventChannel, EventName, Listener
from .gateway import PersistenceGateway
from .interfaces import DocumentMedium, SnapshotSink
from .options import DatabaseOptions
from .paths import DEFAULT_DB_FILE, as_path
from .scheduler import AutosaveScheduler, RecurringTask
from .settings import get_settings
from .snapshots import SnapshotManager

logger = logging.getLogger(__name__)


def _merge_options(options: DatabaseOptions | Mapping[str, Any] | None, overrides: dict[str, Any]) -> DatabaseOptions:
    if isinstance(options, DatabaseOptions) and not overrides:
        return options
    if isinstance(options, DatabaseOptions):
        base: dict[str, Any] = options.model_dump()
    else:
        base = dict(options or {})
    return DatabaseOptions.model_validate({**base, **overrides})


class JsonDatabase:
    """
    A key-value store kept in memory and persisted as one JSON file.

    Reads and writes are synchronous. ``set``/``delete`` only mark keys dirty
    and are written by the autosave cycle; ``add``, ``subtract``, ``push`` and
    ``clear`` also schedule a save right away (turn this off with
    ``eager_flush=False``). Errors from saves nobody awaits are published on
    the ``error`` event.

        async with JsonDatabase("./db.json", cache=True) as db:
            db.set("user.name", "John")
            db.push("fruits", "apple")
    """

    def __init__(
        self,
        file_path: str | os.PathLike[str] | None = None,
        options: DatabaseOptions | Mapping[str, Any] | None = None,
        *,
        medium: DocumentMedium | None = None,
        snapshot_sink: SnapshotSink | None = None,
        **overrides: Any,
    ) -> None:
        self.options = _merge_options(options, overrides)
        self.file_path: Path = medium.path if medium is not None else as_path(file_path, DEFAULT_DB_FILE)

        self.events = EventChannel()
        self.dirty = DirtyTracker()
        self.store = DocumentStore(cache=self.options.cache, dirty=self.dirty, events=self.events)
        self.gateway = PersistenceGateway(
            self.store,
            medium if medium is not None else DiskJsonDocumentStore(self.file_path),
            events=self.events,
            compress=self.options.compress,
        )
        self.autosave = AutosaveScheduler(
            self.gateway,
            self.dirty,
            self.options.auto_save_interval,
            on_error=self._error_reporter("autosave"),
        )
        self.snapshots = SnapshotManager(
            self.gateway,
            self.options.snapshots,
            sink=snapshot_sink,
            events=self.events,
        )
        self._snapshot_task: RecurringTask | None = None
        if self.options.snapshots.enabled:
            self._snapshot_task = RecurringTask(
                "jsondb-snapshots",
                self.options.snapshots.interval,
                self.snapshots.make_snapshot,
                on_error=self._error_reporter("snapshot"),
            )
        self._pending: set[asyncio.Task[None]] = set()
        self._opened = False

    @classmethod
    def from_env(cls, env_file: str | os.PathLike[str] | None = None, **kwargs: Any) -> "JsonDatabase":
        settings = get_settings(env_file)
        return cls(settings.file_path, settings.to_options(), **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.file_path)!r}, keys={len(self.store.data)}, dirty={len(self.dirty)})"

    # --- lifecycle ---------------------------------------------------

    @property
    def opened(self) -> bool:
        return self._opened

    async def open(self) -> "JsonDatabase":
        """Load the backing file (creating it if absent) and start the background timers."""
        if self._opened:
            return self
        await self.gateway.load()
        if self._snapshot_task is not None:
            await self.snapshots.prepare()
            self._snapshot_task.start()
        self.autosave.start()
        self._opened = True
        return self

    async def close(self, *, flush: bool = True) -> None:
        """Stop the timers, wait for in-flight saves and write anything still dirty."""
        await self.autosave.stop()
        if self._snapshot_task is not None:
            await self._snapshot_task.stop()
        await self.wait_pending()
        self._opened = False
        if flush and self.dirty:
            await self.gateway.save()

    async def __aenter__(self) -> "JsonDatabase":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- persistence -------------------------------------------------

    async def load(self) -> bool:
        return await self.gateway.load()

    async def save(self) -> None:
        await self.gateway.save()

    async def make_snapshot(self, path: str | os.PathLike[str] | None = None) -> Path:
        return await self.snapshots.make_snapshot(path)

    async def wait_pending(self) -> None:
        """Wait for the saves scheduled by add/subtract/push/clear."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _error_reporter(self, operation: str) -> Any:
        def _report(exc: BaseException) -> None:
            self.events.emit("error", exc, operation)

        return _report

    async def _background_save(self, operation: str) -> None:
        try:
            await self.gateway.save()
        except Exception as e:
            logger.exception("JSONDB SAVE: background save after %s failed", operation)
            self.events.emit("error", e, operation)

    def _request_flush(self, operation: str) -> asyncio.Task[None] | None:
        if not self.options.eager_flush:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("JSONDB SAVE: no running event loop; %s left for the next flush", operation)
            return None
        task = loop.create_task(self._background_save(operation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    # --- events ------------------------------------------------------

    def on(self, event: EventName, listener: Listener | None = None) -> Any:
        return self.events.on(event, listener)

    def once(self, event: EventName, listener: Listener) -> Listener:
        return self.events.once(event, listener)

    def off(self, event: EventName, listener: Listener) -> bool:
        return self.events.off(event, listener)

    # --- data --------------------------------------------------------

    @property
    def data(self) -> dict[str, Any]:
        return self.store.data

    def get(self, path: str, default: Any = None) -> Any:
        return self.store.get(path, default)

    def has(self, path: str) -> bool:
        return self.store.has(path)

    def set(self, path: str, value: Any) -> None:
        self.store.set(path, value)

    def delete(self, path: str) -> bool:
        return self.store.delete(path)

    def all(self) -> list[Entry]:
        return self.store.all()

    def add(self, key: str, amount: Any) -> Any:
        value = self.store.add(key, amount)
        self._request_flush("add")
        return value

    def subtract(self, key: str, amount: Any) -> Any:
        value = self.store.subtract(key, amount)
        self._request_flush("subtract")
        return value

    def push(self, key: str, element: Any) -> list[Any]:
        value = self.store.push(key, element)
        self._request_flush("push")
        return value

    def clear(self) -> None:
        self.store.clear()
        self._request_flush("clear")
