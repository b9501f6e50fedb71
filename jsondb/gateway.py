from __future__ import annotations

import asyncio
import logging

from .document import DocumentStore
from .errors import PersistenceError
from .events import EventChannel
from .interfaces import DocumentMedium
from .json_store import decode_document, encode_document
from .locks import GLOBAL_PATH_LOCKS, PathLockRegistry

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """
    Moves the document between memory and its backing medium.

    Every load, save and raw read holds the per-file asyncio lock for its whole
    duration, so at most one of them touches the medium at a time and waiters
    are served in arrival order. Blocking I/O runs in worker threads.
    """

    def __init__(
        self,
        store: DocumentStore,
        medium: DocumentMedium,
        *,
        events: EventChannel | None = None,
        compress: bool = False,
        locks: PathLockRegistry = GLOBAL_PATH_LOCKS,
    ) -> None:
        self._store = store
        self._medium = medium
        self._events = events if events is not None else store.events
        self._compress = compress
        self._locks = locks
        self.save_count = 0

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def medium(self) -> DocumentMedium:
        return self._medium

    @property
    def compress(self) -> bool:
        return self._compress

    def _lock(self) -> asyncio.Lock:
        return self._locks.async_lock_for(self._medium.path)

    def locked(self) -> bool:
        return self._lock().locked()

    async def _write(self, payload: bytes) -> None:
        try:
            await asyncio.to_thread(self._medium.write, payload)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self._medium.path}: {e}") from e

    async def load(self) -> bool:
        """
        Replace the in-memory document with the medium's contents.

        Returns False when the stored document was rejected (unparseable, or
        not a JSON object) and the current document was kept.
        """
        path = self._medium.path
        async with self._lock():
            try:
                raw = await asyncio.to_thread(self._medium.read)
            except OSError as e:
                raise PersistenceError(f"Failed to read {path}: {e}") from e

            try:
                parsed = decode_document(raw) if raw is not None else None
            except ValueError as e:
                logger.warning("JSONDB LOAD: %s is not valid JSON, keeping in-memory data: %r", path, e)
                return False

            if parsed is None:
                logger.debug("JSONDB LOAD: %s missing or empty, creating it", path)
                await self._write(encode_document("{}", compress=self._compress))
                self._store.replace({})
                return True

            if not isinstance(parsed, dict):
                logger.warning(
                    "JSONDB LOAD: %s holds a %s at top level, expected an object; keeping in-memory data",
                    path,
                    type(parsed).__name__,
                )
                return False

            self._store.replace(parsed)
            logger.debug("JSONDB LOAD: %s loaded (%d keys)", path, len(parsed))
            return True

    async def save(self) -> None:
        """
        Rewrite the whole medium from the document as it is when the lock is taken.

        The dirty set is checkpointed at that same moment and only committed
        once the file has been replaced; keys written in between stay dirty
        for the next flush. A failed or cancelled save leaves it untouched.
        """
        async with self._lock():
            taken = self._store.dirty.checkpoint()
            try:
                payload = encode_document(self._store.snapshot_json(), compress=self._compress)
            except (TypeError, ValueError) as e:
                raise PersistenceError(f"Document is not JSON serializable: {e}") from e

            await self._write(payload)
            self._store.dirty.commit(taken)
            self.save_count += 1
            logger.debug("JSONDB SAVE: wrote %s (%d bytes, %d dirty keys)", self._medium.path, len(payload), len(taken))

        self._events.emit("save")

    async def read_raw(self) -> bytes | None:
        """Return the persisted bytes as of the last completed flush."""
        async with self._lock():
            try:
                return await asyncio.to_thread(self._medium.read)
            except OSError as e:
                raise PersistenceError(f"Failed to read {self._medium.path}: {e}") from e
