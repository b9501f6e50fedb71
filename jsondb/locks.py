from __future__ import annotations

import asyncio
import threading
import weakref
from pathlib import Path


class PathLockRegistry:
    """
    Provides a stable lock per normalized file path to avoid global contention.

    ``lock_for`` hands out a threading.Lock guarding the blocking I/O done in
    worker threads. ``async_lock_for`` hands out an asyncio.Lock (FIFO) per
    path and per event loop; coroutines wait on it instead of spinning.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._async_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]] = (
            weakref.WeakKeyDictionary()
        )

    @staticmethod
    def _key(path: Path) -> str:
        return str(path.resolve())

    def lock_for(self, path: Path) -> threading.Lock:
        key = self._key(path)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def async_lock_for(self, path: Path) -> asyncio.Lock:
        """Must be called from a running event loop."""
        loop = asyncio.get_running_loop()
        key = self._key(path)
        with self._guard:
            per_loop = self._async_locks.get(loop)
            if per_loop is None:
                per_loop = {}
                self._async_locks[loop] = per_loop
            lock = per_loop.get(key)
            if lock is None:
                lock = asyncio.Lock()
                per_loop[key] = lock
            return lock


GLOBAL_PATH_LOCKS = PathLockRegistry()
