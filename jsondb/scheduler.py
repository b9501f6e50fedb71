from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable

from .dirty import DirtyTracker
from .gateway import PersistenceGateway

logger = logging.getLogger(__name__)

ErrorHook = Callable[[BaseException], None]


def _seconds(interval: timedelta | float) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


class RecurringTask:
    """
    An owned background task: sleep ``interval``, await ``callback``, repeat.

    A failing callback is logged and handed to ``on_error``; the next tick is
    scheduled regardless. The loop only ends through stop().
    """

    def __init__(
        self,
        name: str,
        interval: timedelta | float,
        callback: Callable[[], Awaitable[Any]],
        *,
        on_error: ErrorHook | None = None,
    ) -> None:
        seconds = _seconds(interval)
        if seconds <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = seconds
        self._callback = callback
        self._on_error = on_error
        self._task: asyncio.Task[None] | None = None
        self._busy = False
        self._stopping = False
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def stop(self) -> None:
        """Cancel the sleep, or let a tick that is already running finish first."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        self._stopping = True
        if not self._busy:
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while not self._stopping:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            self._busy = True
            try:
                await self._callback()
            except Exception as e:
                logger.exception("SCHEDULER: %s tick failed", self.name)
                if self._on_error is not None:
                    self._on_error(e)
            finally:
                self._busy = False


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    FLUSHING = "flushing"


class AutosaveScheduler:
    """Flushes the document every ``interval`` whenever the dirty set is non-empty."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        dirty: DirtyTracker,
        interval: timedelta | float = timedelta(seconds=5),
        *,
        on_error: ErrorHook | None = None,
    ) -> None:
        self._gateway = gateway
        self._dirty = dirty
        self.state = SchedulerState.IDLE
        self._task = RecurringTask("jsondb-autosave", interval, self.tick, on_error=on_error)

    @property
    def interval(self) -> float:
        return self._task.interval

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def tick(self) -> bool:
        """Run one scheduler step. Returns True if a flush was attempted."""
        if not self._dirty:
            return False
        self.state = SchedulerState.FLUSHING
        try:
            await self._gateway.save()
        finally:
            self.state = SchedulerState.IDLE
        return True

    async def flush_now(self) -> bool:
        """Run a tick immediately instead of waiting for the timer."""
        return await self.tick()
