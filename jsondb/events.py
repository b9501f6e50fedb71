from __future__ import annotations

import logging
from typing import Any, Callable, Literal

logger = logging.getLogger(__name__)

EventName = Literal["save", "change", "delete", "error", "snapshot"]
Listener = Callable[..., Any]

EVENTS: tuple[str, ...] = ("save", "change", "delete", "error", "snapshot")


class EventChannel:
    """
    Named signals with ordered listeners.

      save      ()
      change    (path, value)
      delete    (path)
      error     (exc, operation)   failures of background flushes/snapshots
      snapshot  (destination)

    A listener that raises is logged and skipped; the remaining listeners
    still run.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENTS}

    def _bucket(self, event: str) -> list[Listener]:
        try:
            return self._listeners[event]
        except KeyError:
            raise ValueError(f"Unknown event {event!r}; expected one of {', '.join(EVENTS)}") from None

    def on(self, event: EventName, listener: Listener | None = None) -> Any:
        if listener is None:
            # decorator form: @channel.on("save")
            def _register(fn: Listener) -> Listener:
                self._bucket(event).append(fn)
                return fn

            return _register
        self._bucket(event).append(listener)
        return listener

    def once(self, event: EventName, listener: Listener) -> Listener:
        bucket = self._bucket(event)

        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        bucket.append(_wrapper)
        return _wrapper

    def off(self, event: EventName, listener: Listener) -> bool:
        bucket = self._bucket(event)
        try:
            bucket.remove(listener)
        except ValueError:
            return False
        return True

    def listener_count(self, event: EventName) -> int:
        return len(self._bucket(event))

    def emit(self, event: EventName, *args: Any) -> int:
        delivered = 0
        # Copy: listeners may unsubscribe while we iterate.
        for listener in list(self._bucket(event)):
            try:
                listener(*args)
                delivered += 1
            except Exception:
                logger.exception("EVENTS: listener %r for %r failed", listener, event)
        return delivered
