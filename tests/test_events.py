from __future__ import annotations

import pytest

from jsondb.events import EventChannel


def test_listeners_run_in_registration_order():
    ch = EventChannel()
    calls: list[tuple] = []

    ch.on("change", lambda p, v: calls.append(("first", p, v)))
    ch.on("change", lambda p, v: calls.append(("second", p, v)))

    assert ch.emit("change", "a.b", 1) == 2
    assert calls == [("first", "a.b", 1), ("second", "a.b", 1)]


def test_failing_listener_does_not_block_others(caplog):
    ch = EventChannel()
    seen: list[str] = []

    def boom() -> None:
        raise RuntimeError("listener failure")

    ch.on("save", boom)
    ch.on("save", lambda: seen.append("ok"))

    with caplog.at_level("ERROR", logger="jsondb.events"):
        assert ch.emit("save") == 1
    assert seen == ["ok"]
    assert "listener failure" in caplog.text

    # Channel still works afterwards.
    ch.emit("save")
    assert seen == ["ok", "ok"]


def test_decorator_once_and_off():
    ch = EventChannel()
    seen: list[str] = []

    @ch.on("delete")
    def on_delete(path: str) -> None:
        seen.append(path)

    ch.once("delete", lambda p: seen.append("once:" + p))

    ch.emit("delete", "a")
    ch.emit("delete", "b")
    assert seen == ["a", "once:a", "b"]

    assert ch.off("delete", on_delete) is True
    assert ch.off("delete", on_delete) is False
    assert ch.listener_count("delete") == 0


def test_unknown_event():
    ch = EventChannel()
    with pytest.raises(ValueError):
        ch.on("saved", lambda: None)  # type: ignore[arg-type]
