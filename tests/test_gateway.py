from __future__ import annotations

import asyncio
import gzip
import json
import threading
import time
from pathlib import Path

import pytest

from jsondb.disk_store import DiskJsonDocumentStore
from jsondb.document import DocumentStore
from jsondb.errors import PersistenceError
from jsondb.gateway import PersistenceGateway


def _gateway(path: Path, *, cache: bool = False, compress: bool = False) -> PersistenceGateway:
    store = DocumentStore(cache=cache)
    return PersistenceGateway(store, DiskJsonDocumentStore(path), compress=compress)


def test_load_creates_missing_file(db_path: Path):
    async def _run():
        gw = _gateway(db_path)
        assert await gw.load() is True
        assert json.loads(db_path.read_text(encoding="utf-8")) == {}

    asyncio.run(_run())


def test_load_blank_file_is_empty_document(db_path: Path):
    db_path.write_text("   \n", encoding="utf-8")

    async def _run():
        gw = _gateway(db_path)
        assert await gw.load() is True
        assert json.loads(db_path.read_text(encoding="utf-8")) == {}

    asyncio.run(_run())


@pytest.mark.parametrize("content", ["[1, 2, 3]", "not json {", '"string"', "42"])
def test_malformed_file_keeps_memory(db_path: Path, content: str, caplog):
    db_path.write_text(content, encoding="utf-8")

    async def _run():
        gw = _gateway(db_path)
        store = gw.store
        store.set("kept", True)
        with caplog.at_level("WARNING", logger="jsondb.gateway"):
            assert await gw.load() is False
        assert store.data == {"kept": True}
        # The bad file is left alone for an operator to inspect.
        assert db_path.read_text(encoding="utf-8") == content

        # Rejecting the file released the lock: a save can run right after.
        assert gw.locked() is False
        await asyncio.wait_for(gw.save(), timeout=5)
        assert json.loads(db_path.read_text(encoding="utf-8")) == {"kept": True}

    asyncio.run(_run())
    assert "keeping in-memory data" in caplog.text


def test_save_then_load_roundtrip(db_path: Path):
    async def _run():
        gw = _gateway(db_path)
        store = gw.store
        for i in range(10):
            store.set(f"key{i}", {"i": i, "items": list(range(i))})
        store.set("nested.deep.value", "x")
        expected = json.loads(json.dumps(store.data))

        saves: list[int] = []
        store.events.on("save", lambda: saves.append(1))
        await gw.save()
        assert saves == [1]
        assert not store.dirty

        fresh = _gateway(db_path, cache=True)
        assert await fresh.load() is True
        assert fresh.store.data == expected
        assert fresh.store.mirror == expected

    asyncio.run(_run())


def test_compressed_file_roundtrip(db_path: Path):
    async def _run():
        gw = _gateway(db_path, compress=True)
        gw.store.set("text", 'colons: "quoted" and  spaces\n')
        await gw.save()

        raw = db_path.read_bytes()
        assert raw[:2] == b"\x1f\x8b"
        assert json.loads(gzip.decompress(raw)) == {"text": 'colons: "quoted" and  spaces\n'}

        # A store without compression still reads it.
        plain = _gateway(db_path)
        await plain.load()
        assert plain.store.get("text") == 'colons: "quoted" and  spaces\n'

    asyncio.run(_run())


def test_save_failure_restores_dirty_keys(tmp_path: Path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")

    async def _run():
        gw = _gateway(blocker / "db.json")
        gw.store.set("a", 1)
        with pytest.raises(PersistenceError):
            await gw.save()
        assert set(gw.store.dirty) == {"a"}
        # Lock released on failure.
        assert gw.locked() is False

    asyncio.run(_run())


def test_unserializable_document(db_path: Path):
    async def _run():
        gw = _gateway(db_path)
        gw.store.set("bad", {1, 2})
        with pytest.raises(PersistenceError):
            await gw.save()
        assert "bad" in gw.store.dirty
        assert not db_path.exists()

    asyncio.run(_run())


def test_load_waits_for_pending_save(db_path: Path):
    order: list[str] = []

    class SlowMedium(DiskJsonDocumentStore):
        def read(self):
            order.append("read")
            return super().read()

        def write(self, payload: bytes) -> None:
            order.append("write-start")
            time.sleep(0.05)
            super().write(payload)
            order.append("write-end")

    async def _run():
        store = DocumentStore()
        gw = PersistenceGateway(store, SlowMedium(db_path))
        store.set("a", 1)
        save = asyncio.create_task(gw.save())
        await asyncio.sleep(0)
        load = asyncio.create_task(gw.load())
        await asyncio.gather(save, load)
        assert store.data == {"a": 1}

    asyncio.run(_run())
    assert order == ["write-start", "write-end", "read"]


def test_concurrent_sets_during_flush_leave_valid_file(db_path: Path):
    async def _run():
        gw = _gateway(db_path)
        store = gw.store

        async def writer(n: int) -> None:
            for i in range(25):
                store.set(f"w{n}.k{i}", i)
                await asyncio.sleep(0)

        async def flusher() -> None:
            for _ in range(10):
                await gw.save()

        await asyncio.gather(flusher(), *(writer(n) for n in range(4)))
        await gw.save()

        on_disk = json.loads(db_path.read_text(encoding="utf-8"))
        assert on_disk == store.data
        assert sum(len(v) for v in on_disk.values()) == 100

    asyncio.run(_run())


def test_dirty_keys_survive_until_write_completes(db_path: Path):
    seen_during_write: list[set[str]] = []
    release = threading.Event()

    class BlockingMedium(DiskJsonDocumentStore):
        def write(self, payload: bytes) -> None:
            release.wait(timeout=5)
            super().write(payload)

    async def _run():
        store = DocumentStore()
        gw = PersistenceGateway(store, BlockingMedium(db_path))
        store.set("a", 1)
        store.set("b", 1)

        save = asyncio.create_task(gw.save())
        while not gw.locked():
            await asyncio.sleep(0)
        await asyncio.sleep(0.01)

        seen_during_write.append(set(store.dirty))
        store.set("b", 2)
        store.set("c", 3)
        release.set()
        await save

        assert set(store.dirty) == {"b", "c"}
        assert json.loads(db_path.read_text(encoding="utf-8")) == {"a": 1, "b": 1}

    asyncio.run(_run())
    assert seen_during_write == [{"a", "b"}]


def test_cancelled_save_keeps_keys_dirty(db_path: Path):
    release = threading.Event()

    class BlockingMedium(DiskJsonDocumentStore):
        def write(self, payload: bytes) -> None:
            release.wait(timeout=5)
            super().write(payload)

    async def _run():
        store = DocumentStore()
        gw = PersistenceGateway(store, BlockingMedium(db_path))
        store.set("a", 1)

        save = asyncio.create_task(gw.save())
        while not gw.locked():
            await asyncio.sleep(0)
        save.cancel()
        with pytest.raises(asyncio.CancelledError):
            await save
        release.set()

        assert "a" in store.dirty
        assert gw.save_count == 0

    asyncio.run(_run())
