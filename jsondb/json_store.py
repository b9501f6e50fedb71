from __future__ import annotations

import gzip
import json
import os
import zlib
from pathlib import Path
from typing import Any

GZIP_MAGIC = b"\x1f\x8b"


def encode_document(text: str, *, compress: bool = False) -> bytes:
    """
    Turn serialized JSON text into the bytes stored on disk.

    ``compress`` gzips the payload; decode_document() recognizes either form.
    """
    payload = text.encode("utf-8")
    if not payload.endswith(b"\n"):
        payload += b"\n"
    if compress:
        # mtime=0 keeps identical documents byte-identical on disk.
        return gzip.compress(payload, mtime=0)
    return payload


def decode_document(raw: bytes) -> Any | None:
    """
    Parse stored bytes back into JSON data.

    Returns None for an empty (or whitespace-only) payload. Raises ValueError
    when the bytes are not valid (optionally gzipped) UTF-8 JSON.
    """
    if raw.startswith(GZIP_MAGIC):
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as e:
            raise ValueError(f"corrupt gzip payload: {e}") from e
    text = raw.decode("utf-8")
    if not text.strip():
        return None
    return json.loads(text)


def read_bytes(path: Path) -> bytes | None:
    """Read a file in full. Returns None if it does not exist."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """
    Atomically write bytes to disk by writing to a temp file then replacing.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with tmp_path.open("wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
