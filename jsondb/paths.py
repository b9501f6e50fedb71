from __future__ import annotations

import os
from pathlib import Path

DEFAULT_DB_FILE = "./db.json"
DEFAULT_SNAPSHOT_DIR = "./backups/"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def as_path(value: str | os.PathLike[str] | None, default: str) -> Path:
    return Path(value if value else default).expanduser()
