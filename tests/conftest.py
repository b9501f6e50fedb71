from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db.json"


@pytest.fixture
def sandbox_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Run from a temp directory so relative defaults (./db.json, ./backups/) never touch the repo.
    """
    monkeypatch.chdir(tmp_path)
    for name in (
        "JSONDB_FILE",
        "JSONDB_COMPRESS",
        "JSONDB_CACHE",
        "JSONDB_AUTOSAVE_INTERVAL",
        "JSONDB_EAGER_FLUSH",
        "JSONDB_SNAPSHOTS_ENABLED",
        "JSONDB_SNAPSHOTS_PATH",
        "JSONDB_SNAPSHOTS_INTERVAL",
        "JSONDB_SNAPSHOTS_KEEP",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path
