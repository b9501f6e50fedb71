from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv

from .options import DatabaseOptions, SnapshotOptions
from .paths import DEFAULT_DB_FILE, DEFAULT_SNAPSHOT_DIR


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_seconds(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # Backing file
    file_path: str
    compress: bool

    # Reads / flushing
    cache: bool
    auto_save_interval: float
    eager_flush: bool

    # Snapshots
    snapshots_enabled: bool
    snapshots_path: str
    snapshots_interval: float
    snapshots_keep: int | None

    def to_options(self) -> DatabaseOptions:
        return DatabaseOptions(
            compress=self.compress,
            cache=self.cache,
            auto_save_interval=timedelta(seconds=self.auto_save_interval),
            eager_flush=self.eager_flush,
            snapshots=SnapshotOptions(
                enabled=self.snapshots_enabled,
                path=self.snapshots_path,
                interval=timedelta(seconds=self.snapshots_interval),
                keep=self.snapshots_keep,
            ),
        )


def get_settings(env_file: str | os.PathLike[str] | None = None) -> Settings:
    """
    Read JSONDB_* environment variables. Intervals are in seconds.

    If ``env_file`` is given it is loaded first; variables already set in the
    environment win.
    """
    if env_file is not None:
        load_dotenv(env_file)

    return Settings(
        file_path=os.getenv("JSONDB_FILE", DEFAULT_DB_FILE),
        compress=_env_bool("JSONDB_COMPRESS", False),
        cache=_env_bool("JSONDB_CACHE", False),
        auto_save_interval=_env_seconds("JSONDB_AUTOSAVE_INTERVAL", 5.0),
        eager_flush=_env_bool("JSONDB_EAGER_FLUSH", True),
        snapshots_enabled=_env_bool("JSONDB_SNAPSHOTS_ENABLED", False),
        snapshots_path=os.getenv("JSONDB_SNAPSHOTS_PATH", DEFAULT_SNAPSHOT_DIR),
        snapshots_interval=_env_seconds("JSONDB_SNAPSHOTS_INTERVAL", 86400.0),
        snapshots_keep=_env_int("JSONDB_SNAPSHOTS_KEEP"),
    )
