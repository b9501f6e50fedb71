from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .paths import DEFAULT_SNAPSHOT_DIR


def _positive(value: timedelta) -> timedelta:
    if value <= timedelta(0):
        raise ValueError("interval must be positive")
    return value


class SnapshotOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)

    enabled: bool = False
    path: str = DEFAULT_SNAPSHOT_DIR
    interval: timedelta = timedelta(days=1)
    keep: int | None = Field(default=None, ge=1)

    @field_validator("interval")
    @classmethod
    def check_interval(cls, value: timedelta) -> timedelta:
        return _positive(value)


class DatabaseOptions(BaseModel):
    """
    Construction options for JsonDatabase. Durations accept timedelta values
    or plain numbers of seconds. Field names and their camelCase
    aliases (``autoSaveInterval``) are both accepted:

      { "compress": false, "cache": false, "auto_save_interval": 5,
        "eager_flush": true,
        "snapshots": { "enabled": false, "path": "./backups/", "interval": 86400, "keep": null } }
    """

    model_config = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)

    compress: bool = False
    cache: bool = False
    auto_save_interval: timedelta = timedelta(seconds=5)
    # add/subtract/push/clear schedule their own save instead of waiting for autosave.
    eager_flush: bool = True
    snapshots: SnapshotOptions = Field(default_factory=SnapshotOptions)

    @field_validator("auto_save_interval")
    @classmethod
    def check_interval(cls, value: timedelta) -> timedelta:
        return _positive(value)
