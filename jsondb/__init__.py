from __future__ import annotations

from .database import JsonDatabase
from .dirty import DirtyTracker
from .disk_store import DiskJsonDocumentStore
from .document import DocumentStore, Entry
from .dotted import MISSING, resolve_for_delete, resolve_for_read, resolve_for_write
from .errors import InvalidPathError, JsonDBError, PathConflictError, PersistenceError, SnapshotError
from .events import EventChannel
from .gateway import PersistenceGateway
from .interfaces import DocumentMedium, SnapshotSink
from .options import DatabaseOptions, SnapshotOptions
from .scheduler import AutosaveScheduler, RecurringTask, SchedulerState
from .settings import Settings, get_settings
from .snapshots import DirectorySnapshotSink, SnapshotManager

__all__ = [
    "JsonDatabase",
    "DatabaseOptions",
    "SnapshotOptions",
    "Settings",
    "get_settings",
    "DocumentStore",
    "Entry",
    "DirtyTracker",
    "EventChannel",
    "PersistenceGateway",
    "AutosaveScheduler",
    "RecurringTask",
    "SchedulerState",
    "SnapshotManager",
    "DirectorySnapshotSink",
    "DiskJsonDocumentStore",
    "DocumentMedium",
    "SnapshotSink",
    "MISSING",
    "resolve_for_read",
    "resolve_for_write",
    "resolve_for_delete",
    "JsonDBError",
    "InvalidPathError",
    "PathConflictError",
    "PersistenceError",
    "SnapshotError",
]
