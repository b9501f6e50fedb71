from __future__ import annotations


class JsonDBError(Exception):
    pass


class InvalidPathError(JsonDBError, ValueError):
    def __init__(self, path: str, reason: str = ""):
        super().__init__(f"Invalid path {path!r}" + (f": {reason}" if reason else ""))
        self.path = path


class PathConflictError(JsonDBError, TypeError):
    """Raised when a dotted path runs into a value that cannot hold it."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot resolve {path!r}: {reason}")
        self.path = path


class PersistenceError(JsonDBError):
    pass


class SnapshotError(JsonDBError):
    pass
