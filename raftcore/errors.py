"""Exceptions raised by raft storage and state handling."""

from __future__ import annotations


class RaftError(Exception):
    """Base class of every raft error."""

    default_message = "raft error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RaftError):
            return NotImplemented
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class StorageError(RaftError):
    """An error reported by a storage backend."""

    default_message = "storage error"


class CompactedError(StorageError):
    """The requested index precedes the first index still held."""

    default_message = "log compacted"


class UnavailableError(StorageError):
    """The requested index lies beyond the entries held."""

    default_message = "log unavailable"


class SnapshotOutOfDateError(StorageError):
    """The snapshot is older than what the storage already holds."""

    default_message = "snapshot out of date"


class SnapshotTemporarilyUnavailableError(StorageError):
    """A snapshot cannot be produced right now; try again later."""

    default_message = "snapshot is temporarily unavailable"