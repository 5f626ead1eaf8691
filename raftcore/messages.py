"""Raft log and state records, with protobuf-compatible size accounting."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class EntryType(enum.IntEnum):
    """Kind of payload carried by a log entry."""

    NORMAL = 0
    CONF_CHANGE = 1
    CONF_CHANGE_V2 = 2


def _varint_size(value: int) -> int:
    """Number of bytes a non-negative integer takes as a protobuf varint."""
    size = 1
    while value >= 0x80:
        value >>= 7
        size += 1
    return size


def _uint_field_size(value: int) -> int:
    # proto3 omits fields holding their default value; one tag byte suffices
    # for every field number used here.
    return 0 if value == 0 else 1 + _varint_size(value)


def _bytes_field_size(value: bytes) -> int:
    return 0 if not value else 1 + _varint_size(len(value)) + len(value)


@dataclass
class Entry:
    """A single entry of the replicated log."""

    term: int = 0
    index: int = 0
    data: bytes = b""
    context: bytes = b""
    entry_type: EntryType = EntryType.NORMAL

    def encoded_size(self) -> int:
        """Size in bytes of this entry in its protobuf wire encoding."""
        return (
            _uint_field_size(int(self.entry_type))
            + _uint_field_size(self.term)
            + _uint_field_size(self.index)
            + _bytes_field_size(self.data)
            + _bytes_field_size(self.context)
        )


@dataclass
class HardState:
    """Persistent state: current term, vote cast and commit index."""

    term: int = 0
    vote: int = 0
    commit: int = 0


@dataclass
class ConfState:
    """Membership of the cluster, possibly in a joint configuration."""

    voters: list[int] = field(default_factory=list)
    learners: list[int] = field(default_factory=list)
    voters_outgoing: list[int] = field(default_factory=list)
    learners_next: list[int] = field(default_factory=list)
    auto_leave: bool = False


@dataclass
class SnapshotMetadata:
    """Position and membership captured by a snapshot."""

    conf_state: ConfState = field(default_factory=ConfState)
    index: int = 0
    term: int = 0


@dataclass
class Snapshot:
    """A snapshot of the state machine together with its metadata."""

    data: bytes = b""
    metadata: SnapshotMetadata = field(default_factory=SnapshotMetadata)


@dataclass
class Message:
    """A message exchanged between raft peers."""

    msg_type: int = 0
    to: int = 0
    from_: int = 0
    term: int = 0
    log_term: int = 0
    index: int = 0
    entries: list[Entry] = field(default_factory=list)
    commit: int = 0
    snapshot: Snapshot = field(default_factory=Snapshot)
    request_snapshot: int = 0
    reject: bool = False
    reject_hint: int = 0
    context: bytes = b""
    priority: int = 0