"""Storage of the raft log and state, with an in-memory implementation."""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field

from raftcore.errors import (
    CompactedError,
    SnapshotOutOfDateError,
    SnapshotTemporarilyUnavailableError,
    UnavailableError,
)
from raftcore.messages import ConfState, Entry, HardState, Snapshot, SnapshotMetadata
from raftcore.util import limit_size


@dataclass
class RaftState:
    """The hard state and the configuration state of a raft node."""

    hard_state: HardState = field(default_factory=HardState)
    conf_state: ConfState = field(default_factory=ConfState)

    def initialized(self) -> bool:
        """Whether the state carries a configuration."""
        return self.conf_state != ConfState()


class Storage(ABC):
    """Everything raft needs to read back: log entries, hard state and snapshots.

    Any error raised by these methods leaves the raft instance inoperable;
    recovery is the application's responsibility.
    """

    @abstractmethod
    def initial_state(self) -> RaftState:
        """The state to start from when raft is initialised."""

    @abstractmethod
    def entries(self, low: int, high: int, max_size: int | None = None) -> list[Entry]:
        """Log entries in ``[low, high)``, limited in total size by ``max_size``.

        At least one entry is returned when the range is not empty.
        """

    @abstractmethod
    def term(self, idx: int) -> int:
        """The term of the entry at ``idx``, in ``[first_index() - 1, last_index()]``."""

    @abstractmethod
    def first_index(self) -> int:
        """The index of the first available entry: the truncated index plus one."""

    @abstractmethod
    def last_index(self) -> int:
        """The index of the last entry held."""

    @abstractmethod
    def snapshot(self, request_index: int) -> Snapshot:
        """The most recent snapshot, with index at least ``request_index``."""


def _as_conf_state(conf_state: ConfState | tuple[Sequence[int], Sequence[int]]) -> ConfState:
    if isinstance(conf_state, ConfState):
        return copy.deepcopy(conf_state)
    voters, learners = conf_state
    return ConfState(voters=list(voters), learners=list(learners))


class MemStorageCore:
    """The state held by a :class:`MemStorage`; reach it through ``rl`` and ``wl``."""

    def __init__(self) -> None:
        self.raft_state = RaftState()
        # entries[i] sits at log position i + snapshot_metadata.index + 1.
        self.entries: list[Entry] = []
        self.snapshot_metadata = SnapshotMetadata()
        self._snap_unavailable = False

    @property
    def hard_state(self) -> HardState:
        """The current hard state."""
        return self.raft_state.hard_state

    def set_hardstate(self, hs: HardState) -> None:
        """Save the current hard state."""
        self.raft_state.hard_state = hs

    def set_conf_state(self, cs: ConfState) -> None:
        """Save the current configuration state."""
        self.raft_state.conf_state = cs

    def _has_entry_at(self, index: int) -> bool:
        return bool(self.entries) and self.first_index() <= index <= self.last_index()

    def commit_to(self, index: int) -> None:
        """Commit up to ``index``, which must be held in the log."""
        if not self._has_entry_at(index):
            raise ValueError(f"commit_to {index} but the entry does not exist")
        entry = self.entries[index - self.entries[0].index]
        self.raft_state.hard_state.commit = index
        self.raft_state.hard_state.term = entry.term

    def first_index(self) -> int:
        """The index of the first entry held, or the one after the snapshot."""
        if self.entries:
            return self.entries[0].index
        return self.snapshot_metadata.index + 1

    def last_index(self) -> int:
        """The index of the last entry held, or the snapshot's index."""
        if self.entries:
            return self.entries[-1].index
        return self.snapshot_metadata.index

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        """Replace the contents of the storage with those of ``snapshot``."""
        meta = snapshot.metadata
        if self.first_index() > meta.index:
            raise SnapshotOutOfDateError()
        self.snapshot_metadata = copy.deepcopy(meta)
        self.raft_state.hard_state.term = meta.term
        self.raft_state.hard_state.commit = meta.index
        self.entries.clear()
        self.raft_state.conf_state = copy.deepcopy(meta.conf_state)

    def _snapshot(self) -> Snapshot:
        hard_state = self.raft_state.hard_state
        return Snapshot(
            metadata=SnapshotMetadata(
                conf_state=copy.deepcopy(self.raft_state.conf_state),
                index=hard_state.commit,
                term=hard_state.term,
            )
        )

    def compact(self, compact_index: int) -> None:
        """Discard every entry before ``compact_index``."""
        if compact_index <= self.first_index():
            return
        if compact_index > self.last_index() + 1:
            raise ValueError(
                f"compact not received raft logs: {compact_index}, "
                f"last index: {self.last_index()}"
            )
        if self.entries:
            del self.entries[: compact_index - self.entries[0].index]

    def append(self, ents: Sequence[Entry]) -> None:
        """Append ``ents``, overwriting any held entries they conflict with."""
        if not ents:
            return
        first_new = ents[0].index
        if self.first_index() > first_new:
            raise ValueError(
                f"overwrite compacted raft logs, compacted: {self.first_index() - 1}, "
                f"append: {first_new}"
            )
        if self.last_index() + 1 < first_new:
            raise ValueError(
                f"raft logs should be continuous, last index: {self.last_index()}, "
                f"new appended: {first_new}"
            )
        del self.entries[first_new - self.first_index():]
        self.entries.extend(copy.copy(entry) for entry in ents)

    def commit_to_and_set_conf_states(self, idx: int, cs: ConfState | None) -> None:
        """Commit up to ``idx`` and, if given, replace the configuration state."""
        self.commit_to(idx)
        if cs is not None:
            self.raft_state.conf_state = cs

    def trigger_snap_unavailable(self) -> None:
        """Make the next snapshot request fail as temporarily unavailable."""
        self._snap_unavailable = True


class MemStorage(Storage):
    """A thread-safe in-memory storage holding raft logs but no applied data."""

    def __init__(self) -> None:
        self._core = MemStorageCore()
        self._lock = threading.RLock()

    @staticmethod
    def new_with_conf_state(
        conf_state: ConfState | tuple[Sequence[int], Sequence[int]],
    ) -> MemStorage:
        """Create a storage initialised with ``conf_state`` or a ``(voters, learners)`` pair."""
        store = MemStorage()
        store.initialize_with_conf_state(conf_state)
        return store

    def initialize_with_conf_state(
        self, conf_state: ConfState | tuple[Sequence[int], Sequence[int]]
    ) -> None:
        """Set the initial configuration of a storage not yet initialised."""
        with self.wl() as core:
            if core.raft_state.initialized():
                raise RuntimeError("storage is already initialized")
            core.raft_state.conf_state = _as_conf_state(conf_state)

    @contextmanager
    def rl(self) -> Iterator[MemStorageCore]:
        """Hold the lock and give access to the core for reading."""
        with self._lock:
            yield self._core

    @contextmanager
    def wl(self) -> Iterator[MemStorageCore]:
        """Hold the lock and give access to the core for writing."""
        with self._lock:
            yield self._core

    def initial_state(self) -> RaftState:
        with self.rl() as core:
            return copy.deepcopy(core.raft_state)

    def entries(self, low: int, high: int, max_size: int | None = None) -> list[Entry]:
        with self.rl() as core:
            if low < core.first_index():
                raise CompactedError()
            if high > core.last_index() + 1:
                raise IndexError(
                    f"index out of bound (last: {core.last_index() + 1}, high: {high})"
                )
            if low > high:
                raise ValueError(f"invalid range: low {low} is greater than high {high}")
            offset = core.first_index()
            selected = [copy.copy(e) for e in core.entries[low - offset : high - offset]]
        return limit_size(selected, max_size)

    def term(self, idx: int) -> int:
        with self.rl() as core:
            if idx == core.snapshot_metadata.index:
                return core.snapshot_metadata.term
            if idx < core.first_index():
                raise CompactedError()
            if not core.entries or idx - core.entries[0].index >= len(core.entries):
                raise UnavailableError()
            return core.entries[idx - core.entries[0].index].term

    def first_index(self) -> int:
        with self.rl() as core:
            return core.first_index()

    def last_index(self) -> int:
        with self.rl() as core:
            return core.last_index()

    def snapshot(self, request_index: int) -> Snapshot:
        with self.wl() as core:
            if core._snap_unavailable:
                core._snap_unavailable = False
                raise SnapshotTemporarilyUnavailableError()
            snap = core._snapshot()
        if snap.metadata.index < request_index:
            snap.metadata.index = request_index
        return snap