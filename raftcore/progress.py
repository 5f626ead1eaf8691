"""Replication progress of a single follower, as tracked by the leader."""

from __future__ import annotations

from dataclasses import dataclass

from raftcore.inflights import Inflights
from raftcore.state import ProgressState

INVALID_INDEX = 0
"""The index used to mean "no index"."""


@dataclass(init=False)
class Progress:
    """The leader's view of how far a follower has caught up."""

    matched: int
    next_idx: int
    state: ProgressState
    paused: bool
    pending_snapshot: int
    pending_request_snapshot: int
    recent_active: bool
    ins: Inflights
    commit_group_id: int
    committed_index: int

    def __init__(self, next_idx: int, ins_size: int) -> None:
        self.matched = 0
        self.next_idx = next_idx
        self.state = ProgressState.PROBE
        self.paused = False
        self.pending_snapshot = 0
        self.pending_request_snapshot = 0
        self.recent_active = False
        self.ins = Inflights(ins_size)
        self.commit_group_id = 0
        self.committed_index = 0

    def _reset_state(self, state: ProgressState) -> None:
        self.paused = False
        self.pending_snapshot = 0
        self.state = state
        self.ins.reset()

    def reset(self, next_idx: int) -> None:
        """Return to the initial probing state, expecting ``next_idx`` next."""
        self.matched = 0
        self.next_idx = next_idx
        self.state = ProgressState.PROBE
        self.paused = False
        self.pending_snapshot = 0
        self.pending_request_snapshot = INVALID_INDEX
        self.recent_active = False
        self.ins.reset()

    def become_probe(self) -> None:
        """Switch to probing the follower's log position."""
        if self.state is ProgressState.SNAPSHOT:
            # The pending snapshot was delivered; probe from just after it.
            pending_snapshot = self.pending_snapshot
            self._reset_state(ProgressState.PROBE)
            self.next_idx = max(self.matched + 1, pending_snapshot + 1)
        else:
            self._reset_state(ProgressState.PROBE)
            self.next_idx = self.matched + 1

    def become_replicate(self) -> None:
        """Switch to optimistic, pipelined replication."""
        self._reset_state(ProgressState.REPLICATE)
        self.next_idx = self.matched + 1

    def become_snapshot(self, snapshot_idx: int) -> None:
        """Switch to waiting for the snapshot at ``snapshot_idx`` to be applied."""
        self._reset_state(ProgressState.SNAPSHOT)
        self.pending_snapshot = snapshot_idx

    def snapshot_failure(self) -> None:
        """Forget the pending snapshot after it failed to be delivered."""
        self.pending_snapshot = 0

    def maybe_snapshot_abort(self) -> bool:
        """Whether the pending snapshot is no longer needed."""
        return self.state is ProgressState.SNAPSHOT and self.matched >= self.pending_snapshot

    def maybe_update(self, n: int) -> bool:
        """Record that the follower holds entries up to ``n``.

        Returns False when ``n`` comes from an outdated message.
        """
        need_update = self.matched < n
        if need_update:
            self.matched = n
            self.resume()
        if self.next_idx < n + 1:
            self.next_idx = n + 1
        return need_update

    def update_committed(self, committed_index: int) -> None:
        """Raise the follower's known committed index, never lowering it."""
        if committed_index > self.committed_index:
            self.committed_index = committed_index

    def optimistic_update(self, n: int) -> None:
        """Advance the next index past ``n`` before it is acknowledged."""
        self.next_idx = n + 1

    def maybe_decr_to(self, rejected: int, last: int, request_snapshot: int) -> bool:
        """Handle a rejection of index ``rejected`` by a follower whose last index is ``last``.

        Returns False when the rejection is stale; otherwise lowers the next
        index (or records a requested snapshot) and returns True.
        """
        if self.state is ProgressState.REPLICATE:
            if rejected < self.matched or (
                rejected == self.matched and request_snapshot == INVALID_INDEX
            ):
                return False
            if request_snapshot == INVALID_INDEX:
                self.next_idx = self.matched + 1
            else:
                self.pending_request_snapshot = request_snapshot
            return True

        if (
            self.next_idx == 0 or self.next_idx - 1 != rejected
        ) and request_snapshot == INVALID_INDEX:
            return False

        if request_snapshot == INVALID_INDEX:
            self.next_idx = max(min(rejected, last + 1), 1)
        elif self.pending_request_snapshot == INVALID_INDEX:
            self.pending_request_snapshot = request_snapshot
        self.resume()
        return True

    def is_paused(self) -> bool:
        """Whether sending replication messages to this peer is on hold."""
        if self.state is ProgressState.PROBE:
            return self.paused
        if self.state is ProgressState.REPLICATE:
            return self.ins.full()
        return True

    def resume(self) -> None:
        """Allow replication messages again."""
        self.paused = False

    def pause(self) -> None:
        """Hold replication messages."""
        self.paused = True

    def update_state(self, last: int) -> None:
        """Account for a replication message whose last entry index is ``last``."""
        if self.state is ProgressState.REPLICATE:
            self.optimistic_update(last)
            self.ins.add(last)
        elif self.state is ProgressState.PROBE:
            self.pause()
        else:
            raise RuntimeError(f"updating progress state in unhandled state {self.state!r}")