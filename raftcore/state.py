"""Replication state of a follower as seen by the leader."""

from __future__ import annotations

import enum


class ProgressState(enum.Enum):
    """How the leader is currently replicating to a peer."""

    PROBE = "probe"
    REPLICATE = "replicate"
    SNAPSHOT = "snapshot"

    def __str__(self) -> str:
        return _DISPLAY[self]


_DISPLAY = {
    ProgressState.PROBE: "StateProbe",
    ProgressState.REPLICATE: "StateReplicate",
    ProgressState.SNAPSHOT: "StateSnaphot",
}