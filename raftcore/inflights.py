"""A bounded sliding window of in-flight append messages."""

from __future__ import annotations


class Inflights:
    """A ring buffer holding the last indexes of messages sent but not acknowledged."""

    def __init__(self, cap: int) -> None:
        self._cap = cap
        self._start = 0
        self._count = 0
        self._buffer: list[int] = []

    def full(self) -> bool:
        """Whether no more inflight messages can be added."""
        return self._count == self._cap

    def cap(self) -> int:
        """The capacity of the window."""
        return self._cap

    def add(self, inflight: int) -> None:
        """Record a new inflight index; indexes must be added in increasing order."""
        if self.full():
            raise RuntimeError("cannot add into a full inflights")
        slot = self._start + self._count
        if slot >= self._cap:
            slot -= self._cap
        if slot > len(self._buffer):
            raise RuntimeError("inflights buffer is inconsistent")
        if slot == len(self._buffer):
            self._buffer.append(inflight)
        else:
            self._buffer[slot] = inflight
        self._count += 1

    def free_to(self, to: int) -> None:
        """Free every inflight index smaller than or equal to ``to``."""
        if self._count == 0 or to < self._buffer[self._start]:
            return

        freed = 0
        idx = self._start
        while freed < self._count:
            if to < self._buffer[idx]:
                break
            idx += 1
            if idx >= self._cap:
                idx -= self._cap
            freed += 1

        self._count -= freed
        self._start = idx

    def free_first_one(self) -> None:
        """Free the oldest inflight index."""
        self.free_to(self._buffer[self._start])

    def reset(self) -> None:
        """Free all inflight indexes."""
        self._count = 0
        self._start = 0

    def __len__(self) -> int:
        return self._count

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Inflights):
            return NotImplemented
        return (
            self._cap == other._cap
            and self._start == other._start
            and self._count == other._count
            and self._buffer == other._buffer
        )

    def __copy__(self) -> Inflights:
        clone = Inflights(self._cap)
        clone._start = self._start
        clone._count = self._count
        clone._buffer = list(self._buffer)
        return clone

    def __repr__(self) -> str:
        return (
            f"Inflights(cap={self._cap}, start={self._start}, "
            f"count={self._count}, buffer={self._buffer!r})"
        )