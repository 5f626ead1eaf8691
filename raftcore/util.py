"""Helpers for manipulating raft entries, messages and peer sets."""

from __future__ import annotations

from collections.abc import Iterator, Sequence, Set
from typing import Protocol, TypeVar

from raftcore.messages import Entry, Message

NO_LIMIT = 2**64 - 1
"""A size limit meaning that there is no limit at all."""


class _Sized(Protocol):
    def encoded_size(self) -> int: ...


_T = TypeVar("_T", bound=_Sized)


def limit_size(entries: Sequence[_T], max_size: int | None) -> list[_T]:
    """Return the longest prefix of ``entries`` whose total encoded size fits ``max_size``.

    The first entry is always kept, so a non-empty input never yields an
    empty result. ``None`` or :data:`NO_LIMIT` disables the limit.
    """
    if len(entries) <= 1 or max_size is None or max_size == NO_LIMIT:
        return list(entries)

    kept: list[_T] = []
    size = 0
    for entry in entries:
        size += entry.encoded_size()
        if kept and size > max_size:
            break
        kept.append(entry)
    return kept


def is_continuous_ents(msg: Message, ents: Sequence[Entry]) -> bool:
    """Tell whether ``ents`` directly follow the entries carried by ``msg``."""
    if msg.entries and ents:
        return msg.entries[-1].index + 1 == ents[0].index
    return True


def majority(total: int) -> int:
    """Number of nodes forming a majority among ``total`` nodes."""
    return total // 2 + 1


class Union:
    """A read-only view of the union of two sets of node ids."""

    def __init__(self, first: Set[int], second: Set[int]) -> None:
        self._first = first
        self._second = second

    def __contains__(self, id: object) -> bool:
        return id in self._first or id in self._second

    def __iter__(self) -> Iterator[int]:
        yield from self._first
        for node_id in self._second:
            if node_id not in self._first:
                yield node_id

    def __len__(self) -> int:
        return len(self._first) + len(self._second) - len(self._second & self._first)

    def __bool__(self) -> bool:
        return bool(self._first) or bool(self._second)

    def __repr__(self) -> str:
        return f"Union({sorted(self)!r})"