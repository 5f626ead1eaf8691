import pytest

from raftcore.errors import (
    CompactedError,
    SnapshotOutOfDateError,
    SnapshotTemporarilyUnavailableError,
    UnavailableError,
)
from raftcore.messages import ConfState, Entry, HardState, Snapshot, SnapshotMetadata
from raftcore.storage import MemStorage, RaftState
from raftcore.util import NO_LIMIT


def new_entry(index, term):
    return Entry(term=term, index=index)


def new_snapshot(index, term, voters):
    return Snapshot(
        metadata=SnapshotMetadata(conf_state=ConfState(voters=list(voters)), index=index, term=term)
    )


def size_of(entry):
    return entry.encoded_size()


def storage_with(ents):
    storage = MemStorage()
    with storage.wl() as core:
        core.entries = list(ents)
    return storage


BASE3 = [new_entry(3, 3), new_entry(4, 4), new_entry(5, 5)]
BASE4 = BASE3 + [new_entry(6, 6)]


@pytest.mark.parametrize("idx,wterm", [(3, 3), (4, 4), (5, 5)])
def test_storage_term(idx, wterm):
    assert storage_with(BASE3).term(idx) == wterm


def test_storage_term_compacted():
    with pytest.raises(CompactedError):
        storage_with(BASE3).term(2)


def test_storage_term_unavailable():
    with pytest.raises(UnavailableError):
        storage_with(BASE3).term(6)


def test_storage_entries_compacted():
    with pytest.raises(CompactedError):
        storage_with(BASE4).entries(2, 6, NO_LIMIT)


@pytest.mark.parametrize(
    "lo,hi,maxsize,want",
    [
        (3, 4, NO_LIMIT, [new_entry(3, 3)]),
        (4, 5, NO_LIMIT, [new_entry(4, 4)]),
        (4, 6, NO_LIMIT, [new_entry(4, 4), new_entry(5, 5)]),
        (4, 7, NO_LIMIT, [new_entry(4, 4), new_entry(5, 5), new_entry(6, 6)]),
        (4, 7, 0, [new_entry(4, 4)]),
        (4, 7, size_of(BASE4[1]) + size_of(BASE4[2]), [new_entry(4, 4), new_entry(5, 5)]),
        (
            4,
            7,
            size_of(BASE4[1]) + size_of(BASE4[2]) + size_of(BASE4[3]) // 2,
            [new_entry(4, 4), new_entry(5, 5)],
        ),
        (
            4,
            7,
            size_of(BASE4[1]) + size_of(BASE4[2]) + size_of(BASE4[3]) - 1,
            [new_entry(4, 4), new_entry(5, 5)],
        ),
        (
            4,
            7,
            size_of(BASE4[1]) + size_of(BASE4[2]) + size_of(BASE4[3]),
            [new_entry(4, 4), new_entry(5, 5), new_entry(6, 6)],
        ),
    ],
)
def test_storage_entries(lo, hi, maxsize, want):
    assert storage_with(BASE4).entries(lo, hi, maxsize) == want


def test_storage_entries_out_of_bound():
    with pytest.raises(IndexError):
        storage_with(BASE4).entries(4, 8)


def test_storage_last_index():
    storage = storage_with(BASE3)
    assert storage.last_index() == 5
    with storage.wl() as core:
        core.append([new_entry(6, 5)])
    assert storage.last_index() == 6


def test_storage_first_index():
    storage = storage_with(BASE3)
    assert storage.first_index() == 3
    with storage.wl() as core:
        core.compact(4)
    assert storage.first_index() == 4


@pytest.mark.parametrize(
    "idx,windex,wterm,wlen", [(2, 3, 3, 3), (3, 3, 3, 3), (4, 4, 4, 2), (5, 5, 5, 1)]
)
def test_storage_compact(idx, windex, wterm, wlen):
    storage = storage_with(BASE3)
    with storage.wl() as core:
        core.compact(idx)
    index = storage.first_index()
    assert index == windex
    assert storage.entries(index, index + 1, 1)[0].term == wterm
    last = storage.last_index()
    assert len(storage.entries(index, last + 1, 100)) == wlen


def test_storage_compact_beyond_last_raises():
    storage = storage_with(BASE3)
    with storage.wl() as core:
        with pytest.raises(ValueError):
            core.compact(7)


def _snapshot_storage(idx):
    storage = storage_with(BASE3)
    with storage.wl() as core:
        core.raft_state.hard_state.commit = idx
        core.raft_state.hard_state.term = idx
        core.raft_state.conf_state = ConfState(voters=[1, 2, 3])
    return storage


@pytest.mark.parametrize(
    "idx,want,windex",
    [
        (4, new_snapshot(4, 4, [1, 2, 3]), 0),
        (5, new_snapshot(5, 5, [1, 2, 3]), 5),
        (5, new_snapshot(6, 5, [1, 2, 3]), 6),
    ],
)
def test_storage_create_snapshot(idx, want, windex):
    assert _snapshot_storage(idx).snapshot(windex) == want


def test_storage_create_snapshot_unavailable_once():
    storage = _snapshot_storage(5)
    with storage.wl() as core:
        core.trigger_snap_unavailable()
    with pytest.raises(SnapshotTemporarilyUnavailableError):
        storage.snapshot(6)
    assert storage.snapshot(6) == new_snapshot(6, 5, [1, 2, 3])


@pytest.mark.parametrize(
    "entries,want",
    [
        (BASE3, BASE3),
        (
            [new_entry(3, 3), new_entry(4, 6), new_entry(5, 6)],
            [new_entry(3, 3), new_entry(4, 6), new_entry(5, 6)],
        ),
        (BASE3 + [new_entry(6, 5)], BASE3 + [new_entry(6, 5)]),
        ([new_entry(4, 5)], [new_entry(3, 3), new_entry(4, 5)]),
        ([new_entry(6, 6)], BASE3 + [new_entry(6, 6)]),
    ],
)
def test_storage_append(entries, want):
    storage = storage_with(BASE3)
    with storage.wl() as core:
        core.append(entries)
        assert core.entries == want


def test_storage_append_over_compacted_raises():
    storage = storage_with(BASE3)
    with storage.wl() as core:
        with pytest.raises(ValueError):
            core.append([new_entry(2, 3), new_entry(3, 3), new_entry(4, 5)])


def test_storage_append_with_gap_raises():
    storage = storage_with(BASE3)
    with storage.wl() as core:
        with pytest.raises(ValueError):
            core.append([new_entry(7, 5)])


def test_storage_apply_snapshot():
    storage = MemStorage()
    with storage.wl() as core:
        core.apply_snapshot(new_snapshot(4, 4, [1, 2, 3]))
        with pytest.raises(SnapshotOutOfDateError):
            core.apply_snapshot(new_snapshot(3, 3, [1, 2, 3]))
    state = storage.initial_state()
    assert state.hard_state.commit == 4
    assert state.hard_state.term == 4
    assert state.conf_state.voters == [1, 2, 3]
    assert storage.first_index() == 5
    assert storage.last_index() == 4
    assert storage.term(4) == 4


def test_raft_state_initialized():
    assert not RaftState().initialized()
    assert RaftState(conf_state=ConfState(voters=[1])).initialized()


def test_new_with_conf_state_from_pair():
    storage = MemStorage.new_with_conf_state(([1, 2], [3]))
    state = storage.initial_state()
    assert state.conf_state.voters == [1, 2]
    assert state.conf_state.learners == [3]
    assert storage.first_index() == 1
    assert storage.last_index() == 0


def test_initialize_twice_raises():
    storage = MemStorage.new_with_conf_state(ConfState(voters=[1]))
    with pytest.raises(RuntimeError):
        storage.initialize_with_conf_state(([1], []))


def test_commit_to_and_set_conf_states():
    storage = storage_with(BASE3)
    with storage.wl() as core:
        core.commit_to_and_set_conf_states(4, ConfState(voters=[7]))
    state = storage.initial_state()
    assert state.hard_state.commit == 4
    assert state.hard_state.term == 4
    assert state.conf_state.voters == [7]


def test_commit_to_missing_entry_raises():
    storage = storage_with(BASE3)
    with storage.wl() as core:
        with pytest.raises(ValueError):
            core.commit_to(9)


def test_set_hardstate_reflected_in_initial_state():
    storage = MemStorage()
    with storage.wl() as core:
        core.set_hardstate(HardState(term=2, vote=1, commit=3))
    assert storage.initial_state().hard_state == HardState(term=2, vote=1, commit=3)