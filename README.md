# raftcore

Building blocks for a Raft consensus implementation, in pure Python with no
third-party dependencies:

- **`raftcore.messages`**: plain data types for log entries, hard and
  configuration state, snapshots and messages (`Entry`, `HardState`,
  `ConfState`, `SnapshotMetadata`, `Snapshot`, `Message`, `EntryType`).
  `Entry.encoded_size()` gives the size of an entry in its protobuf wire
  encoding.
- **`raftcore.storage`**: the abstract `Storage` interface a Raft node reads
  its log from, `RaftState`, and `MemStorage`, a thread-safe in-memory
  implementation backed by a `MemStorageCore`.
- **`raftcore.progress`**: `Progress`, the leader's view of how far a follower
  has replicated, with probe, replicate and snapshot states
  (`raftcore.state.ProgressState`).
- **`raftcore.inflights`**: `Inflights`, a fixed-size sliding window that
  limits the number of append messages in flight.
- **`raftcore.util`**: `limit_size`, `is_continuous_ents`, `majority`, the
  `Union` view of two id sets, and the `NO_LIMIT` constant.
- **`raftcore.errors`**: `RaftError` and the storage errors
  (`CompactedError`, `UnavailableError`, `SnapshotOutOfDateError`,
  `SnapshotTemporarilyUnavailableError`, all of them `StorageError`s).

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Using the in-memory storage

```python
from raftcore.messages import ConfState, Entry
from raftcore.storage import MemStorage
from raftcore.errors import CompactedError

storage = MemStorage.new_with_conf_state(ConfState(voters=[1, 2, 3]))

with storage.wl() as core:
    core.append([Entry(index=1, term=1), Entry(index=2, term=1), Entry(index=3, term=2)])

assert storage.first_index() == 1
assert storage.last_index() == 3
assert storage.term(3) == 2
assert [e.index for e in storage.entries(1, 3)] == [1, 2]

with storage.wl() as core:
    core.compact(3)

try:
    storage.entries(1, 3)
except CompactedError:
    pass
```

`new_with_conf_state` also accepts a `(voters, learners)` pair.

`rl()` and `wl()` are context managers that hold the storage's lock and give
access to the underlying `MemStorageCore` for the length of the `with` block.

Passing `max_size` to `entries` caps the total encoded size of the returned
entries; `None` or `raftcore.util.NO_LIMIT` means no cap. At least one entry
always comes back when the range is not empty. Asking for a `high` beyond
`last_index() + 1` raises `IndexError`.

On the core, `append` raises `ValueError` if the new entries would overwrite
compacted entries or leave a gap, and `compact` raises `ValueError` past the
last index plus one. `apply_snapshot` raises `SnapshotOutOfDateError` for a
snapshot older than the first index held. After `trigger_snap_unavailable()`,
the next `snapshot()` call raises `SnapshotTemporarilyUnavailableError`.

## Tracking follower progress

```python
from raftcore.progress import Progress
from raftcore.state import ProgressState

pr = Progress(next_idx=5, ins_size=256)
pr.become_replicate()
pr.update_state(7)          # sends up to index 7, records it in flight
assert pr.next_idx == 8
assert pr.maybe_update(7)   # follower acknowledged index 7
assert pr.state is ProgressState.REPLICATE
```

Calling `update_state` while in the snapshot state raises `RuntimeError`.

## Flow control

```python
from raftcore.inflights import Inflights

window = Inflights(3)
for index in (10, 11, 12):
    window.add(index)
assert window.full()
window.free_to(11)
assert not window.full()
```

Adding to a full window raises `RuntimeError`.

## What this package does not do

It holds no Raft node itself: there is no election or log-replication state
machine, no message transport, no configuration-change handling and no
quorum tracker. Storage is in memory only; nothing is written to disk, and
`MemStorage` keeps raft logs but no applied data, so its snapshots carry
metadata without a payload.