# tinylsm

The in-memory and on-disk building blocks of a small LSM-tree key-value
store, written in pure Python:

- `tinylsm.skiplist`: `SkipList`, an ordered map with string keys. It has
  point lookups (`get`), prefix ranges (`begin_prefix` / `end_prefix`) and
  range queries driven by a monotone predicate (`iters_monotony_predicate`).
  `size()` reports approximately how many bytes the entries take up.
- `tinylsm.memtable`: `MemTable`, which holds one active skip list and a
  stack of frozen ones, newest first. When the active table's size reaches
  `per_mem_size_limit`, the table is frozen and a new one is started.
  Deletes are stored as empty values, called tombstones.
- `tinylsm.iterator`: `HeapIterator` merges many sorted `SearchItem`
  sources. For each key it yields the newest visible version. It hides keys
  whose newest visible version is a tombstone. Given a nonzero
  `max_tranc_id`, it ignores versions written by later transactions.
- `tinylsm.bloom_filter`: `BloomFilter`, with `add`, `possibly_contains`
  (also available as `in`), `clear`, and `encode` / `decode` to and from
  bytes.
- `tinylsm.files`: two binary files with offset-based reads and writes.
  `FileObj` is an ordinary file and reads integers as little-endian.
  `MmapFile` is a memory-mapped file; a write resizes it so it ends where
  the write ends.
- `tinylsm.record`: `Record`, a transaction log entry (create, commit,
  rollback, put, delete), and its binary encoding.
- `tinylsm.wal`: `WAL`, a write-ahead log. Records are buffered, then
  appended to files named `wal.<seq>`. Once a file reaches its size limit,
  a new file is started. A background thread deletes old files whose
  transactions are all finished. `WAL.recover` reads back the records of
  unfinished transactions.
- `tinylsm.config`: `Config`, a frozen dataclass of engine settings, which
  can be loaded from and saved to TOML. `get_config(path)` returns one
  shared instance per path and falls back to the defaults when the file is
  missing.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
from tinylsm.memtable import MemTable
from tinylsm.skiplist import SkipList

sl = SkipList(16)
sl.put("apple", "red", 0)
sl.put("banana", "yellow", 0)
it = sl.get("apple", 0)
assert it.is_valid() and it.value == "red"

table = MemTable(4 * 1024 * 1024)
table.put("k1", "v1", 1)
table.put("k2", "v2", 1)
table.remove("k1", 2)          # a tombstone: an empty value
print(list(table.begin(0)))    # [('k2', 'v2')]
```

A write-ahead log records each transaction's operations, and
`WAL.recover` reads them back:

```python
from tinylsm.record import Record
from tinylsm.wal import WAL

with WAL("data", 10, 0, 1, 4096) as wal:
    wal.log([Record.create(1), Record.put(1, "k", "v"), Record.commit(1)], True)

pending = WAL.recover("data", 0)   # {1: [create, put, commit]}
```

`Record.decode` turns back-to-back encoded records into a list. `recover`
skips a record that was only partly written at the end of a file.

## What is not included

These are components, not a complete database. The package has no SST
files, block cache or compaction, so a `MemTable` is never written to disk
as sorted tables. It has no engine that combines the memtable, the log and
transactions into a single store, and no transaction manager. It provides
no server, no Redis-style command layer and no command-line program.