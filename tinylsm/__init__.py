"""Building blocks of a small LSM-tree key-value store: skip list, memtable,
merging iterator, bloom filter, binary files, log records, write-ahead log
and configuration."""

__version__ = "0.1.0"

__all__ = [
    "bloom_filter",
    "config",
    "files",
    "iterator",
    "memtable",
    "record",
    "skiplist",
    "wal",
]