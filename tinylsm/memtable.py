"""In-memory write buffer: one active skip list plus frozen, read-only ones."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterable

from .config import get_config
from .iterator import HeapIterator, SearchItem
from .skiplist import SkipList, SkipListIterator


class MemTable:
    """Holds recent writes in skip lists before they are persisted.

    Writes go to the active table. Once its size reaches the per-table
    limit it is frozen and a fresh active table takes its place. Frozen
    tables are kept newest first. Deletions are stored as empty values.
    """

    def __init__(self, per_mem_size_limit: int | None = None):
        if per_mem_size_limit is None:
            per_mem_size_limit = get_config().lsm_per_mem_size_limit
        if per_mem_size_limit <= 0:
            raise ValueError("per_mem_size_limit must be positive")
        self._limit = per_mem_size_limit
        self._current = SkipList()
        self._frozen: deque[SkipList] = deque()
        self._frozen_bytes = 0
        self._cur_lock = threading.Lock()
        self._frozen_lock = threading.Lock()

    @property
    def per_mem_size_limit(self) -> int:
        return self._limit

    @property
    def frozen_count(self) -> int:
        """Number of frozen tables."""
        return len(self._frozen)

    # -- helpers that expect the caller to hold the locks -------------------

    def _freeze(self) -> None:
        self._frozen.appendleft(self._current)
        self._frozen_bytes += self._current.size()
        self._current = SkipList()

    def _freeze_if_full(self) -> None:
        if self._current.size() >= self._limit:
            with self._frozen_lock:
                self._freeze()

    def _cur_get(self, key: str, tranc_id: int) -> SkipListIterator:
        found = self._current.get(key, tranc_id)
        return found if found.is_valid() else SkipListIterator()

    def _frozen_get(self, key: str, tranc_id: int) -> SkipListIterator:
        for table in self._frozen:
            found = table.get(key, tranc_id)
            if found.is_valid():
                return found
        return SkipListIterator()

    # -- writes --------------------------------------------------------------

    def put(self, key: str, value: str, tranc_id: int = 0) -> None:
        """Write one entry, freezing the active table if it became full."""
        with self._cur_lock:
            self._current.put(key, value, tranc_id)
            self._freeze_if_full()

    def put_batch(self, kvs: Iterable[tuple[str, str]], tranc_id: int = 0) -> None:
        """Write several entries, then freeze the active table if full."""
        with self._cur_lock:
            for key, value in kvs:
                self._current.put(key, value, tranc_id)
            self._freeze_if_full()

    def remove(self, key: str, tranc_id: int = 0) -> None:
        """Record a deletion marker for ``key``."""
        with self._cur_lock:
            self._current.put(key, "", tranc_id)

    def remove_batch(self, keys: Iterable[str], tranc_id: int = 0) -> None:
        """Record deletion markers, then freeze the active table if full."""
        with self._cur_lock:
            for key in keys:
                self._current.put(key, "", tranc_id)
            self._freeze_if_full()

    # -- reads ---------------------------------------------------------------

    def get(self, key: str, tranc_id: int = 0) -> SkipListIterator:
        """Look up ``key`` in the active table, then frozen ones newest first.

        Returns the end iterator when the key is absent. A found deletion
        marker is returned as an entry with an empty value.
        """
        with self._cur_lock:
            found = self._cur_get(key, tranc_id)
        if found.is_valid():
            return found
        with self._frozen_lock:
            return self._frozen_get(key, tranc_id)

    def get_batch(
        self, keys: Iterable[str], tranc_id: int = 0
    ) -> list[tuple[str, tuple[str, int] | None]]:
        """Look up several keys; each result is (value, tranc_id) or None."""
        keys = list(keys)
        results: list[tuple[str, tuple[str, int] | None]] = []
        with self._cur_lock:
            for key in keys:
                found = self._cur_get(key, tranc_id)
                hit = (found.value, found.tranc_id) if found.is_valid() else None
                results.append((key, hit))
        if all(hit is not None for _, hit in results):
            return results
        with self._frozen_lock:
            for pos, (key, hit) in enumerate(results):
                if hit is not None:
                    continue
                found = self._frozen_get(key, tranc_id)
                if found.is_valid():
                    results[pos] = (key, (found.value, found.tranc_id))
        return results

    # -- maintenance ---------------------------------------------------------

    def clear(self) -> None:
        """Drop every table's contents."""
        with self._cur_lock, self._frozen_lock:
            self._frozen.clear()
            self._frozen_bytes = 0
            self._current.clear()

    def freeze_current_table(self) -> None:
        """Freeze the active table unconditionally."""
        with self._cur_lock, self._frozen_lock:
            self._freeze()

    def cur_size(self) -> int:
        with self._cur_lock:
            return self._current.size()

    def frozen_size(self) -> int:
        return self._frozen_bytes

    def total_size(self) -> int:
        with self._cur_lock, self._frozen_lock:
            return self._frozen_bytes + self._current.size()

    # -- iteration -----------------------------------------------------------

    def _collect(
        self, ranges: Callable[[SkipList], tuple[SkipListIterator, SkipListIterator] | None]
    ) -> list[SearchItem]:
        items: list[SearchItem] = []
        tables = [self._current, *self._frozen]
        for idx, table in enumerate(tables):
            span = ranges(table)
            if span is None:
                continue
            start, stop = span
            items.extend(
                SearchItem(key, value, idx, 0, tid) for key, value, tid in start.until(stop)
            )
        return items

    def begin(self, tranc_id: int = 0) -> HeapIterator:
        """Merged view over every table, newest version of each key first."""
        with self._cur_lock, self._frozen_lock:
            items = self._collect(lambda t: (t.begin(), t.end()))
        return HeapIterator(items, tranc_id)

    def end(self) -> HeapIterator:
        return HeapIterator()

    def iters_prefix(self, prefix: str, tranc_id: int = 0) -> HeapIterator:
        """Merged view over keys starting with ``prefix``."""
        with self._cur_lock, self._frozen_lock:
            items = self._collect(lambda t: (t.begin_prefix(prefix), t.end_prefix(prefix)))
        return HeapIterator(items, tranc_id)

    def iters_monotony_predicate(
        self, tranc_id: int, predicate: Callable[[str], int]
    ) -> tuple[HeapIterator, HeapIterator] | None:
        """Merged view over the run of keys where ``predicate`` returns 0.

        Returns None when no table holds a matching key.
        """
        with self._cur_lock, self._frozen_lock:
            items = self._collect(lambda t: t.iters_monotony_predicate(predicate))
        if not items:
            return None
        return HeapIterator(items, tranc_id), HeapIterator()

    def dump(self) -> str:
        """Text rendering of every table, for debugging."""
        sections = [f"<<<<Current MemTable 0:>>>>\n{self._current.dump()}"]
        for idx, table in enumerate(self._frozen, start=1):
            sections.append(f"<<<<Frozen Table {idx}:>>>>\n{table.dump()}")
        return "\n\n".join(sections)