"""Iterator kinds and a heap-based merging iterator over search items."""

from __future__ import annotations

import enum
import heapq
from collections.abc import Iterable, Iterator
from dataclasses import dataclass


class IteratorType(enum.Enum):
    SKIP_LIST = "SkipListIterator"
    MEM_TABLE = "MemTableIterator"
    SST = "SstIterator"
    HEAP = "HeapIterator"
    TWO_MERGE = "TwoMergeIterator"
    CONCAT = "ConcactIterator"
    LEVEL = "LevelIterator"
    UNDEFINED = "Undefined"


@dataclass(frozen=True, slots=True)
class SearchItem:
    """One versioned entry fed into a merge.

    ``idx`` identifies the source table (larger means older) and ``level`` the
    SST level it came from.
    """

    key: str
    value: str
    idx: int = 0
    level: int = 0
    tranc_id: int = 0

    def _rank(self) -> tuple:
        # Same key: newer transaction first, then shallower level, then newer table.
        return (self.key, -self.tranc_id, self.level, self.idx)

    def __lt__(self, other: SearchItem) -> bool:
        return self._rank() < other._rank()

    def __gt__(self, other: SearchItem) -> bool:
        return self._rank() > other._rank()


class HeapIterator:
    """Yields the newest visible version of each key in key order.

    Entries whose value is empty are deletion markers and hide the key.
    A ``max_tranc_id`` of 0 makes every version visible.
    """

    def __init__(self, items: Iterable[SearchItem] = (), max_tranc_id: int = 0):
        self._heap: list[SearchItem] = list(items)
        heapq.heapify(self._heap)
        self._max_tranc_id = max_tranc_id
        self._settle()

    @property
    def max_tranc_id(self) -> int:
        return self._max_tranc_id

    @property
    def type(self) -> IteratorType:
        return IteratorType.HEAP

    def _top_value_legal(self) -> bool:
        if not self._heap:
            return True
        top = self._heap[0]
        if self._max_tranc_id == 0:
            return top.value != ""
        if top.tranc_id <= self._max_tranc_id:
            return top.value != ""
        return False

    def _skip_by_tranc_id(self) -> None:
        if self._max_tranc_id == 0:
            return
        while self._heap and self._heap[0].tranc_id > self._max_tranc_id:
            heapq.heappop(self._heap)

    def _pop_key(self, key: str) -> None:
        while self._heap and self._heap[0].key == key:
            heapq.heappop(self._heap)

    def _settle(self) -> None:
        while not self._top_value_legal():
            self._skip_by_tranc_id()
            while self._heap and self._heap[0].value == "":
                self._pop_key(self._heap[0].key)

    def advance(self) -> None:
        """Move to the next distinct key."""
        if not self._heap:
            return
        old = heapq.heappop(self._heap)
        self._pop_key(old.key)
        self._settle()

    def current(self) -> tuple[str, str]:
        """The (key, value) pair under the iterator."""
        if not self._heap:
            raise IndexError("iterator is at its end")
        top = self._heap[0]
        return top.key, top.value

    @property
    def top(self) -> SearchItem:
        if not self._heap:
            raise IndexError("iterator is at its end")
        return self._heap[0]

    def is_end(self) -> bool:
        return not self._heap

    def is_valid(self) -> bool:
        return bool(self._heap)

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return self

    def __next__(self) -> tuple[str, str]:
        if not self._heap:
            raise StopIteration
        pair = self.current()
        self.advance()
        return pair

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HeapIterator):
            return NotImplemented
        if not self._heap or not other._heap:
            return not self._heap and not other._heap
        return self.current() == other.current()

    __hash__ = None