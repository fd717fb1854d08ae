"""Probabilistic skip list holding versioned key/value entries."""

from __future__ import annotations

import random
from collections.abc import Callable, Iterator

from .iterator import IteratorType

_TRANC_ID_BYTES = 8


def _nbytes(text: str) -> int:
    return len(text.encode("utf-8"))


class SkipListNode:
    """A node with forward and backward links on each of its levels."""

    __slots__ = ("key", "value", "tranc_id", "forward", "backward")

    def __init__(self, key: str, value: str, level: int, tranc_id: int):
        self.key = key
        self.value = value
        self.tranc_id = tranc_id
        self.forward: list[SkipListNode | None] = [None] * level
        self.backward: list[SkipListNode | None] = [None] * level

    def __lt__(self, other: SkipListNode) -> bool:
        if self.key == other.key:
            return self.tranc_id > other.tranc_id
        return self.key < other.key

    def __gt__(self, other: SkipListNode) -> bool:
        if self.key == other.key:
            return self.tranc_id < other.tranc_id
        return self.key > other.key

    def __repr__(self) -> str:
        return f"SkipListNode({self.key!r}, {self.value!r}, tranc_id={self.tranc_id})"


class SkipListIterator:
    """Position in the bottom level of a skip list; None marks the end."""

    __slots__ = ("_node",)

    def __init__(self, node: SkipListNode | None = None):
        self._node = node

    def _require(self) -> SkipListNode:
        if self._node is None:
            raise IndexError("iterator is at its end")
        return self._node

    @property
    def key(self) -> str:
        return self._require().key

    @property
    def value(self) -> str:
        return self._require().value

    @property
    def tranc_id(self) -> int:
        return self._require().tranc_id

    @property
    def type(self) -> IteratorType:
        return IteratorType.SKIP_LIST

    def advance(self) -> None:
        self._node = self._require().forward[0]

    def is_end(self) -> bool:
        return self._node is None

    def is_valid(self) -> bool:
        return self._node is not None and self._node.key != ""

    def copy(self) -> SkipListIterator:
        return SkipListIterator(self._node)

    def until(self, end: SkipListIterator) -> Iterator[tuple[str, str, int]]:
        """Yield (key, value, tranc_id) from here up to, not including, ``end``."""
        node = self._node
        while node is not None and node is not end._node:
            yield node.key, node.value, node.tranc_id
            node = node.forward[0]

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return self

    def __next__(self) -> tuple[str, str]:
        if self._node is None:
            raise StopIteration
        pair = (self._node.key, self._node.value)
        self._node = self._node.forward[0]
        return pair

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SkipListIterator):
            return NotImplemented
        return self._node is other._node

    __hash__ = None

    def __repr__(self) -> str:
        if self._node is None:
            return "SkipListIterator(end)"
        return f"SkipListIterator({self._node.key!r})"


class SkipList:
    """Ordered map whose writes to an existing key replace its value in place.

    ``remove`` is a physical removal; the tree above records deletions as
    empty values instead.
    """

    def __init__(self, max_level: int = 16):
        if max_level < 1:
            raise ValueError("max_level must be at least 1")
        self._max_level = max_level
        self._current_level = 1
        self._head = SkipListNode("", "", max_level, 0)
        self._size_bytes = 0
        self._rng = random.Random()

    def _random_level(self) -> int:
        level = 1
        while level < self._max_level and self._rng.random() < 0.5:
            level += 1
        return level

    def put(self, key: str, value: str, tranc_id: int = 0) -> None:
        """Insert a key, or overwrite the value of an existing one."""
        new_level = self._random_level()
        new_node = SkipListNode(key, value, new_level, tranc_id)
        update: list[SkipListNode | None] = [None] * self._max_level
        node = self._head
        for level in reversed(range(self._current_level)):
            while (nxt := node.forward[level]) is not None and nxt < new_node:
                node = nxt
            update[level] = node

        candidate = node.forward[0]
        if candidate is not None and candidate.key == key:
            self._size_bytes += _nbytes(value) - _nbytes(candidate.value)
            candidate.value = value
            return

        if new_level > self._current_level:
            for level in range(self._current_level, new_level):
                update[level] = self._head
            self._current_level = new_level

        for level in range(new_level):
            prev = update[level]
            new_node.forward[level] = prev.forward[level]
            prev.forward[level] = new_node
            new_node.backward[level] = prev
            if new_node.forward[level] is not None:
                new_node.forward[level].backward[level] = new_node

        self._size_bytes += _TRANC_ID_BYTES + _nbytes(key) + _nbytes(value)

    def _find_prev(self, key: str) -> tuple[SkipListNode, list[SkipListNode | None]]:
        update: list[SkipListNode | None] = [None] * self._max_level
        node = self._head
        for level in reversed(range(self._current_level)):
            while (nxt := node.forward[level]) is not None and nxt.key < key:
                node = nxt
            update[level] = node
        return node, update

    def get(self, key: str, tranc_id: int = 0) -> SkipListIterator:
        """Return an iterator at ``key``, or the end iterator if absent."""
        node, _ = self._find_prev(key)
        found = node.forward[0]
        if found is not None and found.key == key:
            return SkipListIterator(found)
        return SkipListIterator()

    def remove(self, key: str) -> None:
        """Unlink ``key`` if present."""
        node, update = self._find_prev(key)
        target = node.forward[0]
        if target is None or target.key != key:
            return
        for level in range(self._current_level):
            if update[level].forward[level] is not target:
                break
            update[level].forward[level] = target.forward[level]
        self._size_bytes -= _TRANC_ID_BYTES + _nbytes(key) + _nbytes(target.value)
        for level, nxt in enumerate(target.forward):
            if nxt is not None:
                nxt.backward[level] = update[level]
        while self._current_level > 1 and self._head.forward[self._current_level - 1] is None:
            self._current_level -= 1

    def flush(self) -> list[tuple[str, str, int]]:
        """All entries in order as (key, value, tranc_id)."""
        return list(self.begin().until(self.end()))

    def size(self) -> int:
        """Approximate bytes held by the entries."""
        return self._size_bytes

    def clear(self) -> None:
        self._head = SkipListNode("", "", self._max_level, 0)
        self._current_level = 1
        self._size_bytes = 0

    def begin(self) -> SkipListIterator:
        return SkipListIterator(self._head.forward[0])

    def end(self) -> SkipListIterator:
        return SkipListIterator()

    def begin_prefix(self, prefix: str) -> SkipListIterator:
        """First entry whose key starts with ``prefix``, else the end."""
        plen = len(prefix)
        node = self._head
        for level in reversed(range(self._current_level)):
            while (nxt := node.forward[level]) is not None and nxt.key[:plen] < prefix:
                node = nxt
        first = node.forward[0]
        if first is not None and first.key[:plen] == prefix:
            return SkipListIterator(first)
        return SkipListIterator()

    def end_prefix(self, prefix: str) -> SkipListIterator:
        """First entry past all keys starting with ``prefix``, else the end."""
        plen = len(prefix)
        node = self._head
        for level in reversed(range(self._current_level)):
            while (nxt := node.forward[level]) is not None and nxt.key[:plen] <= prefix:
                node = nxt
        first = node.forward[0]
        if first is not None and first.key[:plen] > prefix:
            return SkipListIterator(first)
        return SkipListIterator()

    def iters_monotony_predicate(
        self, predicate: Callable[[str], int]
    ) -> tuple[SkipListIterator, SkipListIterator] | None:
        """Find the contiguous run of keys where ``predicate`` returns 0.

        ``predicate`` returns >0 for keys left of the run and <0 for keys
        right of it. Returns (first, one-past-last) or None if no key matches.
        """
        node = self._head
        found_level = None
        for level in reversed(range(self._current_level)):
            while (nxt := node.forward[level]) is not None and predicate(nxt.key) > 0:
                node = nxt
            nxt = node.forward[level]
            if nxt is not None and predicate(nxt.key) == 0:
                node = nxt
                found_level = level
                break
        if found_level is None:
            return None

        last = node
        for level in reversed(range(found_level + 1)):
            while (nxt := last.forward[level]) is not None and predicate(nxt.key) == 0:
                last = nxt
        first = node
        for level in reversed(range(found_level + 1)):
            while (
                (prev := first.backward[level]) is not None
                and prev is not self._head
                and predicate(prev.key) == 0
            ):
                first = prev
        return SkipListIterator(first), SkipListIterator(last.forward[0])

    def dump(self) -> str:
        """Text rendering of every level, for debugging."""
        lines = []
        for level in range(self._current_level):
            parts = []
            node = self._head.forward[level]
            while node is not None:
                parts.append(f"{node.key}({node.value})")
                node = node.forward[level]
            lines.append(f"Level {level}: " + " -> ".join(parts))
        return "\n".join(lines)

    def __len__(self) -> int:
        count = 0
        node = self._head.forward[0]
        while node is not None:
            count += 1
            node = node.forward[0]
        return count