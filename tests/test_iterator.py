import pytest

from tinylsm.iterator import HeapIterator, SearchItem


def test_search_item_ordering_prefers_newer_transaction():
    older = SearchItem("k", "old", 0, 0, 1)
    newer = SearchItem("k", "new", 0, 0, 2)
    other = SearchItem("a", "x", 5, 0, 0)
    assert sorted([older, newer, other]) == [other, newer, older]
    assert newer < older
    assert older > newer


def test_search_item_ordering_prefers_newer_table():
    from_current = SearchItem("k", "cur", 0, 0, 0)
    from_frozen = SearchItem("k", "frozen", 1, 0, 0)
    assert from_current < from_frozen


def test_heap_iterator_yields_newest_version_per_key():
    items = [
        SearchItem("a", "1", 1, 0, 1),
        SearchItem("b", "x", 0, 0, 1),
        SearchItem("a", "2", 0, 0, 2),
    ]
    assert list(HeapIterator(items, 0)) == [("a", "2"), ("b", "x")]


def test_heap_iterator_respects_max_tranc_id():
    items = [
        SearchItem("a", "1", 1, 0, 1),
        SearchItem("a", "2", 0, 0, 2),
        SearchItem("b", "x", 0, 0, 3),
    ]
    assert list(HeapIterator(items, 1)) == [("a", "1")]


def test_heap_iterator_hides_deleted_keys():
    items = [
        SearchItem("c", "", 0, 0, 3),
        SearchItem("c", "v", 1, 0, 2),
        SearchItem("d", "w", 0, 0, 1),
    ]
    assert list(HeapIterator(items, 0)) == [("d", "w")]
    # A deletion newer than the snapshot stays invisible.
    assert list(HeapIterator(items, 2)) == [("c", "v"), ("d", "w")]


def test_table_index_breaks_ties_without_transactions():
    items = [
        SearchItem("k", "frozen", 1, 0, 0),
        SearchItem("k", "current", 0, 0, 0),
    ]
    assert list(HeapIterator(items, 0)) == [("k", "current")]


def test_empty_iterator_and_equality():
    empty = HeapIterator()
    assert empty.is_end()
    assert not empty.is_valid()
    assert empty == HeapIterator()
    with pytest.raises(IndexError):
        empty.current()


def test_advance_and_current_until_end():
    it = HeapIterator([SearchItem("a", "1"), SearchItem("b", "2")], 0)
    assert it.current() == ("a", "1")
    it.advance()
    assert it.current() == ("b", "2")
    it.advance()
    assert it.is_end()
    assert it == HeapIterator()