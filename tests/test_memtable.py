import pytest

from tinylsm.memtable import MemTable

BIG = 1 << 30


def range_predicate(low, high):
    def predicate(key):
        if key < low:
            return 1
        if key >= high:
            return -1
        return 0

    return predicate


def test_put_and_get():
    mt = MemTable(BIG)
    mt.put("key1", "value1", 0)
    found = mt.get("key1", 0)
    assert found.is_valid()
    assert found.value == "value1"


def test_get_missing_is_end():
    mt = MemTable(BIG)
    mt.put("a", "1")
    found = mt.get("zzz", 0)
    assert found.is_end()
    assert not found.is_valid()


def test_put_overwrites():
    mt = MemTable(BIG)
    mt.put("k", "old")
    mt.put("k", "new")
    assert mt.get("k").value == "new"


def test_get_reaches_frozen_table():
    mt = MemTable(BIG)
    mt.put("k", "frozen_value")
    mt.freeze_current_table()
    assert mt.cur_size() == 0
    assert mt.get("k").value == "frozen_value"


def test_active_table_shadows_frozen():
    mt = MemTable(BIG)
    mt.put("k", "v1", 1)
    mt.freeze_current_table()
    mt.put("k", "v2", 2)
    assert mt.get("k").value == "v2"


def test_remove_leaves_empty_marker():
    mt = MemTable(BIG)
    mt.put("k", "v")
    mt.freeze_current_table()
    mt.remove("k")
    found = mt.get("k")
    assert found.is_valid()
    assert found.value == ""


def test_put_freezes_when_limit_reached():
    mt = MemTable(1)
    mt.put("k1", "v1")
    assert mt.frozen_count == 1
    assert mt.cur_size() == 0
    assert mt.frozen_size() > 0
    assert mt.get("k1").value == "v1"


def test_frozen_size_equals_size_before_freeze():
    mt = MemTable(BIG)
    mt.put("a", "1")
    mt.put("b", "22")
    before = mt.cur_size()
    mt.freeze_current_table()
    assert mt.frozen_size() == before
    assert mt.total_size() == before


def test_total_size_is_sum():
    mt = MemTable(BIG)
    mt.put("a", "1")
    mt.freeze_current_table()
    mt.put("b", "2")
    assert mt.total_size() == mt.cur_size() + mt.frozen_size()


def test_put_batch_freezes():
    mt = MemTable(1)
    mt.put_batch([("a", "1"), ("b", "2")], 0)
    assert mt.frozen_count == 1
    assert mt.get("a").value == "1"
    assert mt.get("b").value == "2"


def test_remove_batch_freezes_but_remove_does_not():
    mt = MemTable(1)
    mt.remove("x")
    assert mt.frozen_count == 0
    assert mt.cur_size() >= 1
    mt.remove_batch(["y", "z"])
    assert mt.frozen_count == 1


def test_get_batch():
    mt = MemTable(BIG)
    mt.put("old", "o", 3)
    mt.freeze_current_table()
    mt.put("new", "n", 5)
    mt.remove("gone", 6)
    results = mt.get_batch(["new", "old", "missing", "gone"], 0)
    assert results == [
        ("new", ("n", 5)),
        ("old", ("o", 3)),
        ("missing", None),
        ("gone", ("", 6)),
    ]


def test_get_batch_all_in_active():
    mt = MemTable(BIG)
    mt.put("a", "1", 1)
    mt.put("b", "2", 2)
    assert mt.get_batch(["a", "b"]) == [("a", ("1", 1)), ("b", ("2", 2))]


def test_clear():
    mt = MemTable(BIG)
    mt.put("a", "1")
    mt.freeze_current_table()
    mt.put("b", "2")
    mt.clear()
    assert mt.total_size() == 0
    assert mt.frozen_count == 0
    assert list(mt.begin(0)) == []
    assert mt.get("a").is_end()


def test_begin_merges_and_hides_deleted():
    mt = MemTable(BIG)
    mt.put("a", "1")
    mt.put("b", "2")
    mt.freeze_current_table()
    mt.put("c", "3")
    mt.remove("a")
    assert list(mt.begin(0)) == [("b", "2"), ("c", "3")]


def test_begin_respects_transaction_visibility():
    mt = MemTable(BIG)
    mt.put("k", "v1", 1)
    mt.freeze_current_table()
    mt.put("k", "v2", 2)
    assert list(mt.begin(1)) == [("k", "v1")]
    assert list(mt.begin(0)) == [("k", "v2")]


def test_end_is_end():
    mt = MemTable(BIG)
    assert mt.end().is_end()


def test_iters_prefix():
    mt = MemTable(BIG)
    for key in ["apple", "apricot", "banana"]:
        mt.put(key, key.upper())
    mt.freeze_current_table()
    mt.put("apex", "APEX")
    mt.put("berry", "BERRY")
    assert list(mt.iters_prefix("ap", 0)) == [
        ("apex", "APEX"),
        ("apple", "APPLE"),
        ("apricot", "APRICOT"),
    ]
    assert list(mt.iters_prefix("z", 0)) == []


def test_iters_monotony_predicate():
    mt = MemTable(BIG)
    for key in ["a", "l1", "m2"]:
        mt.put(key, key)
    mt.freeze_current_table()
    mt.put("m1", "m1")
    mt.put("z", "z")
    result = mt.iters_monotony_predicate(0, range_predicate("l", "n"))
    assert result is not None
    start, stop = result
    assert stop.is_end()
    assert [k for k, _ in start] == ["l1", "m1", "m2"]


def test_iters_monotony_predicate_none():
    mt = MemTable(BIG)
    mt.put("a", "1")
    assert mt.iters_monotony_predicate(0, range_predicate("x", "y")) is None


def test_invalid_limit():
    with pytest.raises(ValueError):
        MemTable(0)


def test_dump_lists_tables():
    mt = MemTable(BIG)
    mt.put("alpha", "1")
    mt.freeze_current_table()
    mt.put("beta", "2")
    text = mt.dump()
    assert "Current MemTable 0" in text
    assert "Frozen Table 1" in text
    assert "alpha(1)" in text
    assert "beta(2)" in text