from __future__ import annotations

from typing import Any, Callable

import pytest

from chaintable.core.table import ChainedHashTable


def _assert_state(table: ChainedHashTable, count: int, capacity: int) -> None:
    assert len(table) == count
    assert table.capacity == capacity


@pytest.mark.parametrize(
    "make_key",
    [
        pytest.param(lambda n: n, id="int"),
        pytest.param(lambda n: "key" if n == 1 else f"key{n}", id="str"),
    ],
)
def test_growth_sequence_matches_reference(make_key: Callable[[int], Any]) -> None:
    t = ChainedHashTable()
    _assert_state(t, 0, 0)
    assert t.get(make_key(100)) is None

    assert t.insert(make_key(1), 42) is None
    _assert_state(t, 1, 1)
    assert t.get(make_key(1)) == 42
    assert t.get(make_key(100)) is None

    # 1 > 0.75 * 1, so replacing an existing key still doubles capacity
    assert t.insert(make_key(1), 10) == 42
    _assert_state(t, 1, 2)
    assert t.get(make_key(1)) == 10

    assert t.insert(make_key(2), 20) is None
    _assert_state(t, 2, 2)

    assert t.insert(make_key(3), 30) is None
    _assert_state(t, 3, 4)

    assert t.insert(make_key(4), 40) is None
    _assert_state(t, 4, 4)

    assert t.insert(make_key(5), 50) is None
    _assert_state(t, 5, 8)
    for n, expected in ((1, 10), (2, 20), (3, 30), (4, 40), (5, 50)):
        assert t.get(make_key(n)) == expected
    assert t.get(make_key(100)) is None

    assert t.remove(make_key(3)) == 30
    _assert_state(t, 4, 8)
    assert t.get(make_key(3)) is None
    for n, expected in ((1, 10), (2, 20), (4, 40), (5, 50)):
        assert t.get(make_key(n)) == expected
    assert t.get(make_key(100)) is None


def test_new_table_is_empty(table: ChainedHashTable) -> None:
    assert table.is_empty()
    assert table.capacity == 0
    assert table.load_factor() == 0.0
    assert table.max_bucket_len() == 0
    assert table.bucket_lengths() == []


def test_get_and_remove_on_unallocated_table(table: ChainedHashTable) -> None:
    assert table.get("missing") is None
    assert table.remove("missing") is None
    assert "missing" not in table
    assert table.capacity == 0
    assert len(table) == 0


def test_remove_missing_key_is_noop(table: ChainedHashTable) -> None:
    for i in range(6):
        table.insert(i, i * 10)
    before = (len(table), table.capacity, sorted(table.bucket_lengths()))
    assert table.remove(99) is None
    assert (len(table), table.capacity, sorted(table.bucket_lengths())) == before


def test_remove_never_shrinks(table: ChainedHashTable) -> None:
    for i in range(20):
        table.insert(i, i)
    capacity = table.capacity
    for i in range(20):
        assert table.remove(i) == i
    assert table.is_empty()
    assert table.capacity == capacity


def test_insert_into_emptied_table_grows_again(table: ChainedHashTable) -> None:
    table.insert("a", 1)
    table.insert("b", 2)
    assert table.capacity == 2
    table.remove("a")
    table.remove("b")
    assert table.capacity == 2

    table.insert("c", 3)
    assert table.capacity == 4
    assert table.get("c") == 3
    assert len(table) == 1


def test_none_values_are_distinguishable_by_membership(table: ChainedHashTable) -> None:
    table.insert("k", None)
    assert len(table) == 1
    assert table.get("k") is None
    assert "k" in table
    assert "other" not in table
    assert table.remove("k") is None
    assert "k" not in table
    assert len(table) == 0


def test_keys_compared_by_equality_not_identity(table: ChainedHashTable) -> None:
    first = "".join(["ab", "c"])
    second = "".join(["a", "bc"])
    table.insert(first, 1)
    assert table.insert(second, 2) == 1
    assert len(table) == 1
    assert table.get("abc") == 2
    # 1 == 1.0 and hash(1) == hash(1.0)
    table.insert(1, "int")
    assert table.get(1.0) == "int"


def test_negative_hashes_land_in_range(table: ChainedHashTable) -> None:
    for i in range(-50, 0):
        table.insert(i, -i)
    assert len(table) == 50
    assert all(table.get(i) == -i for i in range(-50, 0))
    assert sum(table.bucket_lengths()) == 50


def test_unhashable_key_raises_type_error(table: ChainedHashTable) -> None:
    with pytest.raises(TypeError):
        table.insert(["not", "hashable"], 1)
