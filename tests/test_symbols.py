from decimal import Decimal

import pytest

from bigcalc.symbols import SymbolTable, fnv1a_32


@pytest.mark.parametrize(
    "data, expected_hash",
    [
        pytest.param(b"", 0x811C9DC5),
        pytest.param(b"a", 0xE40C292C),
        pytest.param(b"foobar", 0xBF9CF968),
    ],
)
def test_fnv1a_32(data: bytes, expected_hash: int) -> None:
    assert fnv1a_32(data) == expected_hash


def test_insert_and_get() -> None:
    table = SymbolTable()
    symbol = table.insert("x", Decimal(5))
    assert symbol.name == "x"
    assert table.get("x") is symbol
    assert table.get("x").value == 5
    assert table.get("y") is None
    assert len(table) == 1
    assert "x" in table and "y" not in table


def test_update_keeps_symbol_identity() -> None:
    table = SymbolTable()
    first = table.insert("x", Decimal(1))
    second = table.insert("x", Decimal(2))
    assert first is second
    assert table.get("x").value == 2
    assert len(table) == 1


def test_lookup_is_exact() -> None:
    table = SymbolTable()
    table.insert("abc", Decimal(1))
    assert table.get("ab") is None
    assert table.get("abcd") is None
    assert table.get("ABC") is None


def test_new_symbols_are_prepended_to_their_bucket() -> None:
    # a single bucket that never resizes: every name collides
    table = SymbolTable(capacity=1, load_factor=10.0)
    for name in ["first", "second", "third"]:
        table.insert(name, Decimal(1))
    assert table.capacity == 1
    assert [s.name for s in table] == ["third", "second", "first"]
    assert table.bucket_sizes() == [3]


def test_collisions_chain_in_one_bucket() -> None:
    table = SymbolTable(capacity=16, load_factor=1.0)
    names = [f"v{i}" for i in range(16)]
    for i, name in enumerate(names):
        table.insert(name, Decimal(i))
    assert table.capacity == 16
    assert sum(table.bucket_sizes()) == 16
    for i, name in enumerate(names):
        assert table.get(name).value == i


def test_update_does_not_reorder_chain() -> None:
    table = SymbolTable(capacity=16, load_factor=1.0)
    for i in range(12):
        table.insert(f"v{i}", Decimal(i))
    order_before = [s.name for s in table]
    table.insert("v3", Decimal(100))
    table.insert("v0", Decimal(200))
    assert [s.name for s in table] == order_before


def test_resize_threshold() -> None:
    table = SymbolTable(capacity=10, load_factor=0.6)
    for i in range(6):
        table.insert(f"name{i}", Decimal(i))
    assert table.capacity == 10
    table.insert("name6", Decimal(6))
    assert table.capacity == 20
    assert table.load_factor <= 0.6


def test_resizing_preserves_all_bindings() -> None:
    table = SymbolTable()
    initial_capacity = table.capacity
    names = [f"var_{i}" for i in range(1000)]
    for i, name in enumerate(names):
        table.insert(name, Decimal(i))
    # overwrite half of them after the table has grown several times
    for i, name in enumerate(names[::2]):
        table.insert(name, Decimal(-i))

    assert table.capacity >= initial_capacity * 16
    assert len(table) == 1000
    assert table.count / table.capacity <= 0.6
    assert sorted(s.name for s in table) == sorted(names)
    for i, name in enumerate(names):
        expected = Decimal(-(i // 2)) if i % 2 == 0 else Decimal(i)
        assert table.get(name).value == expected


def test_reassigning_same_value_is_idempotent() -> None:
    table = SymbolTable()
    for i in range(30):
        table.insert(f"x{i}", Decimal(i))
    count = table.count
    sizes = table.bucket_sizes()
    capacity = table.capacity
    for i in range(30):
        table.insert(f"x{i}", Decimal(i))
    assert table.count == count
    assert table.bucket_sizes() == sizes
    assert table.capacity == capacity


def test_update_never_triggers_resize() -> None:
    table = SymbolTable(capacity=10, load_factor=0.6)
    for i in range(6):
        table.insert(f"k{i}", Decimal(i))
    assert table.capacity == 10
    for i in range(6):
        table.insert(f"k{i}", Decimal(i + 1))
    assert table.capacity == 10


def test_clear() -> None:
    table = SymbolTable()
    names = [f"n{i}" for i in range(100)]
    for name in names:
        table.insert(name, Decimal(1))
    capacity = table.capacity
    table.clear()
    assert len(table) == 0
    assert table.capacity == capacity
    assert all(table.get(name) is None for name in names)
    assert list(table) == []
    table.insert("n0", Decimal(2))
    assert table.get("n0").value == 2
    assert len(table) == 1
