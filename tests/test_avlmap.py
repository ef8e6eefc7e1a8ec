import numpy as np
import pytest

from AVLMap import (
    AVLMap,
    InvalidKeyError,
    KeyNotFoundError,
    TreeConsumedError,
    build_map,
    fill_map,
    warmup,
)


def test_empty_map(check_tree):
    tree = AVLMap()

    assert tree.is_empty()
    assert tree.size() == 0
    assert tree.height() == -1
    assert len(tree) == 0
    assert tree.min() is None
    assert tree.max() is None
    assert tree.min_key() is None
    assert tree.max_key() is None
    assert tree.search(1) is None
    assert tree.root_info() is None
    assert list(tree.keys()) == []
    assert tree.values() == []
    assert tree.items() == []
    assert check_tree(tree) == []


def test_search_min_max():
    tree = build_map([50, 20, 80, 10, 30], ["fifty", "twenty", "eighty", "ten", "thirty"])

    assert not tree.is_empty()
    assert tree.search(30) == "thirty"
    assert tree.search(31) is None
    assert tree.min() == "ten"
    assert tree.max() == "eighty"
    assert tree.min_key() == 10
    assert tree.max_key() == 80


def test_sorted_keys_and_values_are_parallel():
    keys = [7, 3, 9, 1, 5, 8, 10, 2]
    tree = build_map(keys, ["v" + str(key) for key in keys])

    assert tree.keys().dtype == np.int64
    assert list(tree.keys()) == sorted(keys)
    assert tree.values() == ["v" + str(key) for key in sorted(keys)]
    assert tree.items() == [(key, "v" + str(key)) for key in sorted(keys)]
    assert list(tree) == sorted(keys)


def test_successor_and_predecessor():
    tree = build_map([1, 4, 6, 9, 12, 15, 20])

    assert tree.successor(1) == 4
    assert tree.successor(9) == 12
    assert tree.successor(15) == 20
    assert tree.successor(20) is None
    assert tree.predecessor(20) == 15
    assert tree.predecessor(6) == 4
    assert tree.predecessor(1) is None

    with pytest.raises(KeyNotFoundError):
        tree.successor(5)
    with pytest.raises(KeyNotFoundError):
        tree.predecessor(5)


def test_contains():
    tree = build_map([3, 1, 2])

    assert 2 in tree
    assert 4 not in tree
    assert -1 not in tree
    assert "2" not in tree
    assert np.int64(3) in tree


def test_key_validation():
    tree = AVLMap()

    with pytest.raises(InvalidKeyError):
        tree.insert(-1, "neg")
    with pytest.raises(InvalidKeyError):
        tree.insert(2 ** 63, "too big")
    with pytest.raises(InvalidKeyError):
        tree.insert("1", "str")
    with pytest.raises(InvalidKeyError):
        tree.insert(1.0, "float")
    with pytest.raises(InvalidKeyError):
        tree.insert(True, "bool")

    assert tree.is_empty()

    tree.insert(2 ** 63 - 1, "max")
    tree.insert(0, "zero")
    tree.insert(np.int32(5), "numpy")

    assert list(tree.keys()) == [0, 5, 2 ** 63 - 1]
    assert tree.search(-3) is None
    assert tree.search(2 ** 64) is None
    with pytest.raises(KeyNotFoundError):
        tree.delete(-3)


def test_delete_until_empty(check_tree):
    keys = list(range(0, 40, 3))
    tree = build_map(keys)

    for key in keys:
        tree.delete(key)
        check_tree(tree)

    assert tree.is_empty()
    assert tree.pool.count == 0

    tree.insert(5, "again")
    assert check_tree(tree) == [5]


def test_delete_root_with_single_child(check_tree):
    tree = build_map([1, 2])

    tree.delete(1)

    assert check_tree(tree) == [2]
    assert tree.root_info() == (2, None, None, 0, 1)


def test_deleted_rows_are_reused():
    tree = build_map(range(10))
    rows = tree.pool.nodes.shape[0]

    for key in range(10):
        tree.delete(key)
    for key in range(10):
        tree.insert(key, str(key))

    assert tree.pool.nodes.shape[0] == rows
    assert tree.pool.count == 10


def test_consumed_map_rejects_calls():
    tree = build_map([1, 2, 3])
    tree.split(2)

    assert str(tree) == "AVLMap(consumed)"
    with pytest.raises(TreeConsumedError):
        tree.search(1)
    with pytest.raises(TreeConsumedError):
        tree.insert(4, "x")
    with pytest.raises(TreeConsumedError):
        len(tree)

    left  = build_map([1])
    right = build_map([3])
    left.join(2, "b", right)

    with pytest.raises(TreeConsumedError):
        right.keys()
    with pytest.raises(TreeConsumedError):
        left.join(4, "d", right)


def test_fill_map_checks_lengths():
    tree = AVLMap()

    with pytest.raises(ValueError):
        fill_map(tree, [1, 2], ["one"])

    fill_map(tree, [2, 1], ["two", "one"])
    assert tree.values() == ["one", "two"]


def test_str():
    tree = build_map([1, 2, 3])
    assert str(tree) == "AVLMap(size=3, root=" + str(tree.root) + ", height=1)"


def test_warmup():
    assert warmup()
