import numpy as np
import pytest

from AVLMap import AVLMap, DuplicateKeyError, InvalidKeyError, KeyNotFoundError, build_map


def test_ascending_inserts_rotate_left_once(check_tree):
    tree   = AVLMap()
    counts = [tree.insert(key, str(key)) for key in (10, 20, 30)]

    # promote 20, then one left rotation in which only 10 changes height
    assert counts == [0, 1, 2]
    assert check_tree(tree) == [10, 20, 30]
    assert tree.height() == 1
    assert tree.root_info() == (20, 10, 30, 1, 3)


def test_zigzag_inserts_double_rotate(check_tree):
    tree   = AVLMap()
    counts = [tree.insert(key, str(key)) for key in (30, 10, 20)]

    assert counts == [0, 1, 4]
    assert check_tree(tree) == [10, 20, 30]
    assert tree.root_info() == (20, 10, 30, 1, 3)


def test_delete_node_with_two_children_uses_successor(check_tree):
    tree = build_map(range(1, 8))
    assert tree.root_info()[0] == 4

    tree.delete(4)

    assert check_tree(tree) == [1, 2, 3, 5, 6, 7]
    assert tree.root_info()[0] == 5
    assert tree.search(5) == "5"
    assert tree.search(4) is None
    assert tree.values() == ["1", "2", "3", "5", "6", "7"]


def test_split_three_keys(check_tree):
    tree = build_map([1, 2, 3], ["a", "b", "c"])

    smaller, larger = tree.split(2)

    assert check_tree(smaller) == [1]
    assert check_tree(larger) == [3]
    assert smaller.search(1) == "a"
    assert larger.search(3) == "c"


def test_join_three_keys(check_tree):
    smaller = build_map([1], ["a"])
    larger  = build_map([3], ["c"])

    cost = smaller.join(2, "b", larger)

    assert cost == 1
    assert check_tree(smaller) == [1, 2, 3]
    assert smaller.values() == ["a", "b", "c"]


def test_rejected_calls():
    tree = AVLMap()
    with pytest.raises(InvalidKeyError):
        tree.insert(-5, "x")

    tree.insert(10, "a")
    with pytest.raises(DuplicateKeyError):
        tree.insert(10, "a")
    assert tree.search(10) == "a"

    tree = build_map([1, 2, 3])
    before = tree.pool.nodes.copy()
    with pytest.raises(KeyNotFoundError):
        tree.delete(999)

    assert np.array_equal(tree.pool.nodes, before)
    assert list(tree.keys()) == [1, 2, 3]
