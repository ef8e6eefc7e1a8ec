import pytest

from AVLMap.NodePool import HEIGHT, KEY, LEFT, PARENT, RIGHT, SENTINEL, SIZE


def _walk(nodes, index, parent):
    """Recompute height, size and in-order keys straight from the table."""

    if index == SENTINEL:
        return -1, 0, []

    assert nodes[index, PARENT] == parent

    left_height, left_size, left_keys    = _walk(nodes, int(nodes[index, LEFT]), index)
    right_height, right_size, right_keys = _walk(nodes, int(nodes[index, RIGHT]), index)

    height = 1 + max(left_height, right_height)
    size   = 1 + left_size + right_size

    assert nodes[index, HEIGHT] == height
    assert nodes[index, SIZE] == size
    assert abs(left_height - right_height) <= 1

    return height, size, left_keys + [int(nodes[index, KEY])] + right_keys


def _check_tree(tree):
    tree.verify()

    height, size, keys = _walk(tree.pool.nodes, tree.root, SENTINEL)

    assert all(a < b for a, b in zip(keys, keys[1:]))
    assert list(tree.keys()) == keys
    assert len(tree.values()) == size
    assert tree.size() == size
    assert tree.height() == height

    return keys


@pytest.fixture
def check_tree():
    return _check_tree
