import numpy as np
from numba import njit
from typing import Iterator, List, Optional, Sequence, Tuple

from .NodePool import (
    HEIGHT,
    KEY,
    LEFT,
    MAX_KEY,
    PARENT,
    RIGHT,
    SENTINEL,
    SIZE,
    NodePool,
)
from .errors import (
    DuplicateKeyError,
    InvalidKeyError,
    InvariantViolationError,
    KeyNotFoundError,
    RangeOverlapError,
    TreeConsumedError,
)
from .logger import init_logger

logger = init_logger(__name__)



# ---------- JIT-Compiled Height / Size Maintenance ----------
@njit(inline="always")
def update_height(
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Recompute height(index) = 1 + max(height(left), height(right)).

    Returns 1 when the stored height changed, 0 otherwise. The sentinel row
    carries height -1, so leaves need no special case.
    """

    new_height = max(nodes[nodes[index, LEFT], HEIGHT], nodes[nodes[index, RIGHT], HEIGHT]) + 1

    if nodes[index, HEIGHT] != new_height:
        nodes[index, HEIGHT] = new_height
        return 1

    return 0

@njit(inline="always")
def update_size(
    nodes: np.ndarray,
    index: np.int64

) -> None:

    """
    Recompute size(index) = 1 + size(left) + size(right).
    """

    nodes[index, SIZE] = nodes[nodes[index, LEFT], SIZE] + nodes[nodes[index, RIGHT], SIZE] + 1

@njit(inline="always")
def detach(
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Cut a subtree loose from its parent so it can stand as a tree of its own.

    The parent's slot is pointed at the sentinel and the subtree root's
    parent link is cleared. Detaching the sentinel is a no-op.
    """

    if index == SENTINEL:
        return index

    parent = nodes[index, PARENT]
    if parent != SENTINEL:
        if nodes[parent, LEFT] == index:
            nodes[parent, LEFT] = SENTINEL
        else:
            nodes[parent, RIGHT] = SENTINEL

    nodes[index, PARENT] = SENTINEL
    return index



# ---------- JIT-Compiled Positional Search ----------
@njit
def locate(
    nodes: np.ndarray,
    root:  np.int64,
    key:   np.int64

) -> np.int64:

    """
    Binary-search descent from ``root`` towards ``key``.

    Returns the last real node visited: the node holding ``key`` when it is
    stored, otherwise the node that would become its parent. Returns the
    sentinel only for an empty tree.

    :param nodes: Node table
    :type nodes: np.ndarray
    :param root: Row index of the subtree root
    :type root: np.int64
    :param key: Key to look for
    :type key: np.int64
    :return: Row index of the last real node on the search path
    :rtype: np.int64
    """

    last    = root
    current = root

    while current != SENTINEL:
        last        = current
        current_key = nodes[current, KEY]

        if key == current_key:
            return current

        elif key < current_key:
            current = nodes[current, LEFT]

        else:
            current = nodes[current, RIGHT]

    return last

@njit
def min_slot(
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Leftmost node of the subtree rooted at ``index`` (the sentinel if empty).
    """

    while nodes[index, LEFT] != SENTINEL:
        index = nodes[index, LEFT]

    return index

@njit
def max_slot(
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Rightmost node of the subtree rooted at ``index`` (the sentinel if empty).
    """

    while nodes[index, RIGHT] != SENTINEL:
        index = nodes[index, RIGHT]

    return index

@njit
def successor(
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    In-order successor of a real node, or the sentinel for the maximum.

    Takes the leftmost node of the right subtree when there is one, and
    otherwise climbs while the current node is a right child.
    """

    right = nodes[index, RIGHT]
    if right != SENTINEL:
        return min_slot(nodes, right)

    parent = nodes[index, PARENT]
    while parent != SENTINEL and nodes[parent, RIGHT] == index:
        index  = parent
        parent = nodes[index, PARENT]

    return parent

@njit
def predecessor(
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    In-order predecessor of a real node, or the sentinel for the minimum.
    """

    left = nodes[index, LEFT]
    if left != SENTINEL:
        return max_slot(nodes, left)

    parent = nodes[index, PARENT]
    while parent != SENTINEL and nodes[parent, LEFT] == index:
        index  = parent
        parent = nodes[index, PARENT]

    return parent



# ---------- JIT-Compiled Rotations ----------
@njit
def rotate_right( # SRR: Single Right Rotation
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Rotate a left child above its parent.

    ``index`` takes its parent's place under the grandparent, hands its
    right subtree to the parent as the parent's new left subtree, and
    adopts the parent as its right child. Heights and sizes are then
    recomputed for the old parent first and for ``index`` second.

    :param nodes: Node table
    :type nodes: np.ndarray
    :param index: Left child to rotate up; must have a real parent
    :type index: np.int64
    :return: Number of rotation endpoints whose height changed (0 to 2)
    :rtype: np.int64
    """

    parent = nodes[index, PARENT]
    if parent == SENTINEL:
        raise ValueError("rotation requires a node with a real parent")

    grandparent          = nodes[parent, PARENT]
    nodes[index, PARENT] = grandparent
    if grandparent != SENTINEL:
        if nodes[grandparent, LEFT] == parent:
            nodes[grandparent, LEFT] = index
        else:
            nodes[grandparent, RIGHT] = index

    inner               = nodes[index, RIGHT]
    nodes[parent, LEFT] = inner
    if inner != SENTINEL:
        nodes[inner, PARENT] = parent

    nodes[index, RIGHT]   = parent
    nodes[parent, PARENT] = index

    count  = update_height(nodes, parent)
    count += update_height(nodes, index)
    update_size(nodes, parent)
    update_size(nodes, index)

    return count

@njit
def rotate_left( # SLR: Single Left Rotation
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Rotate a right child above its parent.

    Mirror image of ``rotate_right``: ``index`` hands its left subtree to
    the parent as the parent's new right subtree and adopts the parent as
    its left child.

    :param nodes: Node table
    :type nodes: np.ndarray
    :param index: Right child to rotate up; must have a real parent
    :type index: np.int64
    :return: Number of rotation endpoints whose height changed (0 to 2)
    :rtype: np.int64
    """

    parent = nodes[index, PARENT]
    if parent == SENTINEL:
        raise ValueError("rotation requires a node with a real parent")

    grandparent          = nodes[parent, PARENT]
    nodes[index, PARENT] = grandparent
    if grandparent != SENTINEL:
        if nodes[grandparent, LEFT] == parent:
            nodes[grandparent, LEFT] = index
        else:
            nodes[grandparent, RIGHT] = index

    inner                = nodes[index, LEFT]
    nodes[parent, RIGHT] = inner
    if inner != SENTINEL:
        nodes[inner, PARENT] = parent

    nodes[index, LEFT]    = parent
    nodes[parent, PARENT] = index

    count  = update_height(nodes, parent)
    count += update_height(nodes, index)
    update_size(nodes, parent)
    update_size(nodes, index)

    return count

@njit
def rotate_left_right( # LR: grandchild rotates up twice
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Double rotation for a left-heavy node whose left child leans right.
    ``index`` is that inner grandchild; it ends up as the subtree root.
    """

    count  = rotate_left(nodes, index)
    count += rotate_right(nodes, index)
    return count

@njit
def rotate_right_left( # RL: grandchild rotates up twice
    nodes: np.ndarray,
    index: np.int64

) -> np.int64:

    """
    Double rotation for a right-heavy node whose right child leans left.
    ``index`` is that inner grandchild; it ends up as the subtree root.
    """

    count  = rotate_right(nodes, index)
    count += rotate_left(nodes, index)
    return count



# ---------- JIT-Compiled Rebalance Engine ----------
@njit
def rebalance(
    nodes: np.ndarray,
    root:  np.int64,
    index: np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Walk from ``index`` towards the root, restoring the AVL bound.

    At each node the rank differences (left_diff, right_diff) =
    (height - height(left), height - height(right)) pick one action:

        (1,1) (1,2) (2,1)        balanced, stop
        (1,0) (0,1) (2,2)        promote / demote: recompute height, go up
        (0,2) (1,3) left-heavy   rotate right, or left-right when the left
                                 child's right side is the taller one
        (2,0) (3,1) right-heavy  rotate left, or right-left when the right
                                 child's left side is the taller one

    Differences of 3 show up when ``join`` hangs a whole subtree below a
    spine node. After a rotation the walk resumes at the rotated node's
    former parent, which may still be out of balance.

    Args:
        nodes (np.ndarray): Node table.
        root (np.int64): Current root of the tree containing ``index``.
        index (np.int64): First node to examine (the sentinel is a no-op).

    Returns:
        Tuple[np.int64, np.int64]:
            - root: The tree root after any rotation that reached the top.
            - count: Number of height changes performed (promotions,
              demotions and rotation endpoints).
    """

    count = 0

    while index != SENTINEL:
        height     = nodes[index, HEIGHT]
        left       = nodes[index, LEFT]
        right      = nodes[index, RIGHT]
        left_diff  = height - nodes[left, HEIGHT]
        right_diff = height - nodes[right, HEIGHT]

        if (left_diff == 1 and right_diff == 1) or (left_diff == 1 and right_diff == 2) or (left_diff == 2 and right_diff == 1):
            break

        parent = nodes[index, PARENT]

        # Promote / demote
        if (left_diff == 1 and right_diff == 0) or (left_diff == 0 and right_diff == 1) or (left_diff == 2 and right_diff == 2):
            count += update_height(nodes, index)
            index = parent
            continue

        top = index

        if (left_diff == 0 and right_diff == 2) or (left_diff == 1 and right_diff == 3): # L
            child_height     = nodes[left, HEIGHT]
            child_left_diff  = child_height - nodes[nodes[left, LEFT], HEIGHT]
            child_right_diff = child_height - nodes[nodes[left, RIGHT], HEIGHT]

            if child_left_diff == 1 and (child_right_diff == 1 or child_right_diff == 2): # LL
                top    = left
                count += rotate_right(nodes, left)

            elif child_left_diff == 2 and child_right_diff == 1: # LR
                top    = nodes[left, RIGHT]
                count += rotate_left_right(nodes, top)

            else:
                raise RuntimeError("unexpected rank differences below a left-heavy node")

        elif (left_diff == 2 and right_diff == 0) or (left_diff == 3 and right_diff == 1): # R
            child_height     = nodes[right, HEIGHT]
            child_left_diff  = child_height - nodes[nodes[right, LEFT], HEIGHT]
            child_right_diff = child_height - nodes[nodes[right, RIGHT], HEIGHT]

            if child_right_diff == 1 and (child_left_diff == 1 or child_left_diff == 2): # RR
                top    = right
                count += rotate_left(nodes, right)

            elif child_right_diff == 2 and child_left_diff == 1: # RL
                top    = nodes[right, LEFT]
                count += rotate_right_left(nodes, top)

            else:
                raise RuntimeError("unexpected rank differences below a right-heavy node")

        else:
            raise RuntimeError("unexpected rank differences at a node")

        if nodes[top, PARENT] == SENTINEL:
            root = top

        index = parent

    return root, count



# ---------- JIT-Compiled AVLMap Core Operations ----------
@njit
def insert_leaf(
    nodes:  np.ndarray,
    root:   np.int64,
    parent: np.int64,
    index:  np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Hang a freshly allocated leaf below ``parent`` and rebalance.

    ``parent`` is the node returned by ``locate`` for the leaf's key. Every
    ancestor's size grows by one before the rebalance walk starts at
    ``parent``.

    Returns:
        Tuple[np.int64, np.int64]: (root, rebalance count)
    """

    if nodes[index, KEY] < nodes[parent, KEY]:
        nodes[parent, LEFT] = index
    else:
        nodes[parent, RIGHT] = index
    nodes[index, PARENT] = parent

    ancestor = parent
    while ancestor != SENTINEL:
        nodes[ancestor, SIZE] += 1
        ancestor = nodes[ancestor, PARENT]

    return rebalance(nodes, root, parent)

@njit
def remove(
    nodes: np.ndarray,
    root:  np.int64,
    index: np.int64

) -> Tuple[np.int64, np.int64, np.int64]:

    """
    Unlink the node at ``index`` and rebalance.

    1. Leaf: the parent's slot points at the sentinel.
    2. One real child: the child is spliced into the node's slot.
    3. Two real children: the in-order successor's key is copied into
       ``index`` and the successor row, which has at most a right child,
       is unlinked as in case 1 or 2.

    Sizes are decremented along the unlinked row's ancestors and the
    rebalance walk starts at its parent (which is ``index`` itself when
    the successor was its direct child).

    Args:
        nodes (np.ndarray): Node table.
        root (np.int64): Current root.
        index (np.int64): Row holding the key to delete.

    Returns:
        Tuple[np.int64, np.int64, np.int64]:
            - root: The new root (the sentinel if the tree became empty).
            - count: Number of rebalance actions.
            - removed: Row that was unlinked. When it differs from ``index``
              the caller must move that row's value into ``index``.
    """

    removed = index
    if nodes[index, LEFT] != SENTINEL and nodes[index, RIGHT] != SENTINEL:
        removed           = successor(nodes, index)
        nodes[index, KEY]   = nodes[removed, KEY]

    parent = nodes[removed, PARENT]
    child  = nodes[removed, LEFT]
    if child == SENTINEL:
        child = nodes[removed, RIGHT]

    if child != SENTINEL:
        nodes[child, PARENT] = parent

    if parent == SENTINEL:
        root = child
    else:
        if nodes[parent, LEFT] == removed:
            nodes[parent, LEFT] = child
        else:
            nodes[parent, RIGHT] = child

        ancestor = parent
        while ancestor != SENTINEL:
            nodes[ancestor, SIZE] -= 1
            ancestor = nodes[ancestor, PARENT]

    nodes[removed, LEFT]   = SENTINEL
    nodes[removed, RIGHT]  = SENTINEL
    nodes[removed, PARENT] = SENTINEL

    root, count = rebalance(nodes, root, parent)
    return root, count, removed

@njit
def join(
    nodes: np.ndarray,
    left:  np.int64,
    pivot: np.int64,
    right: np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Merge two trees around a pivot row: keys(left) < key(pivot) < keys(right).

    The taller tree is descended along its inner spine (the right spine of
    ``left`` or the left spine of ``right``) down to the first node whose
    height does not exceed the shorter tree's height. Every spine node
    passed on the way gains size(short) + 1. The pivot takes that node's
    place, with the cut spine subtree on one side and the shorter tree on
    the other, and the rebalance walk starts at the pivot's new parent.

    Either tree may be empty (the sentinel, height -1); the pivot then ends
    up as a new extreme leaf of the other tree, or as a lone root.

    The pivot row is reset before use; only its key is read.

    Args:
        nodes (np.ndarray): Node table.
        left (np.int64): Root of the tree with the smaller keys.
        pivot (np.int64): Row holding the separating key.
        right (np.int64): Root of the tree with the larger keys.

    Returns:
        Tuple[np.int64, np.int64]:
            - root: Root of the merged tree.
            - cost: |height(left) - height(right)| + 1.
    """

    left_height  = nodes[left, HEIGHT]
    right_height = nodes[right, HEIGHT]

    nodes[pivot, LEFT]   = SENTINEL
    nodes[pivot, RIGHT]  = SENTINEL
    nodes[pivot, PARENT] = SENTINEL
    nodes[pivot, HEIGHT] = 0
    nodes[pivot, SIZE]   = 1

    root = pivot

    if left_height >= right_height:
        extra   = nodes[right, SIZE] + 1
        parent  = SENTINEL
        current = left

        while nodes[current, HEIGHT] > right_height:
            nodes[current, SIZE] += extra
            parent  = current
            current = nodes[current, RIGHT]

        nodes[pivot, LEFT]  = current
        nodes[pivot, RIGHT] = right
        if current != SENTINEL:
            nodes[current, PARENT] = pivot
        if right != SENTINEL:
            nodes[right, PARENT] = pivot

        update_height(nodes, pivot)
        update_size(nodes, pivot)

        nodes[pivot, PARENT] = parent
        if parent != SENTINEL:
            nodes[parent, RIGHT] = pivot
            root, _ = rebalance(nodes, left, parent)

    else:
        extra   = nodes[left, SIZE] + 1
        parent  = SENTINEL
        current = right

        while nodes[current, HEIGHT] > left_height:
            nodes[current, SIZE] += extra
            parent  = current
            current = nodes[current, LEFT]

        nodes[pivot, LEFT]  = left
        nodes[pivot, RIGHT] = current
        if current != SENTINEL:
            nodes[current, PARENT] = pivot
        if left != SENTINEL:
            nodes[left, PARENT] = pivot

        update_height(nodes, pivot)
        update_size(nodes, pivot)

        nodes[pivot, PARENT] = parent
        if parent != SENTINEL:
            nodes[parent, LEFT] = pivot
            root, _ = rebalance(nodes, right, parent)

    return root, abs(left_height - right_height) + 1

@njit
def split(
    nodes: np.ndarray,
    root:  np.int64,
    index: np.int64

) -> Tuple[np.int64, np.int64, np.int64]:

    """
    Split the tree around the node at ``index``.

    The node's left and right subtrees seed the ``smaller`` and ``larger``
    accumulators. Climbing from ``index`` to the root, each ancestor's row
    is reused as a pivot: its other subtree is detached and joined onto
    ``smaller`` when the climb came from a right child, onto ``larger``
    when it came from a left child.

    The row at ``index`` is detached from everything; the caller frees it.
    The tree being split is consumed.

    Args:
        nodes (np.ndarray): Node table.
        root (np.int64): Root of the tree being split.
        index (np.int64): Row holding the split key.

    Returns:
        Tuple[np.int64, np.int64, np.int64]:
            - smaller: Root of the tree of keys below the split key.
            - larger: Root of the tree of keys above the split key.
            - cost: Sum of the costs of all joins performed.
    """

    smaller = detach(nodes, nodes[index, LEFT])
    larger  = detach(nodes, nodes[index, RIGHT])
    cost    = 0

    current = index
    parent  = nodes[index, PARENT]
    nodes[index, PARENT] = SENTINEL

    while parent != SENTINEL:
        grandparent = nodes[parent, PARENT]

        if nodes[parent, RIGHT] == current:
            sibling       = detach(nodes, nodes[parent, LEFT])
            smaller, step = join(nodes, sibling, parent, smaller)
        else:
            sibling       = detach(nodes, nodes[parent, RIGHT])
            larger, step  = join(nodes, larger, parent, sibling)

        cost   += step
        current = parent
        parent  = grandparent

    return smaller, larger, cost



# ---------- JIT-Compiled Traversal / Integrity ----------
@njit
def inorder_slots( # LVR
    nodes: np.ndarray,
    root:  np.int64

) -> np.ndarray:

    """
    Rows of the tree in ascending key order.

    Each node's position is computed directly as offset + size(left), the
    offset being threaded from parent to child (unchanged to the left,
    position + 1 to the right), so no running counter is needed. The
    sentinel has size 0 and never takes a position.
    """

    n   = nodes[root, SIZE]
    out = np.zeros(n, dtype=np.int64)
    if n == 0:
        return out

    depth        = 2 * (nodes[root, HEIGHT] + 2)
    stack_slot   = np.zeros(depth, dtype=np.int64)
    stack_offset = np.zeros(depth, dtype=np.int64)

    stack_slot[0]   = root
    stack_offset[0] = 0
    top             = 1

    while top > 0:
        top -= 1
        index  = stack_slot[top]
        offset = stack_offset[top]

        left     = nodes[index, LEFT]
        right    = nodes[index, RIGHT]
        position = offset + nodes[left, SIZE]

        out[position] = index

        if right != SENTINEL:
            stack_slot[top]   = right
            stack_offset[top] = position + 1
            top += 1

        if left != SENTINEL:
            stack_slot[top]   = left
            stack_offset[top] = offset
            top += 1

    return out

VERIFY_OK          = 0
VERIFY_SENTINEL    = 1
VERIFY_ROOT_PARENT = 2
VERIFY_PARENT_LINK = 3
VERIFY_ORDER       = 4
VERIFY_HEIGHT      = 5
VERIFY_SIZE        = 6
VERIFY_BALANCE     = 7
VERIFY_CYCLE       = 8

VERIFY_MESSAGES = {
    VERIFY_SENTINEL:    "sentinel row was modified",
    VERIFY_ROOT_PARENT: "root has a parent",
    VERIFY_PARENT_LINK: "child does not point back at its parent",
    VERIFY_ORDER:       "key breaks binary search tree order",
    VERIFY_HEIGHT:      "stored height differs from 1 + max(child heights)",
    VERIFY_SIZE:        "stored size differs from 1 + sum(child sizes)",
    VERIFY_BALANCE:     "child heights differ by more than one",
    VERIFY_CYCLE:       "more nodes reachable than rows in the table",
}

@njit
def verify(
    nodes: np.ndarray,
    root:  np.int64

) -> Tuple[np.int64, np.int64]:

    """
    Check every structural invariant of the tree rooted at ``root``.

    Walks the tree depth-first carrying exclusive key bounds, and checks at
    each real node: parent back-links, BST order, the height and size
    formulas against the children's stored values, and the AVL balance
    bound. Because leaves are checked against the sentinel's height -1 and
    size 0, the local checks prove the stored values correct bottom-up.

    Returns:
        Tuple[np.int64, np.int64]: (error code, offending row); (0, 0) if
        the tree is sound.
    """

    if (nodes[SENTINEL, KEY] != -1 or nodes[SENTINEL, LEFT] != SENTINEL or nodes[SENTINEL, RIGHT] != SENTINEL
            or nodes[SENTINEL, PARENT] != SENTINEL or nodes[SENTINEL, HEIGHT] != -1 or nodes[SENTINEL, SIZE] != 0):
        return VERIFY_SENTINEL, SENTINEL

    if root == SENTINEL:
        return VERIFY_OK, SENTINEL

    if nodes[root, PARENT] != SENTINEL:
        return VERIFY_ROOT_PARENT, root

    rows       = nodes.shape[0]
    stack_slot = np.zeros(2 * rows, dtype=np.int64)
    stack_low  = np.zeros(2 * rows, dtype=np.int64)
    stack_high = np.zeros(2 * rows, dtype=np.int64)
    stack_cap  = np.zeros(2 * rows, dtype=np.bool_)

    stack_slot[0] = root
    stack_low[0]  = -1
    stack_cap[0]  = False
    top           = 1
    visited       = 0

    while top > 0:
        top -= 1
        index  = stack_slot[top]
        low    = stack_low[top]
        high   = stack_high[top]
        capped = stack_cap[top]

        visited += 1
        if visited >= rows:
            return VERIFY_CYCLE, index

        key   = nodes[index, KEY]
        left  = nodes[index, LEFT]
        right = nodes[index, RIGHT]

        if key <= low or (capped and key >= high):
            return VERIFY_ORDER, index

        if left != SENTINEL and nodes[left, PARENT] != index:
            return VERIFY_PARENT_LINK, left
        if right != SENTINEL and nodes[right, PARENT] != index:
            return VERIFY_PARENT_LINK, right

        left_height  = nodes[left, HEIGHT]
        right_height = nodes[right, HEIGHT]

        if nodes[index, HEIGHT] != max(left_height, right_height) + 1:
            return VERIFY_HEIGHT, index
        if nodes[index, SIZE] != nodes[left, SIZE] + nodes[right, SIZE] + 1:
            return VERIFY_SIZE, index
        if abs(left_height - right_height) > 1:
            return VERIFY_BALANCE, index

        if right != SENTINEL:
            stack_slot[top] = right
            stack_low[top]  = key
            stack_high[top] = high
            stack_cap[top]  = capped
            top += 1

        if left != SENTINEL:
            stack_slot[top] = left
            stack_low[top]  = low
            stack_high[top] = key
            stack_cap[top]  = True
            top += 1

    return VERIFY_OK, SENTINEL



# --------- AVLMap API ---------
class AVLMap:
    """
    Ordered map from non-negative int64 keys to text values, kept as an AVL
    tree in a NumPy node table with Numba-compiled structural kernels.

    Besides lookup, insert and delete, the map supports ``split`` (cut the
    map at a stored key into the keys below and the keys above) and
    ``join`` (merge with another map around a separating pivot key). Both
    consume a map: after ``split`` this map is unusable, after ``join`` the
    other map is. Calls on a consumed map raise ``TreeConsumedError``.

    Attributes:
        pool (NodePool): Node table and value storage; shared by the two
            halves of a split.
        root (int): Row index of the root (0, the sentinel, if empty).
    """

    def __init__(
        self,
        capacity: Optional[int]      = None,
        pool:     Optional[NodePool] = None

    ) -> None:

        self.pool      = pool if pool is not None else NodePool(capacity)
        self.root      = SENTINEL
        self._consumed = False

    @classmethod
    def _with_root(
        cls,
        pool: NodePool,
        root: int

    ) -> "AVLMap":

        tree      = cls(pool=pool)
        tree.root = int(root)
        return tree

    def _check_alive(self) -> None:
        if self._consumed:
            raise TreeConsumedError("This map was consumed by a split or join")

    def _consume(self) -> None:
        self._consumed = True
        self.root      = SENTINEL

    @staticmethod
    def _check_key(key) -> int:
        """Validate a key for insertion and return it as a plain int."""

        if isinstance(key, (bool, np.bool_)) or not isinstance(key, (int, np.integer)):
            raise InvalidKeyError(f"Keys must be integers, not {type(key).__name__}")

        key = int(key)
        if not (0 <= key <= MAX_KEY):
            raise InvalidKeyError(
                f"The key must be between 0 and {MAX_KEY}, not {key}"
            )

        return key

    def _find(self, key) -> int:
        """Row holding ``key``, or the sentinel when it is not stored."""

        if isinstance(key, (bool, np.bool_)) or not isinstance(key, (int, np.integer)):
            raise InvalidKeyError(f"Keys must be integers, not {type(key).__name__}")

        key = int(key)
        if self.root == SENTINEL or not (0 <= key <= MAX_KEY):
            return SENTINEL

        index = int(locate(self.pool.nodes, self.root, key))
        if self.pool.nodes[index, KEY] != key:
            return SENTINEL

        return index

    # ---------- Queries ----------
    def is_empty(self) -> bool:
        self._check_alive()
        return self.root == SENTINEL

    def size(self) -> int:
        """Number of keys, read from the root's subtree size in O(1)."""
        self._check_alive()
        return int(self.pool.nodes[self.root, SIZE])

    def height(self) -> int:
        """Height of the root, -1 for an empty map."""
        self._check_alive()
        return int(self.pool.nodes[self.root, HEIGHT])

    def search(self, key: int) -> Optional[str]:
        """Value stored under ``key``, or None if the key is absent."""

        self._check_alive()
        index = self._find(key)
        if index == SENTINEL:
            return None

        return self.pool.values[index]

    def min(self) -> Optional[str]:
        """Value of the smallest key, or None if the map is empty."""

        self._check_alive()
        if self.root == SENTINEL:
            return None

        return self.pool.values[int(min_slot(self.pool.nodes, self.root))]

    def max(self) -> Optional[str]:
        """Value of the largest key, or None if the map is empty."""

        self._check_alive()
        if self.root == SENTINEL:
            return None

        return self.pool.values[int(max_slot(self.pool.nodes, self.root))]

    def min_key(self) -> Optional[int]:
        self._check_alive()
        if self.root == SENTINEL:
            return None

        return int(self.pool.nodes[min_slot(self.pool.nodes, self.root), KEY])

    def max_key(self) -> Optional[int]:
        self._check_alive()
        if self.root == SENTINEL:
            return None

        return int(self.pool.nodes[max_slot(self.pool.nodes, self.root), KEY])

    def successor(self, key: int) -> Optional[int]:
        """
        Smallest stored key greater than ``key``.

        Args:
            key (int): A key stored in the map.

        Returns:
            Optional[int]: The next key, or None if ``key`` is the largest.

        Raises:
            KeyNotFoundError: ``key`` is not stored.
        """

        self._check_alive()
        index = self._find(key)
        if index == SENTINEL:
            raise KeyNotFoundError(key)

        nxt = int(successor(self.pool.nodes, index))
        if nxt == SENTINEL:
            return None

        return int(self.pool.nodes[nxt, KEY])

    def predecessor(self, key: int) -> Optional[int]:
        """
        Largest stored key smaller than ``key``.

        Args:
            key (int): A key stored in the map.

        Returns:
            Optional[int]: The previous key, or None if ``key`` is the smallest.

        Raises:
            KeyNotFoundError: ``key`` is not stored.
        """

        self._check_alive()
        index = self._find(key)
        if index == SENTINEL:
            raise KeyNotFoundError(key)

        prv = int(predecessor(self.pool.nodes, index))
        if prv == SENTINEL:
            return None

        return int(self.pool.nodes[prv, KEY])

    def root_info(self) -> Optional[Tuple[int, Optional[int], Optional[int], int, int]]:
        """
        (key, left child key, right child key, height, size) of the root.

        Child keys are None where the child is the sentinel. Returns None for
        an empty map.
        """

        self._check_alive()
        if self.root == SENTINEL:
            return None

        nodes = self.pool.nodes
        left  = int(nodes[self.root, LEFT])
        right = int(nodes[self.root, RIGHT])

        return (
            int(nodes[self.root, KEY]),
            int(nodes[left, KEY]) if left != SENTINEL else None,
            int(nodes[right, KEY]) if right != SENTINEL else None,
            int(nodes[self.root, HEIGHT]),
            int(nodes[self.root, SIZE]),
        )

    # ---------- Traversal ----------
    def keys(self) -> np.ndarray:
        """All keys in ascending order as an int64 array."""

        self._check_alive()
        slots = inorder_slots(self.pool.nodes, self.root)
        return self.pool.nodes[slots, KEY]

    def values(self) -> List[str]:
        """All values, ordered by their keys (parallel to ``keys()``)."""

        self._check_alive()
        slots  = inorder_slots(self.pool.nodes, self.root)
        values = self.pool.values
        return [values[slot] for slot in slots]

    def items(self) -> List[Tuple[int, str]]:
        self._check_alive()
        slots  = inorder_slots(self.pool.nodes, self.root)
        nodes  = self.pool.nodes
        values = self.pool.values
        return [(int(nodes[slot, KEY]), values[slot]) for slot in slots]

    # ---------- Mutations ----------
    def insert(
        self,
        key:   int,
        value: str

    ) -> int:

        """
        Insert a new key with its value and rebalance.

        Args:
            key (int): Non-negative key that is not stored yet.
            value (str): Text stored with the key.

        Returns:
            int: Number of rebalance actions (0 if the insertion needed none).

        Raises:
            InvalidKeyError: ``key`` is negative, too large or not an integer.
            DuplicateKeyError: ``key`` is already stored.
        """

        self._check_alive()
        key = self._check_key(key)

        if self.root == SENTINEL:
            self.root = self.pool.allocate(key, value)
            return 0

        parent = int(locate(self.pool.nodes, self.root, key))
        if self.pool.nodes[parent, KEY] == key:
            raise DuplicateKeyError(key)

        # allocation may reallocate the node table
        index = self.pool.allocate(key, value)

        root, count = insert_leaf(self.pool.nodes, self.root, parent, index)
        self.root = int(root)

        return int(count)

    def delete(self, key: int) -> int:
        """
        Delete a key and its value and rebalance.

        Returns:
            int: Number of rebalance actions.

        Raises:
            KeyNotFoundError: ``key`` is not stored.
        """

        self._check_alive()
        index = self._find(key)
        if index == SENTINEL:
            raise KeyNotFoundError(key)

        root, count, removed = remove(self.pool.nodes, self.root, index)
        removed = int(removed)

        if removed != index:
            self.pool.values[index] = self.pool.values[removed]
        self.pool.release(removed)

        self.root = int(root)
        return int(count)

    def split(self, key: int) -> Tuple["AVLMap", "AVLMap"]:
        """
        Split the map at a stored key.

        The entry for ``key`` itself is discarded. This map is consumed; the
        two returned maps share its node pool.

        Args:
            key (int): A key stored in the map.

        Returns:
            Tuple[AVLMap, AVLMap]: (keys below ``key``, keys above ``key``).

        Raises:
            KeyNotFoundError: ``key`` is not stored (the map is left intact).
        """

        self._check_alive()
        index = self._find(key)
        if index == SENTINEL:
            raise KeyNotFoundError(key)

        smaller, larger, cost = split(self.pool.nodes, self.root, index)
        self.pool.release(index)

        pool = self.pool
        self._consume()

        logger.debug("Split at key %d with total join cost %d", int(key), int(cost))

        return AVLMap._with_root(pool, smaller), AVLMap._with_root(pool, larger)

    def join(
        self,
        key:   int,
        value: str,
        other: "AVLMap"

    ) -> int:

        """
        Merge ``other`` and a pivot entry into this map.

        Every key of one map must be smaller than ``key`` and every key of
        the other larger; either map may be empty. ``other`` is consumed.
        If it lives in a different node pool its rows are first copied into
        this map's pool.

        Args:
            key (int): Pivot key, strictly between the two key ranges.
            value (str): Value stored with the pivot key.
            other (AVLMap): Map on the other side of the pivot.

        Returns:
            int: |height(self) - height(other)| + 1, heights taken before
            the merge with -1 for an empty map.

        Raises:
            InvalidKeyError: The pivot key is not a valid key.
            RangeOverlapError: The pivot does not separate the two maps, or
                ``other`` is this map.
        """

        self._check_alive()
        other._check_alive()
        key = self._check_key(key)

        if other is self:
            raise RangeOverlapError("A map cannot be joined with itself")

        def below(tree: "AVLMap") -> bool:
            return tree.root == SENTINEL or tree.max_key() < key

        def above(tree: "AVLMap") -> bool:
            return tree.root == SENTINEL or tree.min_key() > key

        if below(self) and above(other):
            other_is_left = False
        elif below(other) and above(self):
            other_is_left = True
        else:
            raise RangeOverlapError(
                f"Pivot key {key} does not separate the key ranges of the two maps"
            )

        other_root = other.root
        if other.pool is not self.pool and other_root != SENTINEL:
            other_root = self._adopt(other)

        pivot = self.pool.allocate(key, value)

        if other_is_left:
            root, cost = join(self.pool.nodes, other_root, pivot, self.root)
        else:
            root, cost = join(self.pool.nodes, self.root, pivot, other_root)

        self.root = int(root)
        other._consume()

        logger.debug("Joined around key %d with cost %d", key, int(cost))
        return int(cost)

    def _adopt(self, other: "AVLMap") -> int:
        """Move ``other``'s rows into this map's pool; returns the new root row."""

        source = other.pool
        slots  = inorder_slots(source.nodes, other.root)
        remap  = self.pool.adopt(source, slots)
        source.release_many(slots)

        return int(remap[other.root])

    # ---------- Integrity ----------
    def verify(self) -> None:
        """
        Check every AVL invariant of the node table.

        Raises:
            InvariantViolationError: Names the first broken invariant and the
                row where it was found.
        """

        self._check_alive()
        code, slot = verify(self.pool.nodes, self.root)
        code, slot = int(code), int(slot)

        if code != VERIFY_OK:
            raise InvariantViolationError(
                VERIFY_MESSAGES[code] + " (row " + str(slot) + ")", code, slot
            )

    # ---------- Dunder ----------
    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key) -> bool:
        self._check_alive()
        if isinstance(key, (bool, np.bool_)) or not isinstance(key, (int, np.integer)):
            return False
        return self._find(key) != SENTINEL

    def __iter__(self) -> Iterator[int]:
        return iter(int(key) for key in self.keys())

    def __str__(self) -> str:
        if self._consumed:
            return "AVLMap(consumed)"

        return "AVLMap(size=" + str(self.size()) + ", root=" + str(self.root) + ", height=" + str(self.height()) + ")"



# --------- Utils ---------
def warmup() -> bool:
    """
    Minimally triggers JIT compilation for every AVLMap kernel.
    """

    tree = AVLMap(capacity=16)
    for key in (30, 20, 10, 40, 50, 25):
        tree.insert(key, str(key))

    tree.search(20)
    tree.successor(20)
    tree.predecessor(20)
    tree.delete(10)
    tree.verify()

    smaller, larger = tree.split(30)
    smaller.join(30, "30", larger)
    smaller.keys()

    return True

def fill_map(
    tree:   AVLMap,
    keys:   Sequence[int],
    values: Optional[Sequence[str]] = None

) -> None:

    """
    Insert many keys into an existing map.

    Args:
        tree (AVLMap): Map to populate.
        keys (Sequence[int]): Keys to insert; each must be new to the map.
        values (Optional[Sequence[str]]): Values parallel to ``keys``;
            defaults to ``str(key)``.
    """

    if values is not None and len(values) != len(keys):
        raise ValueError(
            f"Got {len(keys)} keys but {len(values)} values"
        )

    for i, key in enumerate(keys):
        tree.insert(key, values[i] if values is not None else str(key))

def build_map(
    keys:   Sequence[int],
    values: Optional[Sequence[str]] = None

) -> AVLMap:

    """
    Build a map sized for ``keys`` and populate it.

    Returns:
        AVLMap: A balanced map holding every key.
    """

    tree = AVLMap(capacity=max(len(keys), 1))
    fill_map(tree, keys, values)
    return tree
