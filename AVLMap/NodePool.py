import numpy as np
from typing import Optional

from .config import get_growth_factor, get_initial_capacity
from .logger import init_logger

logger = init_logger(__name__)



# Row layout of the node table (int64 columns):
#     ROW[6]: [key | left | right | parent | height | size]
#     Links are row indices; row 0 is the shared sentinel.
#     Limitations:
#         0 <= key <= (1 << 63) - 1



KEY      = 0
LEFT     = 1
RIGHT    = 2
PARENT   = 3
HEIGHT   = 4
SIZE     = 5
N_FIELDS = 6

SENTINEL = 0
MAX_KEY  = int(np.iinfo(np.int64).max)

# key -1, no links, height -1, size 0
SENTINEL_ROW = np.array([-1, 0, 0, 0, -1, 0], dtype=np.int64)



class NodePool:
    """
    Arena holding the nodes of one or more AVL maps.

    Every node is a row of ``nodes``, a 2D int64 array laid out as
    [key | left | right | parent | height | size]. Row 0 is the sentinel:
    every absent child and the parent of every root points at it, and
    it is never written after construction. Text values live in the
    parallel ``values`` list, indexed by row.

    Rows are handed out from a free-list stack first and from the bump
    pointer ``_free`` second. When both are exhausted the table grows by
    the configured growth factor.

    Several maps may share a pool (the two halves of a split do); each
    map owns a disjoint set of rows.

    Attributes:
        nodes (np.ndarray): Node table of shape [capacity + 1, 6].
        values (List[Optional[str]]): Value of each row, None for free rows.
        count (int): Number of rows currently in use.
    """

    def __init__(
        self,
        capacity:      Optional[int]   = None,
        growth_factor: Optional[float] = None

    ) -> None:

        if capacity is None:
            capacity = get_initial_capacity()
        if growth_factor is None:
            growth_factor = get_growth_factor()

        if capacity < 1:
            raise ValueError(f"The capacity must be at least 1, not {capacity}")
        if not growth_factor > 1.0:
            raise ValueError(f"The growth factor must be greater than 1, not {growth_factor}")

        rows = capacity + 1

        self.nodes          = np.zeros((rows, N_FIELDS), dtype=np.int64)
        self.nodes[SENTINEL] = SENTINEL_ROW
        self.values         = [None] * rows
        self.count          = 0
        self.growth_factor  = float(growth_factor)
        self._free          = 1
        self._free_list     = np.zeros(rows, dtype=np.int64)
        self._free_list_top = 0

    @property
    def capacity(self) -> int:
        """Number of rows available for real nodes (the sentinel excluded)."""
        return self.nodes.shape[0] - 1

    def _grow(self, min_rows: int) -> None:
        """
        Reallocate the node table with at least ``min_rows`` rows.

        Row indices are preserved, so every link stays valid. Callers must
        re-read ``self.nodes`` after any allocation.
        """

        old_rows = self.nodes.shape[0]
        new_rows = max(int(old_rows * self.growth_factor), min_rows, old_rows + 1)

        nodes                = np.zeros((new_rows, N_FIELDS), dtype=np.int64)
        nodes[:old_rows]     = self.nodes
        free_list            = np.zeros(new_rows, dtype=np.int64)
        free_list[:old_rows] = self._free_list

        self.nodes      = nodes
        self._free_list = free_list
        self.values.extend([None] * (new_rows - old_rows))

        logger.debug("Node pool grown from %d to %d rows", old_rows, new_rows)

    def _take_slot(self) -> int:
        if self._free_list_top > 0:
            self._free_list_top -= 1
            return int(self._free_list[self._free_list_top])

        if self._free >= self.nodes.shape[0]:
            self._grow(self._free + 1)

        slot = self._free
        self._free += 1
        return slot

    def allocate(
        self,
        key:   int,
        value: Optional[str]

    ) -> int:

        """
        Take a free row and initialise it as a detached leaf.

        :param key: Key of the new node
        :type key: int
        :param value: Text stored with the key
        :type value: str
        :return: Row index of the new node
        :rtype: int
        """

        slot = self._take_slot()

        self.nodes[slot] = (key, SENTINEL, SENTINEL, SENTINEL, 0, 1)
        self.values[slot] = value
        self.count += 1

        return slot

    def allocate_many(self, n: int) -> np.ndarray:
        """
        Reserve ``n`` rows without initialising them.

        The table is grown once up front when the free list and the bump
        pointer cannot cover the request.
        """

        missing = n - self._free_list_top - (self.nodes.shape[0] - self._free)
        if missing > 0:
            self._grow(self.nodes.shape[0] + missing)

        slots = np.empty(n, dtype=np.int64)
        for i in range(n):
            slots[i] = self._take_slot()

        self.count += n
        return slots

    def release(self, slot: int) -> None:
        """Return a row to the free list and drop its value."""

        self.nodes[slot]  = 0
        self.values[slot] = None

        self._free_list[self._free_list_top] = slot
        self._free_list_top += 1
        self.count -= 1

    def release_many(self, slots: np.ndarray) -> None:
        for slot in slots:
            self.release(int(slot))

    def adopt(
        self,
        source: "NodePool",
        slots:  np.ndarray

    ) -> np.ndarray:

        """
        Copy rows of another pool into this one, remapping every link.

        The copied rows keep their key, height and size; their left, right
        and parent links are translated to the new row indices. A link to a
        row outside ``slots`` (only the sentinel, for a whole subtree) maps
        to the sentinel. The source rows are left untouched; the caller
        releases them.

        Args:
            source (NodePool): Pool the rows are copied from.
            slots (np.ndarray): Row indices in ``source`` forming a subtree.

        Returns:
            np.ndarray: Table indexed by source row giving the new row index.
        """

        new_slots = self.allocate_many(len(slots))

        remap        = np.zeros(source.nodes.shape[0], dtype=np.int64)
        remap[slots] = new_slots

        rows            = source.nodes[slots]
        rows[:, LEFT]   = remap[rows[:, LEFT]]
        rows[:, RIGHT]  = remap[rows[:, RIGHT]]
        rows[:, PARENT] = remap[rows[:, PARENT]]

        self.nodes[new_slots] = rows
        for old, new in zip(slots, new_slots):
            self.values[int(new)] = source.values[int(old)]

        logger.debug("Adopted %d rows into node pool", len(slots))
        return remap

    def __len__(self) -> int:
        return self.count

    def __str__(self) -> str:
        return "NodePool(capacity=" + str(self.capacity) + ", used=" + str(self.count) + ")"
