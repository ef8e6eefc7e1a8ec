from .AVLMapArray import AVLMap, build_map, fill_map, warmup
from .NodePool import NodePool
from .errors import (
    AVLMapError,
    DuplicateKeyError,
    InvalidKeyError,
    InvariantViolationError,
    KeyNotFoundError,
    RangeOverlapError,
    TreeConsumedError,
)

__all__ = [
    "AVLMap",
    "NodePool",
    "build_map",
    "fill_map",
    "warmup",
    "AVLMapError",
    "DuplicateKeyError",
    "InvalidKeyError",
    "InvariantViolationError",
    "KeyNotFoundError",
    "RangeOverlapError",
    "TreeConsumedError",
]
