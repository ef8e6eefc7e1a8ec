"""Environment-driven defaults for AVLMap node pools."""

import os

DEFAULT_INITIAL_CAPACITY = 64
DEFAULT_GROWTH_FACTOR    = 2.0


def get_initial_capacity() -> int:
    """Read AVLMAP_INITIAL_CAPACITY, the number of rows a new pool starts with."""

    raw = os.getenv("AVLMAP_INITIAL_CAPACITY")
    if raw is None:
        return DEFAULT_INITIAL_CAPACITY

    try:
        capacity = int(raw)
    except ValueError:
        raise ValueError(
            f"AVLMAP_INITIAL_CAPACITY must be an integer, not {raw!r}"
        ) from None

    if capacity < 1:
        raise ValueError(
            f"AVLMAP_INITIAL_CAPACITY must be at least 1, not {capacity}"
        )
    return capacity


def get_growth_factor() -> float:
    """Read AVLMAP_GROWTH_FACTOR, the multiplier applied when a pool is full."""

    raw = os.getenv("AVLMAP_GROWTH_FACTOR")
    if raw is None:
        return DEFAULT_GROWTH_FACTOR

    try:
        factor = float(raw)
    except ValueError:
        raise ValueError(
            f"AVLMAP_GROWTH_FACTOR must be a number, not {raw!r}"
        ) from None

    if not factor > 1.0:
        raise ValueError(
            f"AVLMAP_GROWTH_FACTOR must be greater than 1, not {factor}"
        )
    return factor
