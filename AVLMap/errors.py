"""Exception hierarchy for AVLMap."""


class AVLMapError(Exception):
    """Base class for every error raised by AVLMap."""


class InvalidKeyError(AVLMapError, ValueError):
    """Key is negative, not an integer, or does not fit in a signed 64-bit slot."""


class DuplicateKeyError(AVLMapError, KeyError):
    """Insert of a key that is already stored."""


class KeyNotFoundError(AVLMapError, KeyError):
    """Delete or split of a key that is not stored."""


class RangeOverlapError(AVLMapError, ValueError):
    """Join whose pivot does not separate the key ranges of the two maps."""


class TreeConsumedError(AVLMapError, RuntimeError):
    """The map was consumed by a previous split or join and cannot be used."""


class InvariantViolationError(AVLMapError, AssertionError):
    """
    Raised by ``AVLMap.verify`` when the node table breaks an AVL invariant.

    Attributes:
        code (int): Error code returned by the ``verify`` kernel.
        slot (int): Row of the node table where the violation was found.
    """

    def __init__(self, message: str, code: int = 0, slot: int = 0) -> None:
        super().__init__(message)
        self.code = code
        self.slot = slot
