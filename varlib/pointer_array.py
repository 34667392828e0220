"""
Reference Array — an unordered, growable set of non-owned references.

The array keeps a capacity/used pair over a block obtained from an
Allocator. It grows lazily by a fixed increment, removes by swapping
the last live slot into the hole, and never releases the objects it
refers to: the caller keeps that responsibility.

Removal is O(1) after the scan and does not preserve order, which suits
a set of live handles (e.g. active sessions) with no positional meaning.
"""

from __future__ import annotations

import logging
from typing import Any, Iterator, Optional

from .allocation import (
    AllocationError,
    Allocator,
    ReleasedError,
    default_allocator,
)
from .config import REFERENCE_ARRAY_POLICY, GrowthPolicy
from .result import AllocResult

logger = logging.getLogger(__name__)


# =============================================================================
# REFERENCE ARRAY
# =============================================================================

class ReferenceArray:
    """
    Dynamic array of opaque references.

    Invariants:
    1. 0 <= used <= capacity
    2. Slots at index >= used hold None
    3. A store grows the block first when fewer than `min_free` slots
       are free, so at least one slot stays free after every store
    4. Identity, not equality, decides membership and removal
    """

    def __init__(
        self,
        policy: Optional[GrowthPolicy] = None,
        allocator: Optional[Allocator] = None,
    ):
        self._policy = policy or REFERENCE_ARRAY_POLICY
        self._allocator = allocator or default_allocator()
        self._keys: Optional[list] = self._allocator.allocate(
            self._policy.start_size
        )
        self._used = 0

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def used(self) -> int:
        """Number of stored references."""
        self._ensure_live()
        return self._used

    @property
    def capacity(self) -> int:
        """Total slots in the backing block."""
        self._ensure_live()
        return len(self._keys)

    @property
    def released(self) -> bool:
        return self._keys is None

    @property
    def slots(self) -> tuple:
        """Snapshot of every slot, free ones included."""
        self._ensure_live()
        return tuple(self._keys)

    def _ensure_live(self) -> None:
        if self._keys is None:
            raise ReleasedError("reference array has been released")

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def store(self, obj: Any) -> Any:
        """
        Append `obj` and return it.

        Raises:
            AllocationError: If growth fails. The array is unchanged and
                the caller still owns `obj`.
        """
        self._ensure_live()
        size = len(self._keys)

        if size - self._used < self._policy.min_free:
            new_size = size + self._policy.refill_size
            self._keys = self._allocator.reallocate(self._keys, new_size)
            logger.debug("Reference array grew %d -> %d slots", size, new_size)

        self._keys[self._used] = obj
        self._used += 1
        return obj

    def remove(self, obj: Any) -> bool:
        """
        Remove one occurrence of `obj`, swapping the last entry into its slot.

        The whole used region is scanned, so with duplicates the
        highest-indexed occurrence is the one removed. The removed
        reference is not released.

        Returns:
            True if an entry was removed, False if `obj` is not stored
        """
        self._ensure_live()
        found = -1
        for i in range(self._used):
            if self._keys[i] is obj:
                found = i

        if found == -1:
            return False

        last = self._used - 1
        self._keys[found] = self._keys[last]
        self._keys[last] = None
        self._used -= 1
        return True

    def release(self) -> None:
        """Free the backing block. Stored references are left alone."""
        self._ensure_live()
        self._allocator.release(self._keys)
        self._keys = None
        self._used = 0

    # -------------------------------------------------------------------------
    # Python protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        self._ensure_live()
        return self._used

    def __iter__(self) -> Iterator[Any]:
        self._ensure_live()
        return iter(self._keys[:self._used])

    def __contains__(self, obj: Any) -> bool:
        self._ensure_live()
        return any(self._keys[i] is obj for i in range(self._used))

    def __enter__(self) -> ReferenceArray:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.released:
            self.release()

    def __repr__(self) -> str:
        if self.released:
            return "ReferenceArray(released)"
        return f"ReferenceArray(used={self._used}, capacity={len(self._keys)})"


# =============================================================================
# FUNCTIONAL INTERFACE
# =============================================================================

def dpa_init(
    policy: Optional[GrowthPolicy] = None,
    allocator: Optional[Allocator] = None,
) -> AllocResult[ReferenceArray]:
    """Create a reference array, reporting allocation failure as a result."""
    try:
        return AllocResult.success(ReferenceArray(policy, allocator))
    except AllocationError as e:
        logger.warning("Reference array creation failed: %s", e)
        return AllocResult.failure(e)


def dpa_store(dpa: ReferenceArray, obj: Any) -> AllocResult[Any]:
    """Store `obj`; a failed result leaves `dpa` unchanged."""
    try:
        return AllocResult.success(dpa.store(obj))
    except AllocationError as e:
        logger.warning("Reference array store failed: %s", e)
        return AllocResult.failure(e)


def dpa_rem(dpa: ReferenceArray, obj: Any) -> bool:
    """Remove `obj`. Does NOT release it."""
    return dpa.remove(obj)


def dpa_free(dpa: ReferenceArray) -> None:
    """Release the array without touching the stored references."""
    dpa.release()
