"""
Backing-storage allocation for varlib containers.

Containers never create their storage directly. They ask an Allocator
for a block (a fixed-length Python list), ask it again to reallocate
when they grow, and hand the block back on release. Routing every
allocation through one seam gives two things:

    1. Allocation failure is observable and recoverable. Any failure
       surfaces as AllocationError before the container mutates.
    2. Allocation behaviour is measurable. AllocationStats counts every
       allocate/reallocate/release, so growth can be verified without
       inspecting memory addresses.

BudgetAllocator caps the number of live cells it will hand out and is
the supported way to exercise allocation failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class VarlibError(Exception):
    """Base class for every error raised by varlib."""
    pass


class AllocationError(VarlibError, MemoryError):
    """
    Raised when backing storage cannot be obtained.

    This is the only runtime failure the containers report. It is raised
    before any visible state changes, so the caller may retry, release
    the container, or abandon the larger operation.
    """

    def __init__(self, requested: int, reason: str):
        self.requested = requested
        self.reason = reason
        super().__init__(f"cannot allocate {requested} cells: {reason}")


class ReleasedError(VarlibError):
    """Raised when a container is used after release() or pack()."""
    pass


class GrowthPolicyError(VarlibError, ValueError):
    """Raised when a GrowthPolicy is constructed with unusable values."""
    pass


# =============================================================================
# ALLOCATOR
# =============================================================================

@dataclass
class AllocationStats:
    """Running counters kept by an Allocator."""
    allocations: int = 0
    reallocations: int = 0
    releases: int = 0
    live_cells: int = 0
    peak_cells: int = 0

    def _track(self, delta: int) -> None:
        self.live_cells += delta
        if self.live_cells > self.peak_cells:
            self.peak_cells = self.live_cells


class Allocator:
    """
    Unbounded allocator backed by Python lists.

    A block is a list whose length is its capacity. reallocate() always
    returns a NEW list: the old block is retired, so a change of block
    identity means a reallocation happened.
    """

    def __init__(self) -> None:
        self.stats = AllocationStats()

    def _check(self, requested: int) -> None:
        """Hook for subclasses: raise AllocationError to refuse a request."""
        return None

    def allocate(self, count: int, fill: Any = None) -> list:
        """Return a new block of `count` cells, each set to `fill`."""
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        self._check(count)
        try:
            block = [fill] * count
        except MemoryError as e:
            raise AllocationError(count, "interpreter out of memory") from e

        self.stats.allocations += 1
        self.stats._track(count)
        return block

    def reallocate(self, block: list, count: int, fill: Any = None) -> list:
        """
        Return a new block of `count` cells holding a copy of `block`.

        Cells past the end of the old block are set to `fill`. Shrinking
        is not supported. On failure `block` is left untouched.
        """
        old_count = len(block)
        if count < old_count:
            raise ValueError(
                f"reallocate cannot shrink a block ({old_count} -> {count})"
            )
        self._check(count - old_count)
        try:
            new_block = block + [fill] * (count - old_count)
        except MemoryError as e:
            raise AllocationError(count, "interpreter out of memory") from e

        self.stats.reallocations += 1
        self.stats._track(count - old_count)
        return new_block

    def release(self, block: Optional[list]) -> None:
        """Retire a block previously handed out by this allocator."""
        if block is None:
            return
        self.stats.releases += 1
        self.stats._track(-len(block))


class BudgetAllocator(Allocator):
    """
    Allocator that refuses to hold more than `budget` live cells.

    A request that would push live cells above the budget raises
    AllocationError and changes nothing, exactly like a failed realloc.
    """

    def __init__(self, budget: int) -> None:
        if budget < 0:
            raise ValueError(f"budget must be >= 0, got {budget}")
        super().__init__()
        self.budget = budget

    @property
    def remaining(self) -> int:
        """Cells still available under the budget."""
        return self.budget - self.stats.live_cells

    def _check(self, requested: int) -> None:
        if requested > self.remaining:
            logger.debug(
                "Budget allocator refused %d cells (%d remaining)",
                requested, self.remaining,
            )
            raise AllocationError(
                requested,
                f"budget exhausted ({self.remaining} of {self.budget} cells left)",
            )


_DEFAULT_ALLOCATOR = Allocator()


def default_allocator() -> Allocator:
    """Return the shared unbounded allocator used when none is given."""
    return _DEFAULT_ALLOCATOR
