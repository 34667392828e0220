"""
Tests for the Reference Array.

These tests verify that:
1. Stores grow the array lazily by the fixed increment
2. Removal swaps the last entry into the hole and clears the tail
3. Duplicates are removed one at a time, highest index first
4. A failed growth leaves the array exactly as it was
5. The array never releases the objects it refers to
"""

import logging

import pytest

from varlib.allocation import AllocationError, Allocator, BudgetAllocator, ReleasedError
from varlib.config import GrowthPolicy
from varlib.pointer_array import (
    ReferenceArray,
    dpa_free,
    dpa_init,
    dpa_rem,
    dpa_store,
)


class Handle:
    """Opaque stand-in for a host object (e.g. a session)."""

    def __init__(self, name: str):
        self.name = name
        self.closed = False

    def __repr__(self):
        return f"Handle({self.name!r})"


def make_handles(count: int) -> list[Handle]:
    return [Handle(f"h{i}") for i in range(count)]


# =============================================================================
# CREATION & GROWTH TESTS
# =============================================================================

class TestGrowth:
    """Test creation and lazy growth."""

    def test_new_array_is_empty(self):
        """A fresh array has 25 empty slots."""
        arr = ReferenceArray()
        assert arr.used == 0
        assert len(arr) == 0
        assert arr.capacity == 25
        assert arr.slots == (None,) * 25

    def test_store_returns_reference(self):
        """store() hands back the stored reference itself."""
        arr = ReferenceArray()
        handle = Handle("a")
        assert arr.store(handle) is handle

    def test_every_store_is_retrievable(self):
        """After N stores, used == N and every reference is in the used region."""
        arr = ReferenceArray()
        handles = make_handles(100)
        for handle in handles:
            arr.store(handle)

        assert arr.used == 100
        stored = list(arr)
        assert len(stored) == 100
        for handle in handles:
            assert handle in arr
            assert any(s is handle for s in stored)

    def test_growth_triggers_below_two_free_slots(self):
        """The array grows by 10 once fewer than 2 slots would be free."""
        arr = ReferenceArray()
        for handle in make_handles(24):
            arr.store(handle)
        assert arr.capacity == 25

        arr.store(Handle("25th"))
        assert arr.capacity == 35
        assert arr.used == 25

    def test_at_least_one_free_slot_after_store(self):
        """Capacity always exceeds used after a successful store."""
        arr = ReferenceArray()
        for handle in make_handles(60):
            arr.store(handle)
            assert arr.capacity - arr.used >= 1

    def test_no_reallocation_when_space_suffices(self):
        """Stores that fit in free capacity do not reallocate."""
        allocator = Allocator()
        arr = ReferenceArray(allocator=allocator)
        for handle in make_handles(24):
            arr.store(handle)

        assert allocator.stats.allocations == 1
        assert allocator.stats.reallocations == 0

    def test_custom_policy(self):
        """A custom policy sets start size, refill and free margin."""
        arr = ReferenceArray(GrowthPolicy(start_size=2, refill_size=3, min_free=2))
        arr.store(Handle("a"))
        assert arr.capacity == 2
        arr.store(Handle("b"))
        assert arr.capacity == 5


# =============================================================================
# REMOVAL TESTS
# =============================================================================

class TestRemoval:
    """Test unordered swap-with-last removal."""

    def test_remove_swaps_last_into_hole(self):
        """The last live entry moves into the removed slot; its old slot is cleared."""
        arr = ReferenceArray()
        a, b, c, d = make_handles(4)
        for handle in (a, b, c, d):
            arr.store(handle)

        assert arr.remove(b) is True

        slots = arr.slots
        assert slots[0] is a
        assert slots[1] is d
        assert slots[2] is c
        assert slots[3] is None
        assert arr.used == 3

    def test_remove_last_entry(self):
        """Removing the last entry just clears its slot."""
        arr = ReferenceArray()
        a, b = make_handles(2)
        arr.store(a)
        arr.store(b)

        assert arr.remove(b)
        assert arr.slots[:2] == (a, None)
        assert arr.used == 1

    def test_remove_absent_changes_nothing(self):
        """Removing an absent reference reports False and leaves every slot."""
        arr = ReferenceArray()
        for handle in make_handles(5):
            arr.store(handle)
        before = arr.slots

        assert arr.remove(Handle("stranger")) is False
        assert arr.slots == before
        assert arr.used == 5

    def test_remove_from_empty(self):
        """Removing from an empty array reports False."""
        arr = ReferenceArray()
        assert arr.remove(Handle("x")) is False
        assert arr.used == 0

    def test_remove_uses_identity(self):
        """An equal but distinct object is not removed."""
        arr = ReferenceArray()
        stored = [1, 2]
        arr.store(stored)

        assert arr.remove([1, 2]) is False
        assert arr.remove(stored) is True

    def test_duplicate_removes_highest_index(self):
        """With duplicates, a single call removes only the last occurrence."""
        arr = ReferenceArray()
        a, b, c = make_handles(3)
        for handle in (a, b, a, c):
            arr.store(handle)

        assert arr.remove(a)

        slots = arr.slots
        assert slots[0] is a
        assert slots[1] is b
        assert slots[2] is c
        assert slots[3] is None
        assert arr.used == 3

    def test_duplicates_removed_one_per_call(self):
        """Each call removes exactly one occurrence."""
        arr = ReferenceArray()
        a = Handle("a")
        for _ in range(3):
            arr.store(a)

        assert arr.remove(a)
        assert arr.used == 2
        assert arr.remove(a)
        assert arr.remove(a)
        assert arr.remove(a) is False
        assert arr.used == 0

    def test_remove_does_not_release_object(self):
        """The removed object is left entirely to the caller."""
        arr = ReferenceArray()
        handle = Handle("a")
        arr.store(handle)
        arr.remove(handle)
        assert handle.closed is False


# =============================================================================
# FAILURE TESTS
# =============================================================================

class TestAllocationFailure:
    """Test that failed growth leaves the array unchanged."""

    def test_creation_failure(self):
        """Creation fails when the starting block cannot be allocated."""
        with pytest.raises(AllocationError):
            ReferenceArray(allocator=BudgetAllocator(10))

    def test_failed_growth_preserves_state(self):
        """used, capacity and every slot survive a failed growth."""
        arr = ReferenceArray(allocator=BudgetAllocator(25))
        for handle in make_handles(24):
            arr.store(handle)
        before = arr.slots

        with pytest.raises(AllocationError):
            arr.store(Handle("overflow"))

        assert arr.used == 24
        assert arr.capacity == 25
        assert arr.slots == before

    def test_store_after_failure_can_succeed(self):
        """The caller may retry once memory is available again."""
        allocator = BudgetAllocator(25)
        arr = ReferenceArray(allocator=allocator)
        for handle in make_handles(24):
            arr.store(handle)
        retry = Handle("retry")
        with pytest.raises(AllocationError):
            arr.store(retry)

        allocator.budget = 35
        assert arr.store(retry) is retry
        assert arr.used == 25


# =============================================================================
# RELEASE TESTS
# =============================================================================

class TestRelease:
    """Test release and use-after-release detection."""

    def test_release_returns_storage(self):
        """Releasing returns every cell to the allocator."""
        allocator = Allocator()
        arr = ReferenceArray(allocator=allocator)
        for handle in make_handles(30):
            arr.store(handle)
        arr.release()

        assert arr.released
        assert allocator.stats.live_cells == 0

    def test_release_leaves_references_alone(self):
        """Stored objects are not touched by release."""
        handles = make_handles(3)
        arr = ReferenceArray()
        for handle in handles:
            arr.store(handle)
        arr.release()

        assert all(not handle.closed for handle in handles)

    def test_use_after_release_raises(self):
        """Operations on a released array raise ReleasedError."""
        arr = ReferenceArray()
        arr.release()

        with pytest.raises(ReleasedError):
            arr.store(Handle("a"))
        with pytest.raises(ReleasedError):
            arr.remove(Handle("a"))
        with pytest.raises(ReleasedError):
            arr.release()

    def test_state_after_release_raises(self):
        """used and len() raise on a released array, as they do on a released buffer."""
        arr = ReferenceArray()
        arr.store(Handle("a"))
        arr.release()

        with pytest.raises(ReleasedError):
            len(arr)
        with pytest.raises(ReleasedError):
            arr.used
        with pytest.raises(ReleasedError):
            arr.capacity

    def test_context_manager_releases(self):
        """Leaving a with-block releases the array."""
        allocator = Allocator()
        with ReferenceArray(allocator=allocator) as arr:
            arr.store(Handle("a"))
        assert arr.released
        assert allocator.stats.live_cells == 0

    def test_context_manager_tolerates_early_release(self):
        """An explicit release inside the block is not repeated on exit."""
        with ReferenceArray() as arr:
            arr.release()
        assert arr.released


# =============================================================================
# FUNCTIONAL INTERFACE TESTS
# =============================================================================

class TestFunctionalInterface:
    """Test the dpa_* functions and their results."""

    def test_init_store_rem_free(self):
        """The functional calls drive a full lifecycle."""
        result = dpa_init()
        assert result.ok
        dpa = result.unwrap()

        handle = Handle("a")
        stored = dpa_store(dpa, handle)
        assert stored.ok
        assert stored.value is handle

        assert dpa_rem(dpa, handle) is True
        assert dpa_rem(dpa, handle) is False
        dpa_free(dpa)
        assert dpa.released

    def test_init_failure_is_a_result(self):
        """A failed creation returns a failed result, not an exception."""
        result = dpa_init(allocator=BudgetAllocator(1))
        assert not result.ok
        assert isinstance(result.error, AllocationError)

    def test_store_failure_is_a_result(self, caplog):
        """A failed store returns a failed result and logs a warning."""
        dpa = dpa_init(allocator=BudgetAllocator(25)).unwrap()
        for handle in make_handles(24):
            dpa_store(dpa, handle)

        with caplog.at_level(logging.WARNING, logger="varlib"):
            result = dpa_store(dpa, Handle("overflow"))

        assert not result.ok
        assert result.value is None
        assert dpa.used == 24
        assert "store failed" in caplog.text
