"""
Explicit success/failure results for the functional facade.

The container methods raise AllocationError. The dpa_* and varstr_*
functions instead return an AllocResult, so a failed call can never be
mistaken for a valid value the way a sentinel could.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .allocation import AllocationError

T = TypeVar("T")


@dataclass
class AllocResult(Generic[T]):
    """Result of a fallible allocation."""
    ok: bool
    value: Optional[T] = None
    error: Optional[AllocationError] = None

    @classmethod
    def success(cls, value: T) -> AllocResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: AllocationError) -> AllocResult[T]:
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        """
        Return the value of a successful result.

        Raises:
            AllocationError: The stored error, if the call failed
        """
        if not self.ok:
            raise self.error
        return self.value

    def __bool__(self) -> bool:
        return self.ok
