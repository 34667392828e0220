"""
Growth configuration for varlib containers.

Both containers use the same lazy growth pattern: a starting capacity,
and a fixed refill added whenever the next write would not fit. The
numbers below are part of the library's public contract; host programs
may rely on them.

    Reference Array:      starts at 25 slots, grows by 10,
                          grows when fewer than 2 slots are free
    Growable Text Buffer: starts at 15 characters,
                          grows by (requested extra + 5)
"""

from __future__ import annotations

from dataclasses import dataclass

from .allocation import GrowthPolicyError


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

REFERENCE_ARRAY_START_SIZE = 25
REFERENCE_ARRAY_REFILL_SIZE = 10
REFERENCE_ARRAY_MIN_FREE = 2

TEXT_BUFFER_START_SIZE = 15
TEXT_BUFFER_REFILL_SIZE = 5

# Terminator written after the content of every text buffer
TERMINATOR = "\0"


@dataclass(frozen=True)
class GrowthPolicy:
    """
    Sizing parameters of a growable container.

    start_size:  capacity allocated at creation
    refill_size: fixed increment added on each growth
    min_free:    free slots that must remain before a store (reference
                 array only; the text buffer sizes growth per request)
    """
    start_size: int
    refill_size: int
    min_free: int = 1

    def __post_init__(self):
        """Reject policies that could never hold an element."""
        for name in ("start_size", "refill_size", "min_free"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise GrowthPolicyError(
                    f"{name} must be an int, got {type(value).__name__}"
                )
            if value < 1:
                raise GrowthPolicyError(f"{name} must be >= 1, got {value}")


REFERENCE_ARRAY_POLICY = GrowthPolicy(
    start_size=REFERENCE_ARRAY_START_SIZE,
    refill_size=REFERENCE_ARRAY_REFILL_SIZE,
    min_free=REFERENCE_ARRAY_MIN_FREE,
)

TEXT_BUFFER_POLICY = GrowthPolicy(
    start_size=TEXT_BUFFER_START_SIZE,
    refill_size=TEXT_BUFFER_REFILL_SIZE,
)
