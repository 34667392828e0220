# varlib: tiny variable memory-management structures
# Reference Array & Growable Text Buffer

"""
Core invariant: a container owns its backing storage and nothing else.
References stored in a ReferenceArray are never released by it, and a
TextBuffer hands its content over exactly once, through pack().

Both containers grow lazily through an Allocator, so allocation failure
is reported before any visible state changes.
"""

import logging

from .allocation import (
    AllocationError,
    AllocationStats,
    Allocator,
    BudgetAllocator,
    GrowthPolicyError,
    ReleasedError,
    VarlibError,
    default_allocator,
)
from .config import REFERENCE_ARRAY_POLICY, TEXT_BUFFER_POLICY, GrowthPolicy
from .pointer_array import ReferenceArray, dpa_free, dpa_init, dpa_rem, dpa_store
from .result import AllocResult
from .varstr import (
    PackedText,
    TextBuffer,
    varstr_cat,
    varstr_free,
    varstr_init,
    varstr_ncat,
    varstr_pack,
    varstr_pushc,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AllocResult",
    "AllocationError",
    "AllocationStats",
    "Allocator",
    "BudgetAllocator",
    "GrowthPolicy",
    "GrowthPolicyError",
    "PackedText",
    "REFERENCE_ARRAY_POLICY",
    "ReferenceArray",
    "ReleasedError",
    "TEXT_BUFFER_POLICY",
    "TextBuffer",
    "VarlibError",
    "default_allocator",
    "dpa_free",
    "dpa_init",
    "dpa_rem",
    "dpa_store",
    "varstr_cat",
    "varstr_free",
    "varstr_init",
    "varstr_ncat",
    "varstr_pack",
    "varstr_pushc",
]
