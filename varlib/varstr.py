"""
Growable Text Buffer — a terminated, growable sequence of wide characters.

Each slot of the backing block holds one code point. The content runs up
to the first TERMINATOR and the block is terminated after every append.
Growth is sized per request: when the next append would not fit, the
block grows by the requested amount plus a small fixed refill, so the
waste never exceeds one refill.

A finished buffer is either packed into a right-sized immutable
PackedText (the buffer is consumed) or released (content discarded).

Note on `used`:
    `used` is a capacity-accounting counter, NOT the content length.
    Sequence appends add len(seq) + 1 (the terminator each one reserved),
    bounded appends add count + 1 even when fewer characters were
    available, and single-character appends add 1. Use len(buffer) for
    the true content length.

    append_char() writes at slot `used`, not at the end of the content.
    While the buffer has only seen single characters the two coincide.
    After a sequence append `used` runs ahead of the content, so the
    character lands past the terminator and is not part of the text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .allocation import (
    AllocationError,
    Allocator,
    ReleasedError,
    default_allocator,
)
from .config import TERMINATOR, TEXT_BUFFER_POLICY, GrowthPolicy
from .result import AllocResult

logger = logging.getLogger(__name__)


def _terminated(seq: str) -> str:
    """Return `seq` up to (not including) its first terminator."""
    if not isinstance(seq, str):
        raise TypeError(f"expected str, got {type(seq).__name__}")
    end = seq.find(TERMINATOR)
    return seq if end == -1 else seq[:end]


# =============================================================================
# PACKED TEXT
# =============================================================================

@dataclass(frozen=True, eq=False)
class PackedText:
    """
    Immutable, right-sized result of TextBuffer.pack().

    `storage` is the content followed by exactly one terminator, so
    `allocated` is always len(text) + 1.
    """
    storage: str

    def __post_init__(self):
        if not isinstance(self.storage, str):
            raise TypeError(
                f"packed storage must be str, got {type(self.storage).__name__}"
            )
        if not self.storage.endswith(TERMINATOR):
            raise ValueError("packed storage must end with the terminator")
        if TERMINATOR in self.storage[:-1]:
            raise ValueError("packed storage holds an embedded terminator")

    @property
    def text(self) -> str:
        return self.storage[:-1]

    @property
    def allocated(self) -> int:
        """Slots held by the packed result, terminator included."""
        return len(self.storage)

    def __len__(self) -> int:
        return len(self.storage) - 1

    def __str__(self) -> str:
        return self.text

    def __eq__(self, other) -> bool:
        if isinstance(other, PackedText):
            return self.storage == other.storage
        if isinstance(other, str):
            return self.text == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.text)


# =============================================================================
# TEXT BUFFER
# =============================================================================

class TextBuffer:
    """
    Growable wide-character buffer.

    Every append returns the buffer itself so calls chain:

        packed = TextBuffer().append_char("a").append_sequence("bc").pack()

    A failed growth raises AllocationError before anything changes.
    """

    def __init__(
        self,
        policy: Optional[GrowthPolicy] = None,
        allocator: Optional[Allocator] = None,
    ):
        self._policy = policy or TEXT_BUFFER_POLICY
        self._allocator = allocator or default_allocator()
        self._str: Optional[list] = self._allocator.allocate(
            self._policy.start_size, TERMINATOR
        )
        self._used = 0

    @property
    def used(self) -> int:
        """Capacity-accounting counter (see module docstring)."""
        self._ensure_live()
        return self._used

    @property
    def capacity(self) -> int:
        """Slots in the backing block, terminator slot included."""
        self._ensure_live()
        return len(self._str)

    @property
    def released(self) -> bool:
        return self._str is None

    @property
    def text(self) -> str:
        """The visible content, up to the terminator."""
        self._ensure_live()
        return "".join(self._str[:self._content_length()])

    @property
    def slots(self) -> tuple:
        """Snapshot of every slot, terminators and hidden characters included."""
        self._ensure_live()
        return tuple(self._str)

    def _ensure_live(self) -> None:
        if self._str is None:
            raise ReleasedError("text buffer has been packed or released")

    def _content_length(self) -> int:
        return self._str.index(TERMINATOR)

    def _ensure_capacity(self, extra: int) -> None:
        """Grow the block when `extra` more slots would not fit."""
        size = len(self._str)
        if size - self._used <= extra:
            new_size = size + extra + self._policy.refill_size
            self._str = self._allocator.reallocate(
                self._str, new_size, TERMINATOR
            )
            logger.debug("Text buffer grew %d -> %d slots", size, new_size)

    def _write(self, piece: str) -> None:
        """Concatenate `piece` after the content and re-terminate."""
        start = self._content_length()
        end = start + len(piece)
        self._str[start:end] = piece
        self._str[end] = TERMINATOR

    # -------------------------------------------------------------------------
    # Appends
    # -------------------------------------------------------------------------

    def append_sequence(self, seq: str) -> TextBuffer:
        """
        Append `seq` (up to its first terminator, if it has one).

        Reserves and accounts len(seq) + 1 slots.
        """
        self._ensure_live()
        piece = _terminated(seq)
        n = len(piece) + 1

        self._ensure_capacity(n)
        self._used += n
        self._write(piece)
        return self

    def append_bounded(self, seq: str, count: int) -> TextBuffer:
        """
        Append at most `count` characters of `seq`.

        Reserves and accounts count + 1 slots even when `seq` is shorter.
        """
        self._ensure_live()
        if not isinstance(count, int) or isinstance(count, bool):
            raise TypeError(f"count must be an int, got {type(count).__name__}")
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        piece = _terminated(seq)[:count]

        self._ensure_capacity(count + 1)
        self._used += count + 1
        self._write(piece)
        return self

    def append_char(self, c: str) -> TextBuffer:
        """
        Write `c` at slot `used` and account one slot.

        The slot after it is terminated, so a buffer built only from
        characters grows its text one character at a time.
        """
        self._ensure_live()
        if not isinstance(c, str) or len(c) != 1:
            raise ValueError(f"expected a single character, got {c!r}")

        self._ensure_capacity(2)
        self._str[self._used] = c
        self._str[self._used + 1] = TERMINATOR
        self._used += 1
        return self

    # -------------------------------------------------------------------------
    # Finishing
    # -------------------------------------------------------------------------

    def pack(self) -> PackedText:
        """
        Convert the content into a right-sized PackedText and consume the buffer.

        Raises:
            AllocationError: If the packed copy cannot be allocated. The
                buffer is left intact so the caller may retry or release.
        """
        self._ensure_live()
        length = self._content_length()
        block = self._allocator.allocate(length + 1, TERMINATOR)
        block[:length] = self._str[:length]

        packed = PackedText("".join(block))
        self._allocator.release(block)
        logger.debug(
            "Packed text buffer: %d chars from %d slots",
            length, len(self._str),
        )
        self.release()
        return packed

    def release(self) -> None:
        """Free the backing block, discarding the content."""
        self._ensure_live()
        self._allocator.release(self._str)
        self._str = None
        self._used = 0

    # -------------------------------------------------------------------------
    # Python protocol
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        self._ensure_live()
        return self._content_length()

    def __str__(self) -> str:
        return self.text

    def __enter__(self) -> TextBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.released:
            self.release()

    def __repr__(self) -> str:
        if self.released:
            return "TextBuffer(released)"
        return (
            f"TextBuffer(text={self.text!r}, used={self._used}, "
            f"capacity={len(self._str)})"
        )


# =============================================================================
# FUNCTIONAL INTERFACE
# =============================================================================

def _attempt(action: str, call, *args) -> AllocResult:
    try:
        return AllocResult.success(call(*args))
    except AllocationError as e:
        logger.warning("Text buffer %s failed: %s", action, e)
        return AllocResult.failure(e)


def varstr_init(
    policy: Optional[GrowthPolicy] = None,
    allocator: Optional[Allocator] = None,
) -> AllocResult[TextBuffer]:
    """Create a text buffer, reporting allocation failure as a result."""
    return _attempt("creation", TextBuffer, policy, allocator)


def varstr_cat(vs: TextBuffer, s: str) -> AllocResult[TextBuffer]:
    """Append a whole sequence."""
    return _attempt("append", vs.append_sequence, s)


def varstr_ncat(vs: TextBuffer, s: str, count: int) -> AllocResult[TextBuffer]:
    """Append at most `count` characters of `s`."""
    return _attempt("bounded append", vs.append_bounded, s, count)


def varstr_pushc(vs: TextBuffer, c: str) -> AllocResult[TextBuffer]:
    """Append one character."""
    return _attempt("character append", vs.append_char, c)


def varstr_pack(vs: TextBuffer) -> AllocResult[PackedText]:
    """Pack `vs` into a PackedText; on failure `vs` is still usable."""
    return _attempt("pack", vs.pack)


def varstr_free(vs: TextBuffer) -> None:
    """Release `vs`, discarding its content."""
    vs.release()
