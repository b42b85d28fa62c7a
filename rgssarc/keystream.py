from __future__ import annotations

from typing import List, Tuple

from .constants import DATA_MULTIPLIER, INCREMENT, TABLE_MULTIPLIER, U32_MASK


def advance(state: int, multiplier: int = DATA_MULTIPLIER) -> Tuple[int, int]:
    """Step the linear-congruential generator once.

    Returns ``(old_state, new_state)``. Arithmetic wraps modulo 2**32.
    """
    return state, (state * multiplier + INCREMENT) & U32_MASK


def advance_table(seed: int) -> int:
    """Derive the v3 table magic from the seed word stored after the header."""
    return advance(seed, TABLE_MULTIPLIER)[1]


def keystream_words(state: int, count: int) -> Tuple[List[int], int]:
    words = []
    for _ in range(count):
        words.append(state)
        state = (state * DATA_MULTIPLIER + INCREMENT) & U32_MASK
    return words, state


class KeyStream:
    """Stateful 7/3 generator emitting one 32-bit word per call."""

    def __init__(self, state: int):
        self.state = state & U32_MASK

    def next_word(self) -> int:
        word, self.state = advance(self.state)
        return word

    def next_byte(self) -> int:
        # Legacy names consume a whole word per byte and keep only the low byte.
        return self.next_word() & 0xFF
