"""Random digit assignment for locking a board.

This is the only non-deterministic step in a board's life. It runs once,
when the board goes from open to locked, and its result is stored on the
board; payouts never reshuffle.
"""

import random
from typing import Optional, Sequence

from .constants import DIGITS

_system_random = random.SystemRandom()


def shuffle_digits(rng: Optional[random.Random] = None) -> list[int]:
    """
    Fisher-Yates shuffle of 0-9.

    Args:
        rng: Random source (default: OS entropy). Pass a seeded
            random.Random for reproducible tests.

    Returns:
        A new permutation of 0-9
    """
    rng = rng or _system_random
    shuffled = list(DIGITS)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def assign_digits(rng: Optional[random.Random] = None) -> tuple[list[int], list[int]]:
    """Draw independent row and column permutations."""
    return shuffle_digits(rng), shuffle_digits(rng)


def is_digit_permutation(digits: Optional[Sequence[int]]) -> bool:
    """Check that digits contain each of 0-9 exactly once."""
    return digits is not None and sorted(digits) == list(DIGITS)
