"""Hi-Lo card counting: running count, decks remaining, and true count."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from .cards import HI_LO_TAGS
from .shoe import cards_remaining


def running_count(cards: Iterable[int]) -> int:
    """Sum the Hi-Lo tags of every observed card.

    Examples:
        >>> running_count([1, 2, 9, 0])   # 2, 3, 10, A
        0
        >>> running_count([4, 5])         # 5, 6
        2
    """
    return sum(HI_LO_TAGS[rank] for rank in cards)


def decks_remaining(shoe: np.ndarray) -> float:
    """Return the number of decks left in the shoe (cards remaining / 52)."""
    return cards_remaining(shoe) / 52


def true_count(running: int, remaining_decks: float) -> float:
    """Normalize a running count by decks remaining; 0 for an empty shoe.

    Examples:
        >>> true_count(6, 3.0)
        2.0
        >>> true_count(4, 0)
        0.0
    """
    if remaining_decks <= 0:
        return 0.0
    return running / remaining_decks
