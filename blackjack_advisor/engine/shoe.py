"""
Shoe composition and card dealing operations.

The shoe is a numpy int32 array of length 13: the remaining count per rank
index (see cards.py). A fresh shoe holds 4 × decks of every rank.

Exact solver paths never touch the array directly; they work on the immutable
per-value-class tuple returned by value_composition(), which doubles as the
composition part of every memo key.
"""

from __future__ import annotations

import numpy as np

from .cards import NUM_RANKS, NUM_VALUES, rank_value_class


def create_shoe(decks: int) -> np.ndarray:
    """Create a fresh shoe of the given number of decks.

    Returns:
        np.ndarray: int32 array of shape (13,), every entry 4 × decks.

    Examples:
        >>> shoe = create_shoe(6)
        >>> int(shoe.sum())
        312
    """
    return np.full(NUM_RANKS, 4 * int(decks), dtype=np.int32)


def cards_remaining(shoe: np.ndarray) -> int:
    """Return the number of cards left in the shoe.

    Examples:
        >>> cards_remaining(create_shoe(1))
        52
    """
    return int(shoe.sum())


def remove_card(shoe: np.ndarray, rank: int) -> bool:
    """Remove one card of the given rank.

    Args:
        shoe: Mutable shoe array; modified in place on success.
        rank: Rank index (0–12).

    Returns:
        False (shoe untouched) if no card of that rank remains, else True.

    Examples:
        >>> shoe = create_shoe(1)
        >>> remove_card(shoe, 0)
        True
        >>> int(shoe[0])
        3
    """
    if shoe[rank] <= 0:
        return False
    shoe[rank] -= 1
    return True


def draw_card(shoe: np.ndarray, rng: np.random.Generator) -> int | None:
    """Draw one card with probability proportional to the remaining counts.

    Args:
        shoe: Mutable shoe array; the drawn card is removed.
        rng:  numpy random Generator.

    Returns:
        The rank index drawn, or None if the shoe is empty.
    """
    total = cards_remaining(shoe)
    if total <= 0:
        return None
    pick = int(rng.integers(total))
    rank = int(np.searchsorted(np.cumsum(shoe), pick, side='right'))
    shoe[rank] -= 1
    return rank


def build_shoe_from_cards(decks: int, *hands: tuple[int, ...]) -> np.ndarray | None:
    """Create a shoe with every card of the given hands already removed.

    Returns:
        The shoe, or None if some rank is removed more often than it exists.

    Examples:
        >>> shoe = build_shoe_from_cards(1, (9, 6), (9,))
        >>> cards_remaining(shoe)
        49
        >>> build_shoe_from_cards(1, (0, 0, 0, 0, 0)) is None
        True
    """
    shoe = create_shoe(decks)
    for hand in hands:
        for rank in hand:
            if not remove_card(shoe, rank):
                return None
    return shoe


def value_composition(shoe: np.ndarray) -> tuple[int, ...]:
    """Collapse a shoe to remaining counts per value class (A, 2, ..., 9, T).

    Examples:
        >>> value_composition(create_shoe(1))
        (4, 4, 4, 4, 4, 4, 4, 4, 4, 16)
    """
    counts = [0] * NUM_VALUES
    for rank, count in enumerate(shoe.tolist()):
        counts[rank_value_class(rank)] += count
    return tuple(counts)
