"""
Hand evaluation: total calculation, ace reduction, and hand shapes.

Every ace is first counted as 11; aces are then converted to 1 one at a time
while the total exceeds 21. A hand is soft when an ace still counts 11.

Solvers never need card identity beyond (card count, total, soft, blackjack),
so HandShape is the canonical key for all memo tables. add_points() advances a
shape by one drawn card without rebuilding it from cards.
"""

from __future__ import annotations

from typing import NamedTuple

from .cards import RANK_ACE, RANK_POINTS, TEN_VALUE_RANKS


class HandShape(NamedTuple):
    """Canonical description of a hand: everything a solver may depend on."""

    n_cards: int
    total: int
    soft: bool
    blackjack: bool

    @property
    def is_bust(self) -> bool:
        return is_bust(self.total)


EMPTY_HAND = HandShape(0, 0, False, False)


def hand_value(cards: tuple[int, ...]) -> tuple[int, bool]:
    """Return (total, soft) for a hand of rank indices.

    Examples:
        >>> hand_value((0, 0, 8))     # A-A-9: 31 → 21 with one ace still 11
        (21, True)
        >>> hand_value((9, 6))        # 10-7
        (17, False)
        >>> hand_value((0, 5, 9))     # A-6-10: ace forced down
        (17, False)
    """
    total = 0
    aces = 0
    for rank in cards:
        total += RANK_POINTS[rank]
        if rank == RANK_ACE:
            aces += 1

    while is_bust(total) and aces > 0:
        total -= 10
        aces -= 1

    return total, aces > 0


def is_blackjack(cards: tuple[int, ...]) -> bool:
    """Return True for a two-card ace + ten-valued hand.

    Examples:
        >>> is_blackjack((0, 12))     # A-K
        True
        >>> is_blackjack((6, 3, 0))   # 7-4-A: 21 in three cards
        False
    """
    if len(cards) != 2:
        return False
    has_ace = RANK_ACE in cards
    has_ten = any(rank in TEN_VALUE_RANKS for rank in cards)
    return has_ace and has_ten


def is_bust(total: int) -> bool:
    """Return True if a total exceeds 21 (bust)."""
    return total > 21


def hand_shape(cards: tuple[int, ...]) -> HandShape:
    """Build the canonical HandShape for a hand of rank indices."""
    shape = EMPTY_HAND
    for rank in cards:
        shape = add_points(shape, RANK_POINTS[rank])
    return shape


def add_points(shape: HandShape, points: int) -> HandShape:
    """Advance a shape by one card worth ``points`` (11 for an ace).

    At most one ace can still count 11 in a non-bust hand, so the soft flag is
    enough to replay the ace reduction.

    Examples:
        >>> add_points(HandShape(1, 11, True, False), 10)
        HandShape(n_cards=2, total=21, soft=True, blackjack=True)
        >>> add_points(HandShape(2, 17, True, False), 9)
        HandShape(n_cards=3, total=16, soft=False, blackjack=False)
    """
    aces = (1 if shape.soft else 0) + (1 if points == 11 else 0)
    total = shape.total + points
    while is_bust(total) and aces > 0:
        total -= 10
        aces -= 1
    n_cards = shape.n_cards + 1
    return HandShape(n_cards, total, aces > 0, n_cards == 2 and total == 21)
