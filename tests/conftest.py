"""
Shared pytest fixtures for blackjack advisor tests.

Provides convenience wrappers around str_to_rank for building known hands.
"""

from __future__ import annotations

import numpy as np
import pytest

from blackjack_advisor.engine.cards import str_to_rank
from blackjack_advisor.engine.shoe import create_shoe


def hand(*rank_strs: str) -> tuple[int, ...]:
    """Build a hand tuple from rank names.

    Examples:
        >>> hand('A', 'K')
        (0, 12)
        >>> hand('7', '7', '7')
        (6, 6, 6)
    """
    return tuple(str_to_rank(s) for s in rank_strs)


def only_values(**counts: int) -> tuple[int, ...]:
    """Build a value composition from keyword counts (A, two..nine, T).

    Examples:
        >>> only_values(T=3, nine=1)
        (0, 0, 0, 0, 0, 0, 0, 0, 1, 3)
    """
    names = ('A', 'two', 'three', 'four', 'five', 'six', 'seven', 'eight', 'nine', 'T')
    return tuple(counts.get(name, 0) for name in names)


@pytest.fixture
def fresh_shoe() -> np.ndarray:
    """Return a fresh six-deck shoe."""
    return create_shoe(6)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible simulation tests."""
    return np.random.default_rng(12345)


@pytest.fixture
def h():
    """Expose the hand() helper as a fixture for convenience."""
    return hand
