"""
Rank constants, encoding, and human-readable I/O helpers.

Rank encoding (integer 0–12):
    0=A, 1=2, 2=3, ..., 8=9, 9=10, 10=J, 11=Q, 12=K

Suits never matter in blackjack, so a card is just its rank index.
Ranks additionally collapse to 10 value classes (A, 2, ..., 9, T) because the
dealer's forced policy and every total depend on points only:
    value_index 0=A, 1=2, ..., 8=9, 9=T

String representations are used exclusively at I/O boundaries.
"""

from __future__ import annotations

RANK_NAMES: list[str] = ['A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K']

NUM_RANKS: int = 13
NUM_VALUES: int = 10

# Rank index for special ranks
RANK_ACE: int = 0
RANK_TEN: int = 9
RANK_JACK: int = 10
RANK_QUEEN: int = 11
RANK_KING: int = 12

# Set of rank indices that count as 10 points
TEN_VALUE_RANKS: frozenset[int] = frozenset({RANK_TEN, RANK_JACK, RANK_QUEEN, RANK_KING})

# Point value by rank index. Ace is 11 here; hand.py reduces it to 1 as needed.
RANK_POINTS: list[int] = [11, 2, 3, 4, 5, 6, 7, 8, 9, 10, 10, 10, 10]

# Value class by rank index (ten-valued ranks share class 9).
RANK_TO_VALUE: list[int] = [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 9, 9, 9]

# Point value by value class.
VALUE_POINTS: list[int] = [11, 2, 3, 4, 5, 6, 7, 8, 9, 10]

# Hi-Lo tags by rank index: +1 for 2–6, 0 for 7–9, −1 for ace and ten-valued.
HI_LO_TAGS: list[int] = [-1, 1, 1, 1, 1, 1, 0, 0, 0, -1, -1, -1, -1]


def rank_points(rank: int) -> int:
    """Return the point value of a rank (ace counts 11).

    Examples:
        >>> rank_points(RANK_ACE)
        11
        >>> rank_points(RANK_QUEEN)
        10
        >>> rank_points(6)   # the 7
        7
    """
    return RANK_POINTS[rank]


def rank_value_class(rank: int) -> int:
    """Return the value class (0–9) of a rank.

    Examples:
        >>> rank_value_class(RANK_KING)
        9
        >>> rank_value_class(1)   # the 2
        1
    """
    return RANK_TO_VALUE[rank]


def rank_to_str(rank: int) -> str:
    """Convert a rank index to its display name.

    Examples:
        >>> rank_to_str(0)
        'A'
        >>> rank_to_str(9)
        '10'
    """
    return RANK_NAMES[rank]


def str_to_rank(s: str) -> int:
    """Parse a rank name into its integer encoding.

    Accepts 'A', '2'–'10', 'J', 'Q', 'K' (case-insensitive, 'T' for ten).

    Raises:
        ValueError: If the name is not a rank.

    Examples:
        >>> str_to_rank('A')
        0
        >>> str_to_rank('10')
        9
        >>> str_to_rank('k')
        12
    """
    name = str(s).strip().upper()
    if name == 'T':
        name = '10'
    try:
        return RANK_NAMES.index(name)
    except ValueError:
        raise ValueError(f"Unknown card rank: {s!r}") from None


def hand_to_str(cards: tuple[int, ...]) -> str:
    """Convert a hand (tuple of rank ints) to a human-readable string.

    Examples:
        >>> hand_to_str((0, 12))
        'A K'
    """
    return ' '.join(rank_to_str(c) for c in cards)
