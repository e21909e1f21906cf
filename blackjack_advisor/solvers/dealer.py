"""
Exact dealer outcome distribution for a given upcard and shoe composition.

Fixed dealer strategy: hit ≤16, stand 18+, stand hard 17, and stand or hit
soft 17 according to the table rule.

The hole card and every later hit are enumerated exactly. Each branch is
weighted by its draw probability from the composition at that node, and each
branch continues with a private composition that has its card removed
(without replacement, unlike the infinite-deck approximation).

State abstracted as (HandShape, value composition): card identity beyond the
shape never changes the dealer's forced play, and suits or which ten-valued
rank was drawn never change any probability.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from blackjack_advisor.engine.cards import VALUE_POINTS
from blackjack_advisor.engine.hand import HandShape, add_points, hand_shape

BLACKJACK: str = "blackjack"
BUST: str = "bust"


# ─── DealerDistribution ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class DealerDistribution:
    """Immutable probability mass over the dealer's final outcomes.

    Attributes:
        blackjack: P(dealer natural).
        bust:      P(dealer busts).
        totals:    {final total: probability} for standing outcomes. Keys are
                   17–21, except in the degenerate exhausted-shoe case where the
                   dealer is frozen on a lower total.
    """

    blackjack: float
    bust: float
    totals: Mapping[int, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "totals", MappingProxyType(dict(self.totals)))

    def outcomes(self) -> Iterator[tuple[int, bool, float]]:
        """Yield (dealer_total, dealer_blackjack, probability) for every outcome.

        Bust is reported with total 22; the blackjack total is 21.
        """
        if self.blackjack > 0.0:
            yield 21, True, self.blackjack
        if self.bust > 0.0:
            yield 22, False, self.bust
        for total in sorted(self.totals):
            prob = self.totals[total]
            if prob > 0.0:
                yield total, False, prob

    def probability_sum(self) -> float:
        return self.blackjack + self.bust + sum(self.totals.values())

    @classmethod
    def from_outcomes(cls, outcomes: Mapping) -> "DealerDistribution":
        """Build from a {BLACKJACK | BUST | total: probability} mapping."""
        totals = {k: v for k, v in outcomes.items() if k not in (BLACKJACK, BUST)}
        return cls(
            blackjack=outcomes.get(BLACKJACK, 0.0),
            bust=outcomes.get(BUST, 0.0),
            totals=totals,
        )


# ─── Dealer policy ────────────────────────────────────────────────────────────


def dealer_stands(total: int, soft: bool, dealer_hits_soft17: bool) -> bool:
    """Return True if the dealer's forced policy stands on this total.

    Examples:
        >>> dealer_stands(17, True, dealer_hits_soft17=True)
        False
        >>> dealer_stands(17, True, dealer_hits_soft17=False)
        True
        >>> dealer_stands(16, False, dealer_hits_soft17=False)
        False
    """
    if total > 17:
        return True
    if total == 17:
        return not soft or not dealer_hits_soft17
    return False


# ─── Recursive enumeration ────────────────────────────────────────────────────


def _dealer_play_recursive(
    shape: HandShape,
    composition: tuple[int, ...],
    dealer_hits_soft17: bool,
    memo: dict,
) -> dict:
    """Recursively compute the dealer's final outcome distribution.

    Args:
        shape:              Dealer hand so far.
        composition:        Remaining count per value class at this node.
        dealer_hits_soft17: Soft-17 rule.
        memo:               Cache shared within one top-level call.

    Returns:
        Dict mapping outcome key to probability. Blackjack and bust are keyed
        by the strings BLACKJACK / BUST; standing totals by integers. All
        probabilities sum to 1.0. Returned dicts are shared via the memo and
        must not be mutated.
    """
    key = (shape, composition, dealer_hits_soft17)
    if key in memo:
        return memo[key]

    # Terminal: natural
    if shape.blackjack:
        result: dict = {BLACKJACK: 1.0}
        memo[key] = result
        return result

    # Terminal: bust
    if shape.total > 21:
        result = {BUST: 1.0}
        memo[key] = result
        return result

    # Terminal: dealer policy stands
    if dealer_stands(shape.total, shape.soft, dealer_hits_soft17):
        result = {shape.total: 1.0}
        memo[key] = result
        return result

    remaining = sum(composition)

    # Degenerate: the shoe ran out before the dealer could finish
    if remaining == 0:
        result = {shape.total: 1.0}
        memo[key] = result
        return result

    result = {}
    for value, count in enumerate(composition):
        if count == 0:
            continue
        prob = count / remaining
        child_composition = composition[:value] + (count - 1,) + composition[value + 1:]
        child = add_points(shape, VALUE_POINTS[value])
        sub_dist = _dealer_play_recursive(child, child_composition, dealer_hits_soft17, memo)
        for outcome, sub_prob in sub_dist.items():
            result[outcome] = result.get(outcome, 0.0) + prob * sub_prob

    memo[key] = result
    return result


def compute_dealer_distribution(
    upcard_rank: int,
    composition: tuple[int, ...],
    dealer_hits_soft17: bool,
    memo: dict | None = None,
) -> DealerDistribution:
    """Compute the exact dealer outcome distribution for a given upcard.

    Args:
        upcard_rank:        Rank index (0–12) of the dealer's visible card.
        composition:        Remaining count per value class with every visible
                            card (including the upcard) already removed.
        dealer_hits_soft17: True if the dealer hits soft 17.
        memo:               Optional cache to share between calls on related
                            compositions; keys include the composition, so
                            sharing never changes a result.

    Returns:
        DealerDistribution whose probabilities sum to 1.0.
    """
    if memo is None:
        memo = {}
    upcard = hand_shape((upcard_rank,))
    outcomes = _dealer_play_recursive(upcard, tuple(composition), dealer_hits_soft17, memo)
    return DealerDistribution.from_outcomes(outcomes)
