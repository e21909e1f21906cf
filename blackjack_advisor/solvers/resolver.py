"""
Closed-form settlement of a finished player hand against a dealer distribution.

resolve_hand() is the only place a standing hand is scored against a
DealerDistribution. Per-outcome payoffs come from engine.rules.settle(), the
same function that settles realized hands in simulation.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from blackjack_advisor.engine.hand import HandShape
from blackjack_advisor.engine.rules import settle
from blackjack_advisor.solvers.dealer import DealerDistribution


@dataclass(frozen=True)
class EvalResult:
    """EV and outcome probabilities of one action.

    Attributes:
        ev:        Expected profit in units of the initial stake.
        win_prob:  P(action ends in a net win).
        loss_prob: P(action ends in a net loss).

    The push probability is implied (1 − win − loss) and never stored.
    An EV of −∞ marks an action that could not be evaluated.
    """

    ev: float
    win_prob: float
    loss_prob: float

    @property
    def push_prob(self) -> float:
        return max(0.0, 1.0 - self.win_prob - self.loss_prob)

    @property
    def is_available(self) -> bool:
        return not math.isinf(self.ev)

    @classmethod
    def unavailable(cls) -> "EvalResult":
        return cls(ev=-math.inf, win_prob=0.0, loss_prob=0.0)


def weighted_average(branches: Iterable[tuple[float, EvalResult]]) -> EvalResult:
    """Probability-weighted average of branch results.

    Args:
        branches: (probability, EvalResult) pairs; probabilities sum to 1.
    """
    ev = win = loss = 0.0
    for prob, result in branches:
        ev += prob * result.ev
        win += prob * result.win_prob
        loss += prob * result.loss_prob
    return EvalResult(ev, win, loss)


def resolve_hand(
    shape: HandShape,
    stake: float,
    blackjack_eligible: bool,
    dealer: DealerDistribution,
    blackjack_payout: float = 1.5,
) -> EvalResult:
    """Settle a standing hand against every dealer outcome.

    Args:
        shape:              Final player hand.
        stake:              1 for a normal hand, 2 for a doubled one.
        blackjack_eligible: True only for the original two-card hand.
        dealer:             Dealer outcome distribution.
        blackjack_payout:   Ratio paid on an eligible natural.

    Returns:
        EvalResult. Bust is a certain full-stake loss; otherwise every dealer
        outcome is settled and its probability added to win or loss.

    Examples:
        >>> certain_bust = DealerDistribution(blackjack=0.0, bust=1.0)
        >>> resolve_hand(HandShape(2, 12, False, False), 1.0, True, certain_bust)
        EvalResult(ev=1.0, win_prob=1.0, loss_prob=0.0)
    """
    if shape.total > 21:
        return EvalResult(-stake, 0.0, 1.0)

    player_blackjack = blackjack_eligible and shape.blackjack
    ev = win = loss = 0.0
    for dealer_total, dealer_blackjack, prob in dealer.outcomes():
        payoff = settle(
            shape.total,
            player_blackjack,
            dealer_total,
            dealer_blackjack,
            stake,
            blackjack_payout,
        )
        ev += prob * payoff
        if payoff > 0:
            win += prob
        elif payoff < 0:
            loss += prob

    return EvalResult(ev, win, loss)
