"""
Late surrender EV from the dealer-blackjack probability alone.

Surrender is modelled as offered before the peek, so a dealer natural still
costs the full stake: EV = −0.5 − 0.5 × P(dealer blackjack), always within
[−1.0, −0.5]. loss_prob counts only the dealer-natural case; the controlled
half-unit forfeit is not a loss for risk scoring.
"""

from __future__ import annotations

from blackjack_advisor.solvers.dealer import DealerDistribution
from blackjack_advisor.solvers.resolver import EvalResult


def evaluate_surrender(dealer: DealerDistribution) -> EvalResult:
    """Return the surrender EvalResult against the given dealer distribution.

    Examples:
        >>> evaluate_surrender(DealerDistribution(blackjack=0.0, bust=1.0))
        EvalResult(ev=-0.5, win_prob=0.0, loss_prob=0.0)
        >>> evaluate_surrender(DealerDistribution(blackjack=1.0, bust=0.0))
        EvalResult(ev=-1.0, win_prob=0.0, loss_prob=1.0)
    """
    p_blackjack = min(1.0, max(0.0, dealer.blackjack))
    return EvalResult(ev=-0.5 - 0.5 * p_blackjack, win_prob=0.0, loss_prob=p_blackjack)
