"""
Monte Carlo play-out of realized hands with adaptive stopping.

Used by the split evaluator when the analytic bound cannot rule a split out.
A trial is any callable returning the profit of one realized round, or None
when the shoe ran out mid-round. simulate_adaptive() runs trials until the
95% confidence half-width of the mean drops under a target, or a cap is hit.

Key implementation notes:
    - Mean and variance are tracked with Welford's streaming update, so no
      per-trial payout array is kept.
    - The stopping rule is only checked every ``batch`` completed trials and
      never before ``min_trials``.
    - Realized hands are settled with engine.rules.settle_hand(), the same
      payoff rule the distribution-based resolver uses.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from blackjack_advisor.engine.hand import hand_value, is_bust
from blackjack_advisor.engine.rules import Action
from blackjack_advisor.engine.shoe import draw_card
from blackjack_advisor.solvers.dealer import dealer_stands

Z_95: float = 1.96

PlayerPolicy = Callable[[tuple[int, ...], bool], Action]
"""(player_cards, can_double) → Action chosen at a decision point."""

Trial = Callable[[], float | None]


# ─── Result type ──────────────────────────────────────────────────────────────


@dataclass
class SimulationResult:
    """Aggregate statistics from an adaptive simulation run.

    Attributes:
        n_trials:   Completed trials (attempts that exhausted the shoe excluded).
        n_attempts: Trials attempted.
        mean_ev:    Mean profit per trial in units.
        std_ev:     Sample standard deviation of per-trial profit.
        half_width: 95% confidence half-width of mean_ev (inf below 2 trials).
        n_wins:     Trials with profit > 0.
        n_losses:   Trials with profit < 0.
        n_pushes:   Trials with profit == 0.
        converged:  True if the run stopped on the half-width target.
    """

    n_trials: int
    n_attempts: int
    mean_ev: float
    std_ev: float
    half_width: float
    n_wins: int
    n_losses: int
    n_pushes: int
    converged: bool = False

    @property
    def ci_95_low(self) -> float:
        return self.mean_ev - self.half_width

    @property
    def ci_95_high(self) -> float:
        return self.mean_ev + self.half_width

    @property
    def win_rate(self) -> float:
        return self.n_wins / self.n_trials if self.n_trials else 0.0

    @property
    def loss_rate(self) -> float:
        return self.n_losses / self.n_trials if self.n_trials else 0.0

    def __str__(self) -> str:
        sign = "+" if self.mean_ev >= 0 else ""
        return (
            f"Trials: {self.n_trials:,} | "
            f"EV: {sign}{self.mean_ev:.4f} | "
            f"95% CI: [{self.ci_95_low:.4f}, {self.ci_95_high:.4f}] | "
            f"Converged: {'yes' if self.converged else 'no'}"
        )


# ─── Streaming statistics ─────────────────────────────────────────────────────


class RunningStats:
    """Welford running mean / sum of squared deviations."""

    def __init__(self) -> None:
        self.n = 0
        self.mean = 0.0
        self.m2 = 0.0

    def push(self, x: float) -> None:
        self.n += 1
        delta = x - self.mean
        self.mean += delta / self.n
        self.m2 += delta * (x - self.mean)

    @property
    def variance(self) -> float:
        """Sample variance (n − 1 denominator); 0 below two samples."""
        if self.n < 2:
            return 0.0
        return self.m2 / (self.n - 1)

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def half_width(self, z: float = Z_95) -> float:
        """Confidence half-width of the mean; inf below two samples."""
        if self.n < 2:
            return math.inf
        return z * self.std / math.sqrt(self.n)


# ─── Realized play ────────────────────────────────────────────────────────────


def play_dealer(
    dealer_cards: tuple[int, ...],
    shoe: np.ndarray,
    rng: np.random.Generator,
    dealer_hits_soft17: bool,
) -> tuple[int, ...] | None:
    """Draw the dealer's hand to completion under the soft-17 rule.

    Returns:
        Final dealer hand, or None if the shoe ran out.
    """
    cards = list(dealer_cards)
    while True:
        total, soft = hand_value(tuple(cards))
        if is_bust(total) or dealer_stands(total, soft, dealer_hits_soft17):
            return tuple(cards)
        card = draw_card(shoe, rng)
        if card is None:
            return None
        cards.append(card)


def play_hand_with_policy(
    initial_cards: tuple[int, ...],
    shoe: np.ndarray,
    rng: np.random.Generator,
    policy: PlayerPolicy,
    *,
    can_double: bool,
    can_hit: bool = True,
) -> tuple[tuple[int, ...], float] | None:
    """Play one player hand to completion, asking ``policy`` at each decision.

    Args:
        initial_cards: Starting hand (typically two cards).
        shoe:          Mutable shoe; drawn cards are removed.
        rng:           numpy random Generator.
        policy:        Decision callable; STAND, HIT, or DOUBLE.
        can_double:    True if the first decision may double.
        can_hit:       False for hands that must stand as dealt (split aces).

    Returns:
        (final_cards, stake), or None if the shoe ran out.
    """
    cards = list(initial_cards)
    double_ok = can_double
    while True:
        total, _ = hand_value(tuple(cards))
        if total >= 21 or not can_hit:
            return tuple(cards), 1.0

        action = policy(tuple(cards), double_ok)
        if action == Action.STAND:
            return tuple(cards), 1.0

        card = draw_card(shoe, rng)
        if card is None:
            return None
        cards.append(card)

        if action == Action.DOUBLE:
            return tuple(cards), 2.0
        double_ok = False


# ─── Adaptive loop ────────────────────────────────────────────────────────────


def simulate_adaptive(
    trial: Trial,
    max_trials: int,
    *,
    min_trials: int = 200,
    batch: int = 25,
    target_half_width: float = 0.05,
) -> SimulationResult:
    """Run trials until the mean is pinned down or the cap is reached.

    Args:
        trial:             Callable returning one trial's profit, or None.
        max_trials:        Cap on attempted trials.
        min_trials:        Completed trials required before stopping early.
        batch:             Completed trials between stopping-rule checks.
        target_half_width: Stop once the 95% half-width falls below this.

    Returns:
        SimulationResult. With no completed trials mean_ev is −inf.
    """
    stats = RunningStats()
    n_wins = n_losses = n_pushes = 0
    attempts = 0
    converged = False

    while attempts < max_trials:
        attempts += 1
        profit = trial()
        if profit is None:
            continue

        stats.push(profit)
        if profit > 0:
            n_wins += 1
        elif profit < 0:
            n_losses += 1
        else:
            n_pushes += 1

        if (
            stats.n >= min_trials
            and stats.n % batch == 0
            and stats.half_width() < target_half_width
        ):
            converged = True
            break

    return SimulationResult(
        n_trials=stats.n,
        n_attempts=attempts,
        mean_ev=stats.mean if stats.n else -math.inf,
        std_ev=stats.std,
        half_width=stats.half_width(),
        n_wins=n_wins,
        n_losses=n_losses,
        n_pushes=n_pushes,
        converged=converged,
    )
