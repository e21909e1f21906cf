"""
Split EV: analytic bound first, adaptive simulation only when it matters.

Step 1 (analytic): for every rank the first split hand can receive, build the
dealer distribution and a fresh HandSolver for the post-draw composition, solve
the two-card hand once, and average. Both hands get the same value, so the
split EV is twice the per-hand EV. A single re-split is folded in: where the
re-draw pairs up again and the rules allow it, that branch takes the better of
playing on and splitting into two more hands at the per-hand value.

Step 2: if the analytic EV plus SPLIT_REFINE_MARGIN is still below the best
non-split action, the ranking cannot change and the analytic value is used.

Step 3 (simulation): otherwise whole rounds are simulated. Each hand is played
with the solver's exact recommendation at every decision point, computed on
the composition the player can see (the dealer hole card stays unknown), and
both hands are settled against the realized dealer hand.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import numpy as np

from blackjack_advisor.analysis.simulator import (
    play_dealer,
    play_hand_with_policy,
    simulate_adaptive,
)
from blackjack_advisor.engine.cards import RANK_ACE, VALUE_POINTS, rank_value_class
from blackjack_advisor.engine.hand import add_points, hand_shape
from blackjack_advisor.engine.rules import Action, Rules, settle_hand
from blackjack_advisor.engine.shoe import cards_remaining, draw_card, value_composition
from blackjack_advisor.solvers.dealer import compute_dealer_distribution
from blackjack_advisor.solvers.hand_solver import HandSolver, NodeBudget
from blackjack_advisor.solvers.resolver import EvalResult, weighted_average

logger = logging.getLogger(__name__)

# ─── Constants ────────────────────────────────────────────────────────────────

SPLIT_REFINE_MARGIN: float = 0.15
"""Analytic EV gap below the best alternative that skips simulation."""

TRIALS_HINT_SCALE: int = 10
"""Trials hints are denominated in units ~10× the trials actually run."""

MIN_SPLIT_TRIALS: int = 100
MAX_SPLIT_TRIALS: int = 2000

MIN_TRIALS_BEFORE_STOP: int = 200
STOP_CHECK_BATCH: int = 25
TARGET_HALF_WIDTH: float = 0.05

DEALER_MEMO_LIMIT: int = 250_000
"""Entries after which the shared dealer memo is dropped and rebuilt."""

METHOD_ANALYTIC: str = "analytic"
METHOD_SIMULATION: str = "simulation"


@dataclass(frozen=True)
class SplitEstimate:
    """Split EV together with how it was obtained.

    Attributes:
        result:      EV / win / loss of splitting (EV covers both hands).
        method:      METHOD_ANALYTIC or METHOD_SIMULATION.
        analytic_ev: The step-1 analytic EV, reported for both methods.
        trials:      Completed simulation trials (0 for analytic).
        half_width:  95% confidence half-width of a simulated EV (0 for analytic).
    """

    result: EvalResult
    method: str
    analytic_ev: float
    trials: int = 0
    half_width: float = 0.0


def split_trial_count(trials_hint: int) -> int:
    """Scale a trials hint down and clamp it to the simulation range.

    Examples:
        >>> split_trial_count(3000)
        300
        >>> split_trial_count(50)
        100
        >>> split_trial_count(10**9)
        2000
    """
    return min(MAX_SPLIT_TRIALS, max(MIN_SPLIT_TRIALS, int(trials_hint) // TRIALS_HINT_SCALE))


def split_hand_permissions(pair_rank: int, rules: Rules) -> tuple[bool, bool]:
    """Return (can_hit, can_double) for a freshly split hand.

    Split aces that may not be hit take exactly one card, so doubling is off
    for them as well.
    """
    can_hit = pair_rank != RANK_ACE or rules.hit_split_aces
    can_double = can_hit and rules.double_after_split
    return can_hit, can_double


def _with_value(composition: tuple[int, ...], value: int, delta: int) -> tuple[int, ...]:
    return composition[:value] + (composition[value] + delta,) + composition[value + 1:]


# ─── Step 1: analytic bound ───────────────────────────────────────────────────


def analytic_split(
    pair_rank: int,
    upcard_rank: int,
    shoe: np.ndarray,
    rules: Rules,
    dealer_memo: dict | None = None,
) -> tuple[EvalResult, EvalResult]:
    """Analytic split value.

    Args:
        pair_rank:   Rank of the pair being split.
        upcard_rank: Dealer upcard.
        shoe:        Rank counts with every visible card removed.
        rules:       Table rules.
        dealer_memo: Optional dealer memo shared by the per-branch distributions.

    Returns:
        (split, per_hand_base): the split EvalResult for both hands, and the
        per-hand value without re-splitting (used as the re-split benchmark).
    """
    if dealer_memo is None:
        dealer_memo = {}
    total = cards_remaining(shoe)
    if total == 0:
        unavailable = EvalResult.unavailable()
        return unavailable, unavailable

    composition = value_composition(shoe)
    can_hit, das = split_hand_permissions(pair_rank, rules)
    first_card = hand_shape((pair_rank,))

    by_value: dict[int, EvalResult] = {}
    branches: list[tuple[float, int, EvalResult]] = []
    for rank, count in enumerate(shoe.tolist()):
        if count == 0:
            continue
        value = rank_value_class(rank)
        if value not in by_value:
            branch_composition = _with_value(composition, value, -1)
            dealer = compute_dealer_distribution(
                upcard_rank, branch_composition, rules.dealer_hits_soft17, dealer_memo
            )
            solver = HandSolver(dealer, branch_composition, rules)
            shape = add_points(first_card, VALUE_POINTS[value])
            _, by_value[value] = solver.optimal(
                shape,
                can_double=das and rules.allows_double(shape),
                blackjack_eligible=False,
                can_hit=can_hit,
                budget=NodeBudget.for_shape(shape),
            )
        branches.append((count / total, rank, by_value[value]))

    per_hand_base = weighted_average((prob, result) for prob, _, result in branches)
    per_hand = per_hand_base

    if rules.allows_resplit(pair_rank == RANK_ACE):
        resplit = EvalResult(
            2.0 * per_hand_base.ev, per_hand_base.win_prob, per_hand_base.loss_prob
        )
        per_hand = weighted_average(
            (prob, resplit if rank == pair_rank and resplit.ev > result.ev else result)
            for prob, rank, result in branches
        )

    split = EvalResult(2.0 * per_hand.ev, per_hand.win_prob, per_hand.loss_prob)
    return split, per_hand_base


# ─── Step 3: simulation ───────────────────────────────────────────────────────


class _SplitRoundSimulator:
    """Plays complete split rounds from copies of one base shoe."""

    def __init__(
        self,
        pair_rank: int,
        upcard_rank: int,
        shoe: np.ndarray,
        rules: Rules,
        per_hand_base_ev: float,
        rng: np.random.Generator,
        dealer_memo: dict,
    ) -> None:
        self.pair_rank = pair_rank
        self.upcard_rank = upcard_rank
        self.base_shoe = shoe
        self.rules = rules
        self.rng = rng
        self.resplit_ev = 2.0 * per_hand_base_ev
        self.can_hit, self.can_double = split_hand_permissions(pair_rank, rules)
        self.resplit_allowed = rules.allows_resplit(pair_rank == RANK_ACE)
        self.dealer_memo = dealer_memo
        # (visible composition, shape, can_double) → (Action, EvalResult)
        self.decisions: dict = {}

    def _solve(
        self,
        cards: tuple[int, ...],
        can_double: bool,
        shoe: np.ndarray,
        hole_rank: int,
    ) -> tuple[Action, EvalResult]:
        """Exact recommendation on the composition the player can see.

        Every computation gets a fresh solver memo and budget. Results are
        cached by the full visible composition, so a cached answer is the
        answer a fresh computation would give.
        """
        visible = _with_value(value_composition(shoe), rank_value_class(hole_rank), 1)
        shape = hand_shape(cards)
        can_double = can_double and self.rules.allows_double(shape)
        key = (visible, shape, can_double)
        if key in self.decisions:
            return self.decisions[key]

        if len(self.dealer_memo) > DEALER_MEMO_LIMIT:
            self.dealer_memo.clear()
        dealer = compute_dealer_distribution(
            self.upcard_rank, visible, self.rules.dealer_hits_soft17, self.dealer_memo
        )
        solver = HandSolver(dealer, visible, self.rules)
        decision = solver.optimal(
            shape,
            can_double=can_double,
            blackjack_eligible=False,
            can_hit=self.can_hit,
            budget=NodeBudget.for_shape(shape),
        )
        self.decisions[key] = decision
        return decision

    def _prefers_resplit(self, cards: tuple[int, ...], shoe: np.ndarray, hole_rank: int) -> bool:
        _, play_on = self._solve(cards, self.can_double, shoe, hole_rank)
        return self.resplit_ev > play_on.ev

    def __call__(self) -> float | None:
        """Simulate one round; returns total profit of all split hands."""
        shoe = self.base_shoe.copy()
        rng = self.rng

        hole_rank = draw_card(shoe, rng)
        first = draw_card(shoe, rng)
        second = draw_card(shoe, rng)
        if hole_rank is None or first is None or second is None:
            return None

        # (cards, may still be re-split)
        hands: list[tuple[tuple[int, ...], bool]] = [
            ((self.pair_rank, first), True),
            ((self.pair_rank, second), True),
        ]
        finished: list[tuple[tuple[int, ...], float]] = []

        def policy(cards: tuple[int, ...], can_double: bool) -> Action:
            action, _ = self._solve(cards, can_double, shoe, hole_rank)
            return action

        i = 0
        while i < len(hands):
            cards, may_resplit = hands[i]
            if (
                may_resplit
                and self.resplit_allowed
                and cards[1] == self.pair_rank
                and len(hands) < self.rules.max_split_hands
                and self._prefers_resplit(cards, shoe, hole_rank)
            ):
                left = draw_card(shoe, rng)
                right = draw_card(shoe, rng)
                if left is None or right is None:
                    return None
                hands[i] = ((self.pair_rank, left), False)
                hands.append(((self.pair_rank, right), False))
                continue

            played = play_hand_with_policy(
                cards,
                shoe,
                rng,
                policy,
                can_double=self.can_double,
                can_hit=self.can_hit,
            )
            if played is None:
                return None
            finished.append(played)
            i += 1

        dealer_final = play_dealer(
            (self.upcard_rank, hole_rank), shoe, rng, self.rules.dealer_hits_soft17
        )
        if dealer_final is None:
            return None

        return sum(
            settle_hand(cards, dealer_final, stake, self.rules.blackjack_payout)
            for cards, stake in finished
        )


# ─── Public API ───────────────────────────────────────────────────────────────


def evaluate_split(
    pair_rank: int,
    upcard_rank: int,
    shoe: np.ndarray,
    rules: Rules,
    *,
    best_other_ev: float,
    trials_hint: int,
    rng: np.random.Generator | None = None,
) -> SplitEstimate:
    """Evaluate splitting a two-card pair.

    Args:
        pair_rank:     Rank of the pair.
        upcard_rank:   Dealer upcard.
        shoe:          Rank counts with every visible card removed (not mutated).
        rules:         Table rules.
        best_other_ev: Best EV among the non-split, non-surrender actions.
        trials_hint:   Caller's simulation-size hint (see split_trial_count).
        rng:           Optional numpy Generator; a fresh one is used otherwise.

    Returns:
        SplitEstimate. A shoe that cannot complete any round yields EV −∞.
    """
    dealer_memo: dict = {}
    analytic, per_hand_base = analytic_split(pair_rank, upcard_rank, shoe, rules, dealer_memo)

    if not analytic.is_available:
        return SplitEstimate(analytic, METHOD_ANALYTIC, analytic.ev)

    if analytic.ev + SPLIT_REFINE_MARGIN < best_other_ev:
        logger.debug(
            "split analytic EV %.4f is %.4f below best alternative, skipping simulation",
            analytic.ev,
            best_other_ev - analytic.ev,
        )
        return SplitEstimate(analytic, METHOD_ANALYTIC, analytic.ev)

    simulator = _SplitRoundSimulator(
        pair_rank,
        upcard_rank,
        shoe.copy(),
        rules,
        per_hand_base.ev,
        rng if rng is not None else np.random.default_rng(),
        dealer_memo,
    )
    t0 = time.perf_counter()
    sim = simulate_adaptive(
        simulator,
        split_trial_count(trials_hint),
        min_trials=MIN_TRIALS_BEFORE_STOP,
        batch=STOP_CHECK_BATCH,
        target_half_width=TARGET_HALF_WIDTH,
    )
    logger.debug("split simulation %s (%.2fs)", sim, time.perf_counter() - t0)

    if sim.n_trials == 0:
        return SplitEstimate(EvalResult.unavailable(), METHOD_SIMULATION, analytic.ev)

    return SplitEstimate(
        EvalResult(sim.mean_ev, sim.win_rate, sim.loss_rate),
        METHOD_SIMULATION,
        analytic.ev,
        trials=sim.n_trials,
        half_width=sim.half_width,
    )
