"""
Expectimax solver for a player hand in progress.

The dealer distribution is computed once per top-level call and held fixed, as
are the draw probabilities for the player's own cards. The state space is
therefore HandShape × action flags, independent of how the composition drifts
while the player keeps drawing. The error from ignoring that drift is small and
shrinks with the number of decks.

Work is bounded by a NodeBudget shared by reference through the recursion.
Once it runs out, unexplored nodes take their stand value.
"""

from __future__ import annotations

from blackjack_advisor.engine.cards import VALUE_POINTS
from blackjack_advisor.engine.hand import HandShape, add_points
from blackjack_advisor.engine.rules import Action, Rules
from blackjack_advisor.solvers.dealer import DealerDistribution
from blackjack_advisor.solvers.resolver import EvalResult, resolve_hand, weighted_average

# ─── Constants ────────────────────────────────────────────────────────────────

LOW_TOTAL_BUDGET: int = 4000
"""Node budget for hard totals ≤ 11, which branch the most."""

MID_TOTAL_BUDGET: int = 2000
"""Node budget for hard totals 12–16 and all soft hands."""

HIGH_TOTAL_BUDGET: int = 800
"""Node budget for hard totals ≥ 17."""


# ─── NodeBudget ───────────────────────────────────────────────────────────────


class NodeBudget:
    """Decrementing counter of decision nodes the solver may still expand."""

    def __init__(self, limit: int) -> None:
        self.remaining = limit

    def take(self) -> bool:
        """Consume one node; False once the budget is exhausted."""
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True

    @classmethod
    def for_shape(cls, shape: HandShape) -> "NodeBudget":
        """Size a budget for the hand the search starts from."""
        if shape.soft:
            return cls(MID_TOTAL_BUDGET)
        if shape.total <= 11:
            return cls(LOW_TOTAL_BUDGET)
        if shape.total <= 16:
            return cls(MID_TOTAL_BUDGET)
        return cls(HIGH_TOTAL_BUDGET)


def draw_probabilities(composition: tuple[int, ...]) -> tuple[tuple[int, float], ...]:
    """Return (points, probability) for every value class left in the shoe.

    Examples:
        >>> draw_probabilities((0, 0, 0, 0, 0, 0, 0, 0, 1, 3))
        ((9, 0.25), (10, 0.75))
    """
    remaining = sum(composition)
    if remaining == 0:
        return ()
    return tuple(
        (VALUE_POINTS[value], count / remaining)
        for value, count in enumerate(composition)
        if count > 0
    )


# ─── HandSolver ───────────────────────────────────────────────────────────────


class HandSolver:
    """Optimal stand/hit/double play against a fixed dealer distribution.

    Args:
        dealer:      Dealer outcome distribution for this call.
        composition: Value composition the player draws from.
        rules:       Table rules (payout and double eligibility).
        memo:        Optional memo table; pass one in to share it between
                     solvers built on the same dealer distribution.
    """

    def __init__(
        self,
        dealer: DealerDistribution,
        composition: tuple[int, ...],
        rules: Rules,
        memo: dict | None = None,
    ) -> None:
        self.dealer = dealer
        self.rules = rules
        self.draws = draw_probabilities(composition)
        self.memo: dict = {} if memo is None else memo

    def stand(self, shape: HandShape, blackjack_eligible: bool = False, stake: float = 1.0) -> EvalResult:
        return resolve_hand(shape, stake, blackjack_eligible, self.dealer, self.rules.blackjack_payout)

    def optimal(
        self,
        shape: HandShape,
        *,
        can_double: bool,
        blackjack_eligible: bool,
        can_hit: bool,
        budget: NodeBudget,
    ) -> tuple[Action, EvalResult]:
        """Return the best (Action, EvalResult) for the given hand.

        Stand is evaluated first, then hit, then double; a later option must
        be strictly better to replace an earlier one.
        """
        key = (shape, can_double, blackjack_eligible, can_hit)
        if key in self.memo:
            return self.memo[key]

        stand = self.stand(shape, blackjack_eligible)

        # Terminal: 21 or bust
        if shape.total >= 21:
            result: tuple[Action, EvalResult] = (Action.STAND, stand)
            self.memo[key] = result
            return result

        result = (Action.STAND, stand)
        if budget.take():
            if can_hit:
                hit = self.hit(shape, budget)
                if hit.ev > result[1].ev:
                    result = (Action.HIT, hit)
            if can_double:
                double = self.double(shape)
                if double.ev > result[1].ev:
                    result = (Action.DOUBLE, double)

        self.memo[key] = result
        return result

    def hit(self, shape: HandShape, budget: NodeBudget) -> EvalResult:
        """EV of taking one card, then continuing optimally with hit/stand only."""
        key = ("hit", shape)
        if key in self.memo:
            return self.memo[key]

        if not self.draws:
            # Degenerate: nothing left to draw, the hand stays as it is
            result = self.stand(shape)
            self.memo[key] = result
            return result

        branches = []
        for points, prob in self.draws:
            child = add_points(shape, points)
            _, child_result = self.optimal(
                child,
                can_double=False,
                blackjack_eligible=False,
                can_hit=True,
                budget=budget,
            )
            branches.append((prob, child_result))

        result = weighted_average(branches)
        self.memo[key] = result
        return result

    def double(self, shape: HandShape) -> EvalResult:
        """EV of doubling: exactly one more card, settled at stake 2."""
        key = ("double", shape)
        if key in self.memo:
            return self.memo[key]

        if not self.draws:
            result = EvalResult.unavailable()
        else:
            result = weighted_average(
                (prob, self.stand(add_points(shape, points), stake=2.0))
                for points, prob in self.draws
            )

        self.memo[key] = result
        return result
