"""
Decision aggregator: one pure call from table state to per-action EVs.

Flow:
    validate input → shoe snapshot (all observed cards removed) + Hi-Lo count →
    one dealer distribution → Stand (resolver) → Hit / Double (one shared
    HandSolver memo) → Split (hybrid evaluator, its own distributions) →
    Surrender (closed form) → EV-optimal and risk-adjusted picks.

Nothing is cached between calls: every shoe, memo table, and budget is built
fresh inside calculate_decision().

Input problems never raise; they come back as ``valid=False`` with a message.
An action that cannot be evaluated gets EV −∞ and is never recommended unless
every action is unavailable, in which case the first declared action is used.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from blackjack_advisor.engine.cards import hand_to_str, str_to_rank
from blackjack_advisor.engine.counting import decks_remaining, running_count, true_count
from blackjack_advisor.engine.hand import hand_shape
from blackjack_advisor.engine.rules import Action, Rules
from blackjack_advisor.engine.shoe import build_shoe_from_cards, value_composition
from blackjack_advisor.solvers.basic_strategy import basic_strategy_action
from blackjack_advisor.solvers.dealer import compute_dealer_distribution
from blackjack_advisor.solvers.hand_solver import HandSolver, NodeBudget
from blackjack_advisor.solvers.resolver import EvalResult
from blackjack_advisor.solvers.split import SplitEstimate, evaluate_split
from blackjack_advisor.solvers.surrender import evaluate_surrender

logger = logging.getLogger(__name__)

# ─── Constants ────────────────────────────────────────────────────────────────

RISK_AVERSION: float = 0.10
"""λ in the risk-adjusted score EV − λ × loss_prob."""

DEFAULT_TRIALS_HINT: int = 3000

MSG_NO_UPCARD = "Select the dealer upcard to start."
MSG_TOO_FEW_CARDS = "Add your first two cards to evaluate actions."
MSG_PLAYER_BUST = "Player hand is already bust."
MSG_SHOE_EXCEEDED = "Observed cards exceed available cards for selected deck count."


# ─── Input / output types ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class DecisionInput:
    """Table state for one decision.

    Attributes:
        player_cards:     Player hand as rank names ('A', '2'–'10', 'J', 'Q', 'K').
        dealer_upcard:    Dealer's visible card, or None if not yet dealt.
        table_seen_cards: Any other cards already removed from the shoe.
        rules:            Table rules.
        trials:           Optional split-simulation size hint.
    """

    player_cards: Sequence[str] = ()
    dealer_upcard: str | None = None
    table_seen_cards: Sequence[str] = ()
    rules: Rules = field(default_factory=Rules)
    trials: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "player_cards", tuple(self.player_cards))
        object.__setattr__(self, "table_seen_cards", tuple(self.table_seen_cards))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecisionInput":
        """Build from the camelCase message shape (snake_case also accepted)."""

        def pick(camel: str, snake: str, default: Any = None) -> Any:
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        return cls(
            player_cards=pick("playerCards", "player_cards", ()),
            dealer_upcard=pick("dealerUpcard", "dealer_upcard"),
            table_seen_cards=pick("tableSeenCards", "table_seen_cards", ()),
            rules=Rules.from_dict(data.get("rules") or {}),
            trials=data.get("trials"),
        )


@dataclass
class DecisionResult:
    """Outcome of one decision call.

    Invalid inputs leave every numeric field zeroed and every mapping empty.
    """

    valid: bool
    message: str = ""
    running_count: int = 0
    true_count: float = 0.0
    decks_remaining: float = 0.0
    actions: tuple[Action, ...] = ()
    ev_by_action: dict[Action, float] = field(default_factory=dict)
    win_rate_by_action: dict[Action, float] = field(default_factory=dict)
    loss_rate_by_action: dict[Action, float] = field(default_factory=dict)
    recommended_action: Action | None = None
    safe_recommended_action: Action | None = None
    split_estimate: SplitEstimate | None = None
    basic_strategy_action: Action | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used on the message boundary."""
        data: dict[str, Any] = {
            "valid": self.valid,
            "runningCount": self.running_count,
            "trueCount": self.true_count,
            "decksRemaining": self.decks_remaining,
            "actions": [a.value for a in self.actions],
            "evByAction": {a.value: v for a, v in self.ev_by_action.items()},
            "winRateByAction": {a.value: v for a, v in self.win_rate_by_action.items()},
            "lossRateByAction": {a.value: v for a, v in self.loss_rate_by_action.items()},
        }
        if self.message:
            data["message"] = self.message
        if self.recommended_action is not None:
            data["recommendedAction"] = self.recommended_action.value
        if self.safe_recommended_action is not None:
            data["safeRecommendedAction"] = self.safe_recommended_action.value
        if self.basic_strategy_action is not None:
            data["basicStrategyAction"] = self.basic_strategy_action.value
        if self.split_estimate is not None:
            data["splitEstimate"] = {
                "method": self.split_estimate.method,
                "analyticEv": self.split_estimate.analytic_ev,
                "trials": self.split_estimate.trials,
                "halfWidth": self.split_estimate.half_width,
            }
        return data


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _invalid(message: str) -> DecisionResult:
    return DecisionResult(valid=False, message=message)


def _pick_action(
    actions: Sequence[Action],
    results: Mapping[Action, EvalResult],
    score: Callable[[EvalResult], float],
) -> Action:
    """Argmax of ``score`` over available actions; first seen wins ties."""
    best: Action | None = None
    best_score = -math.inf
    for action in actions:
        result = results[action]
        if not result.is_available:
            continue
        value = score(result)
        if best is None or value > best_score:
            best, best_score = action, value
    return best if best is not None else actions[0]


def legal_actions(player_cards: tuple[int, ...], rules: Rules) -> list[Action]:
    """Return the action set for a hand, in declaration order.

    Stand, Hit and Double are always listed (Double may still evaluate as
    unavailable); Split needs a two-card pair of equal rank, Surrender needs
    late surrender and exactly two cards.
    """
    actions = [Action.STAND, Action.HIT, Action.DOUBLE]
    is_pair = len(player_cards) == 2 and player_cards[0] == player_cards[1]
    if is_pair and rules.max_split_hands >= 2:
        actions.append(Action.SPLIT)
    if rules.late_surrender and len(player_cards) == 2:
        actions.append(Action.SURRENDER)
    return actions


# ─── Public API ───────────────────────────────────────────────────────────────


def calculate_decision(
    decision_input: DecisionInput,
    *,
    rng: np.random.Generator | None = None,
) -> DecisionResult:
    """Evaluate every legal action for the given table state.

    Args:
        decision_input: Table state.
        rng:            Optional numpy Generator for the split simulation.

    Returns:
        DecisionResult; ``valid`` is False (with a message) for bad input.
    """
    t0 = time.perf_counter()
    rules = decision_input.rules

    try:
        player = tuple(str_to_rank(c) for c in decision_input.player_cards)
        seen = tuple(str_to_rank(c) for c in decision_input.table_seen_cards)
        upcard = (
            None if decision_input.dealer_upcard is None
            else str_to_rank(decision_input.dealer_upcard)
        )
    except ValueError as exc:
        return _invalid(str(exc))

    # ── Validity gates ────────────────────────────────────────────────────────
    if upcard is None:
        return _invalid(MSG_NO_UPCARD)
    if len(player) < 2:
        return _invalid(MSG_TOO_FEW_CARDS)
    if hand_shape(player).is_bust:
        return _invalid(MSG_PLAYER_BUST)

    shoe = build_shoe_from_cards(rules.decks, player, (upcard,), seen)
    if shoe is None:
        return _invalid(MSG_SHOE_EXCEEDED)

    # ── Count ─────────────────────────────────────────────────────────────────
    running = running_count(player + (upcard,) + seen)
    remaining_decks = decks_remaining(shoe)
    true = true_count(running, remaining_decks)

    # ── Evaluate actions ──────────────────────────────────────────────────────
    actions = legal_actions(player, rules)
    shape = hand_shape(player)
    composition = value_composition(shoe)
    dealer = compute_dealer_distribution(upcard, composition, rules.dealer_hits_soft17)
    solver = HandSolver(dealer, composition, rules)

    results: dict[Action, EvalResult] = {
        Action.STAND: solver.stand(shape, blackjack_eligible=True),
        Action.HIT: solver.hit(shape, NodeBudget.for_shape(shape)),
        Action.DOUBLE: (
            solver.double(shape) if rules.allows_double(shape) else EvalResult.unavailable()
        ),
    }

    split_estimate: SplitEstimate | None = None
    if Action.SPLIT in actions:
        best_other = max(results[a].ev for a in (Action.STAND, Action.HIT, Action.DOUBLE))
        split_estimate = evaluate_split(
            player[0],
            upcard,
            shoe,
            rules,
            best_other_ev=best_other,
            trials_hint=(
                decision_input.trials if decision_input.trials is not None
                else DEFAULT_TRIALS_HINT
            ),
            rng=rng,
        )
        results[Action.SPLIT] = split_estimate.result

    if Action.SURRENDER in actions:
        results[Action.SURRENDER] = evaluate_surrender(dealer)

    recommended = _pick_action(actions, results, lambda r: r.ev)
    safe = _pick_action(actions, results, lambda r: r.ev - RISK_AVERSION * r.loss_prob)

    chart = basic_strategy_action(
        player,
        upcard,
        can_double=rules.allows_double(shape),
        can_split=Action.SPLIT in actions,
    )

    logger.debug(
        "decision %s vs %s: recommended=%s safe=%s (%.3fs)",
        hand_to_str(player),
        hand_to_str((upcard,)),
        recommended.value,
        safe.value,
        time.perf_counter() - t0,
    )

    return DecisionResult(
        valid=True,
        running_count=running,
        true_count=true,
        decks_remaining=remaining_decks,
        actions=tuple(actions),
        ev_by_action={a: results[a].ev for a in actions},
        win_rate_by_action={a: results[a].win_prob for a in actions},
        loss_rate_by_action={a: results[a].loss_prob for a in actions},
        recommended_action=recommended,
        safe_recommended_action=safe,
        split_estimate=split_estimate,
        basic_strategy_action=chart,
    )


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    from blackjack_advisor.engine.rules import format_action_label

    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    print("Blackjack advisor: 8-8 vs 6, six decks, DAS, late surrender")
    result = calculate_decision(
        DecisionInput(
            player_cards=("8", "8"),
            dealer_upcard="6",
            table_seen_cards=("K", "4", "2"),
            rules=Rules(decks=6, double_after_split=True),
        )
    )
    print(f"Running count {result.running_count:+d} | true count {result.true_count:+.2f}")
    print(f"{'Action':<10}{'EV':>9}{'Win':>8}{'Loss':>8}")
    for action in result.actions:
        print(
            f"{format_action_label(action):<10}"
            f"{result.ev_by_action[action]:>+9.4f}"
            f"{result.win_rate_by_action[action]:>8.3f}"
            f"{result.loss_rate_by_action[action]:>8.3f}"
        )
    print(f"Recommended: {format_action_label(result.recommended_action)}")
    print(f"Risk-adjusted: {format_action_label(result.safe_recommended_action)}")
    print(f"Basic strategy chart: {format_action_label(result.basic_strategy_action)}")
