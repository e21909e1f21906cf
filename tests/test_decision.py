"""
Tests for blackjack_advisor/decision.py

Covers:
    - Validity gates and their order
    - Action set construction
    - Count reporting
    - End-to-end scenarios: stand 17 vs 10, split 8-8 vs 6, double 11 vs 6,
      surrender against an ace as dealer blackjack becomes certain
    - Recommendation rules: unavailable actions, risk-adjusted pick
    - Idempotence and wire (de)serialization
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from blackjack_advisor.decision import (
    MSG_NO_UPCARD,
    MSG_PLAYER_BUST,
    MSG_SHOE_EXCEEDED,
    MSG_TOO_FEW_CARDS,
    DecisionInput,
    DecisionResult,
    _pick_action,
    calculate_decision,
    legal_actions,
)
from blackjack_advisor.engine.cards import RANK_NAMES
from blackjack_advisor.engine.rules import Action, Rules
from blackjack_advisor.solvers.resolver import EvalResult
from blackjack_advisor.solvers.split import METHOD_SIMULATION
from tests.conftest import hand


def decide(player, upcard, seen=(), rng=None, trials=None, **rules) -> DecisionResult:
    return calculate_decision(
        DecisionInput(
            player_cards=player,
            dealer_upcard=upcard,
            table_seen_cards=seen,
            rules=Rules(**rules),
            trials=trials,
        ),
        rng=rng,
    )


def assert_invalid(result: DecisionResult, message: str) -> None:
    assert result.valid is False
    assert message in result.message
    assert result.running_count == 0
    assert result.true_count == 0.0
    assert result.decks_remaining == 0.0
    assert result.ev_by_action == {}
    assert result.win_rate_by_action == {}
    assert result.loss_rate_by_action == {}
    assert result.recommended_action is None
    assert result.safe_recommended_action is None


# ─── Validity gates ───────────────────────────────────────────────────────────

class TestValidityGates:
    def test_unknown_card(self):
        assert_invalid(decide(('10', 'X'), '6'), "Unknown card rank")

    def test_unknown_seen_card(self):
        assert_invalid(decide(('10', '7'), '6', seen=('Z',)), "Unknown card rank")

    def test_unknown_card_checked_before_upcard(self):
        assert_invalid(decide(('X',), None), "Unknown card rank")

    def test_no_upcard(self):
        assert_invalid(decide(('10', '7'), None), MSG_NO_UPCARD)

    def test_no_upcard_checked_before_card_count(self):
        assert_invalid(decide((), None), MSG_NO_UPCARD)

    def test_fewer_than_two_cards(self):
        assert_invalid(decide(('10',), '6'), MSG_TOO_FEW_CARDS)

    def test_player_bust(self):
        assert_invalid(decide(('K', 'Q', '5'), '6'), MSG_PLAYER_BUST)

    def test_player_bust_with_aces_forced_down(self):
        assert_invalid(decide(('A', 'A', 'K', 'K'), '6'), MSG_PLAYER_BUST)

    def test_observed_cards_exceed_shoe(self):
        result = decide(('A', 'A'), 'A', seen=('A', 'A'), decks=1)
        assert_invalid(result, MSG_SHOE_EXCEEDED)

    def test_four_of_a_rank_in_one_deck_is_fine(self):
        result = decide(('A', 'A'), 'A', seen=('A',), decks=1, trials=1000)
        assert result.valid


# ─── Action set ───────────────────────────────────────────────────────────────

class TestLegalActions:
    def test_plain_two_cards(self):
        assert legal_actions(hand('10', '6'), Rules()) == [
            Action.STAND, Action.HIT, Action.DOUBLE, Action.SURRENDER,
        ]

    def test_pair(self):
        assert legal_actions(hand('8', '8'), Rules()) == [
            Action.STAND, Action.HIT, Action.DOUBLE, Action.SPLIT, Action.SURRENDER,
        ]

    def test_mixed_ten_values_are_not_a_pair(self):
        assert Action.SPLIT not in legal_actions(hand('J', 'Q'), Rules())

    def test_no_surrender_rule(self):
        assert Action.SURRENDER not in legal_actions(hand('10', '6'), Rules(late_surrender=False))

    def test_three_cards(self):
        assert legal_actions(hand('2', '3', '4'), Rules()) == [
            Action.STAND, Action.HIT, Action.DOUBLE,
        ]


# ─── Count ────────────────────────────────────────────────────────────────────

class TestCount:
    def test_counts_every_observed_card(self):
        result = decide(('10', '7'), '10', seen=('2', '3'), decks=1)
        assert result.running_count == 0
        assert result.decks_remaining == pytest.approx(47 / 52)
        assert result.true_count == 0.0

    def test_true_count(self):
        result = decide(('10', '7'), '10', decks=1)
        assert result.running_count == -2
        assert result.true_count == pytest.approx(-2 / (49 / 52))


# ─── End-to-end scenarios ─────────────────────────────────────────────────────

class TestScenarios:
    def test_hard_17_stands_vs_10(self):
        result = decide(('10', '7'), '10', decks=1, dealer_hits_soft17=False)
        assert result.valid
        assert result.recommended_action == Action.STAND
        assert Action.SPLIT not in result.actions

    def test_eights_split_vs_6(self):
        result = decide(
            ('8', '8'), '6',
            rng=np.random.default_rng(2024), trials=10_000,
            decks=6, double_after_split=True, max_split_hands=2,
        )
        assert Action.SPLIT in result.actions
        assert result.ev_by_action[Action.SPLIT] > result.ev_by_action[Action.STAND]
        assert result.split_estimate is not None
        assert result.basic_strategy_action == Action.SPLIT

    def test_eleven_doubles_vs_6(self):
        result = decide(('5', '6'), '6', double_any_two=True)
        assert Action.DOUBLE in result.actions
        assert result.ev_by_action[Action.DOUBLE] > result.ev_by_action[Action.HIT]
        assert result.recommended_action == Action.DOUBLE

    def test_surrender_vs_ace_approaches_full_loss(self):
        low_cards = tuple(r for r in ('2', '3', '4', '5', '6') for _ in range(8))
        everything_but_tens = (
            ('A',) * 7 + low_cards + ('7',) * 6 + ('8',) * 8 + ('9',) * 8
        )
        seen_levels = [(), low_cards, everything_but_tens]

        evs = []
        for seen in seen_levels:
            result = decide(
                ('7', '7'), 'A', seen=seen, decks=2, late_surrender=True,
                trials=1000, rng=np.random.default_rng(7),
            )
            assert result.valid
            ev = result.ev_by_action[Action.SURRENDER]
            assert -1.0 <= ev <= -0.5
            evs.append(ev)

        assert evs[0] > evs[1] > evs[2]
        assert evs[2] == pytest.approx(-1.0)


# ─── Recommendations ──────────────────────────────────────────────────────────

class TestRecommendations:
    def test_unavailable_double_never_recommended(self):
        result = decide(('2', '3', '4'), '6')
        assert result.ev_by_action[Action.DOUBLE] == -math.inf
        assert result.recommended_action != Action.DOUBLE
        assert result.safe_recommended_action != Action.DOUBLE

    def test_restricted_double_unavailable_on_sixteen(self):
        result = decide(('10', '6'), '10', double_any_two=False)
        assert result.ev_by_action[Action.DOUBLE] == -math.inf

    def test_double_unavailable_on_exhausted_shoe(self):
        seen = [name for name in RANK_NAMES for _ in range(4)]
        for card in ('10', '7', 'K'):
            seen.remove(card)
        result = decide(('10', '7'), 'K', seen=tuple(seen), decks=1)
        assert result.valid
        assert result.ev_by_action[Action.DOUBLE] == -math.inf
        assert result.recommended_action == Action.STAND
        assert result.safe_recommended_action == Action.STAND

    def test_all_unavailable_falls_back_to_first(self):
        actions = [Action.STAND, Action.HIT]
        results = {a: EvalResult.unavailable() for a in actions}
        assert _pick_action(actions, results, lambda r: r.ev) == Action.STAND

    def test_first_seen_wins_ties(self):
        actions = [Action.STAND, Action.HIT]
        results = {a: EvalResult(0.25, 0.5, 0.25) for a in actions}
        assert _pick_action(actions, results, lambda r: r.ev) == Action.STAND

    def test_risk_adjusted_prefers_lower_loss(self):
        actions = [Action.HIT, Action.SURRENDER]
        results = {
            Action.HIT: EvalResult(0.05, 0.05, 0.9),
            Action.SURRENDER: EvalResult(0.0, 0.0, 0.1),
        }
        assert _pick_action(actions, results, lambda r: r.ev) == Action.HIT
        assert _pick_action(actions, results, lambda r: r.ev - 0.10 * r.loss_prob) == Action.SURRENDER

    def test_probabilities_in_range(self):
        result = decide(('A', '6'), '9')
        for action in result.actions:
            assert 0.0 <= result.win_rate_by_action[action] <= 1.0
            assert 0.0 <= result.loss_rate_by_action[action] <= 1.0


# ─── Idempotence ──────────────────────────────────────────────────────────────

class TestIdempotence:
    def test_exact_actions_are_bit_identical(self):
        first = decide(('10', '6'), '10', seen=('5', '2', 'K'))
        second = decide(('10', '6'), '10', seen=('5', '2', 'K'))
        assert first.to_dict() == second.to_dict()

    def test_same_seed_reproduces_split(self):
        first = decide(('8', '8'), '6', trials=1000, rng=np.random.default_rng(3))
        second = decide(('8', '8'), '6', trials=1000, rng=np.random.default_rng(3))
        assert first.to_dict() == second.to_dict()

    def test_split_simulation_within_half_widths(self):
        first = decide(('8', '8'), '6', trials=1000, rng=np.random.default_rng(31))
        second = decide(('8', '8'), '6', trials=1000, rng=np.random.default_rng(32))
        for action in (Action.STAND, Action.HIT, Action.DOUBLE, Action.SURRENDER):
            assert first.ev_by_action[action] == second.ev_by_action[action]
        a, b = first.split_estimate, second.split_estimate
        assert a.method == b.method == METHOD_SIMULATION
        gap = abs(a.result.ev - b.result.ev)
        assert gap <= a.half_width + b.half_width


# ─── Wire format ──────────────────────────────────────────────────────────────

class TestWireFormat:
    def test_from_dict_camel_case(self):
        data = {
            "playerCards": ["10", "7"],
            "dealerUpcard": "10",
            "tableSeenCards": ["2"],
            "rules": {"decks": 1, "dealerHitsSoft17": True, "lateSurrender": False},
            "trials": 500,
        }
        decision_input = DecisionInput.from_dict(data)
        assert decision_input.player_cards == ("10", "7")
        assert decision_input.dealer_upcard == "10"
        assert decision_input.table_seen_cards == ("2",)
        assert decision_input.rules == Rules(decks=1, dealer_hits_soft17=True, late_surrender=False)
        assert decision_input.trials == 500

    def test_from_dict_defaults(self):
        decision_input = DecisionInput.from_dict({})
        assert decision_input.player_cards == ()
        assert decision_input.dealer_upcard is None
        assert decision_input.rules == Rules()
        assert calculate_decision(decision_input).message == MSG_NO_UPCARD

    def test_to_dict_camel_case(self):
        d = decide(('10', '7'), '10', decks=1).to_dict()
        assert d["valid"] is True
        assert d["recommendedAction"] == "STAND"
        assert d["actions"] == ["STAND", "HIT", "DOUBLE", "SURRENDER"]
        assert set(d["evByAction"]) == set(d["actions"])
        assert set(d["winRateByAction"]) == set(d["actions"])
        assert set(d["lossRateByAction"]) == set(d["actions"])
        assert "safeRecommendedAction" in d
        assert "basicStrategyAction" in d
        assert "splitEstimate" not in d

    def test_invalid_to_dict(self):
        d = decide(('10',), '6').to_dict()
        assert d["valid"] is False
        assert d["message"] == MSG_TOO_FEW_CARDS
        assert d["evByAction"] == {}
        assert "recommendedAction" not in d
