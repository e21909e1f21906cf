"""
Tests for blackjack_advisor/solvers/split.py

Covers:
    - split_trial_count(): scaling and clamping of the trials hint
    - split_hand_permissions(): split-ace restrictions
    - analytic_split(): degenerate shoes, re-split folding
    - evaluate_split(): analytic short-circuit, simulation path, exhausted shoe
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from blackjack_advisor.engine.cards import RANK_ACE, RANK_TEN
from blackjack_advisor.engine.rules import Rules
from blackjack_advisor.engine.shoe import build_shoe_from_cards
from blackjack_advisor.solvers.split import (
    MAX_SPLIT_TRIALS,
    METHOD_ANALYTIC,
    METHOD_SIMULATION,
    MIN_SPLIT_TRIALS,
    MIN_TRIALS_BEFORE_STOP,
    analytic_split,
    evaluate_split,
    split_hand_permissions,
    split_trial_count,
)
from tests.conftest import hand

EIGHT = 7
SIX = 5


def _tens_only(count: int = 20) -> np.ndarray:
    shoe = np.zeros(13, dtype=np.int32)
    shoe[RANK_TEN] = count
    return shoe


class TestSplitTrialCount:
    def test_scaled_by_ten(self):
        assert split_trial_count(3000) == 300

    def test_clamped_low(self):
        assert split_trial_count(0) == MIN_SPLIT_TRIALS

    def test_clamped_high(self):
        assert split_trial_count(10**7) == MAX_SPLIT_TRIALS


class TestSplitHandPermissions:
    def test_regular_pair_with_das(self):
        assert split_hand_permissions(EIGHT, Rules(double_after_split=True)) == (True, True)

    def test_regular_pair_without_das(self):
        assert split_hand_permissions(EIGHT, Rules(double_after_split=False)) == (True, False)

    def test_split_aces_one_card_only(self):
        assert split_hand_permissions(RANK_ACE, Rules(double_after_split=True)) == (False, False)

    def test_split_aces_hittable(self):
        rules = Rules(hit_split_aces=True, double_after_split=True)
        assert split_hand_permissions(RANK_ACE, rules) == (True, True)


class TestAnalyticSplit:
    def test_empty_shoe_unavailable(self):
        split, base = analytic_split(EIGHT, SIX, np.zeros(13, dtype=np.int32), Rules())
        assert split.ev == -math.inf
        assert not base.is_available

    def test_tens_only_each_hand_wins(self):
        # 8+T = 18 against a 6 that must draw to 16 and bust.
        split, base = analytic_split(EIGHT, SIX, _tens_only(), Rules())
        assert base.ev == 1.0
        assert split.ev == 2.0
        assert split.win_prob == 1.0

    def test_resplit_never_lowers_value(self):
        shoe = build_shoe_from_cards(6, hand('8', '8'), hand('6'))
        without, _ = analytic_split(EIGHT, SIX, shoe, Rules(max_split_hands=2))
        with_resplit, _ = analytic_split(EIGHT, SIX, shoe, Rules(max_split_hands=4))
        assert with_resplit.ev >= without.ev - 1e-12

    def test_does_not_mutate_shoe(self):
        shoe = build_shoe_from_cards(6, hand('8', '8'), hand('6'))
        before = shoe.copy()
        analytic_split(EIGHT, SIX, shoe, Rules())
        np.testing.assert_array_equal(shoe, before)


class TestEvaluateSplit:
    def test_far_below_alternative_stays_analytic(self):
        est = evaluate_split(
            EIGHT, SIX, _tens_only(), Rules(), best_other_ev=5.0, trials_hint=3000,
            rng=np.random.default_rng(0),
        )
        assert est.method == METHOD_ANALYTIC
        assert est.result.ev == 2.0
        assert est.trials == 0
        assert est.half_width == 0.0

    def test_simulation_converges_on_deterministic_shoe(self):
        est = evaluate_split(
            EIGHT, SIX, _tens_only(), Rules(), best_other_ev=1.0, trials_hint=3000,
            rng=np.random.default_rng(0),
        )
        assert est.method == METHOD_SIMULATION
        assert est.result.ev == 2.0
        assert est.result.win_prob == 1.0
        assert est.trials == MIN_TRIALS_BEFORE_STOP
        assert est.half_width == 0.0
        assert est.analytic_ev == 2.0

    def test_simulation_does_not_mutate_shoe(self):
        shoe = _tens_only()
        evaluate_split(
            EIGHT, SIX, shoe, Rules(), best_other_ev=1.0, trials_hint=1000,
            rng=np.random.default_rng(1),
        )
        np.testing.assert_array_equal(shoe, _tens_only())

    def test_shoe_too_small_for_any_round(self):
        est = evaluate_split(
            EIGHT, SIX, _tens_only(2), Rules(), best_other_ev=-10.0, trials_hint=1000,
            rng=np.random.default_rng(2),
        )
        assert est.method == METHOD_SIMULATION
        assert est.result.ev == -math.inf
        assert est.trials == 0

    def test_split_aces_take_one_card(self):
        # A+T is a plain 21 on a split hand; dealer 6 busts on tens.
        est = evaluate_split(
            RANK_ACE, SIX, _tens_only(), Rules(), best_other_ev=1.0, trials_hint=1000,
            rng=np.random.default_rng(3),
        )
        assert est.result.ev == 2.0

    @pytest.mark.parametrize("seed", [11, 12])
    def test_eights_vs_six_runs_simulation(self, seed):
        shoe = build_shoe_from_cards(6, hand('8', '8'), hand('6'))
        est = evaluate_split(
            EIGHT, SIX, shoe, Rules(), best_other_ev=-0.15, trials_hint=1000,
            rng=np.random.default_rng(seed),
        )
        assert est.method == METHOD_SIMULATION
        assert est.analytic_ev > -0.15
        assert est.trials == MIN_SPLIT_TRIALS
        assert -4.0 <= est.result.ev <= 4.0
        assert est.half_width > 0.0
