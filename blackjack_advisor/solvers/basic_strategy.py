"""
Textbook basic-strategy chart (multi-deck, dealer stands soft 17).

A composition-independent reference reported next to the solver's answer, so
a user can see where the count-aware recommendation departs from the chart.
Surrender is not charted; the chart never returns SURRENDER.
"""

from __future__ import annotations

from blackjack_advisor.engine.cards import rank_points
from blackjack_advisor.engine.hand import hand_value
from blackjack_advisor.engine.rules import Action


def _pair_action(pair_points: int, dealer: int, can_double: bool) -> Action:
    """Chart entry for a splittable pair."""
    if pair_points in (11, 8):
        return Action.SPLIT
    if pair_points == 10:
        return Action.STAND
    if pair_points == 9:
        return Action.SPLIT if dealer in (2, 3, 4, 5, 6, 8, 9) else Action.STAND
    if pair_points == 7:
        return Action.SPLIT if dealer <= 7 else Action.HIT
    if pair_points == 6:
        return Action.SPLIT if 2 <= dealer <= 6 else Action.HIT
    if pair_points == 5:
        return Action.DOUBLE if can_double and 2 <= dealer <= 9 else Action.HIT
    if pair_points == 4:
        return Action.SPLIT if can_double and dealer in (5, 6) else Action.HIT
    return Action.SPLIT if dealer <= 7 else Action.HIT


def _soft_action(total: int, dealer: int, can_double: bool) -> Action:
    if total >= 19:
        return Action.STAND
    if total == 18:
        if can_double and 3 <= dealer <= 6:
            return Action.DOUBLE
        if dealer in (2, 7, 8):
            return Action.STAND
        return Action.HIT
    if total in (16, 17):
        return Action.DOUBLE if can_double and 4 <= dealer <= 6 else Action.HIT
    return Action.DOUBLE if can_double and 5 <= dealer <= 6 else Action.HIT


def _hard_action(total: int, dealer: int, can_double: bool) -> Action:
    if total >= 17:
        return Action.STAND
    if 13 <= total <= 16:
        return Action.STAND if dealer <= 6 else Action.HIT
    if total == 12:
        return Action.STAND if 4 <= dealer <= 6 else Action.HIT
    if total == 11:
        return Action.DOUBLE if can_double and dealer <= 10 else Action.HIT
    if total == 10:
        return Action.DOUBLE if can_double and 2 <= dealer <= 9 else Action.HIT
    if total == 9:
        return Action.DOUBLE if can_double and 3 <= dealer <= 6 else Action.HIT
    return Action.HIT


def basic_strategy_action(
    cards: tuple[int, ...],
    upcard_rank: int,
    can_double: bool,
    can_split: bool,
) -> Action:
    """Return the chart action for a hand.

    Args:
        cards:       Player hand as rank indices.
        upcard_rank: Dealer upcard rank index.
        can_double:  True if doubling is currently allowed.
        can_split:   True if splitting is currently allowed.

    Examples:
        >>> basic_strategy_action((7, 7), 5, True, True)     # 8-8 vs 6
        <Action.SPLIT: 'SPLIT'>
        >>> basic_strategy_action((9, 5), 9, True, False)    # hard 16 vs 10
        <Action.HIT: 'HIT'>
    """
    dealer = rank_points(upcard_rank)
    total, soft = hand_value(cards)

    if can_split and len(cards) == 2 and cards[0] == cards[1]:
        return _pair_action(rank_points(cards[0]), dealer, can_double)

    if soft:
        return _soft_action(total, dealer, can_double)
    return _hard_action(total, dealer, can_double)
