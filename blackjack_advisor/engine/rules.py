"""
Table rules, player actions, and settlement.

Settlement priority (highest to lowest):
    1. Player bust (>21)              → player loses the stake
    2. Player blackjack (if eligible) → push vs dealer blackjack, else stake × payout
    3. Dealer blackjack               → player loses the stake
    4. Dealer bust                    → player wins the stake
    5. Total comparison               → higher total wins the stake, equal pushes

Payout convention (from player's perspective):
    +N  = player wins N units
    -N  = player loses N units
     0  = push (bet returned)

settle() is the single source of these semantics. The distribution-based
resolver and the realized-hand settlement used by simulation both call it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from .hand import HandShape, hand_value, is_blackjack

MIN_SPLIT_HANDS: int = 2
MAX_SPLIT_HANDS: int = 4

# Field name → key used by the message boundary.
_CAMEL_NAMES: dict[str, str] = {
    "dealer_hits_soft17": "dealerHitsSoft17",
    "double_after_split": "doubleAfterSplit",
    "blackjack_payout": "blackjackPayout",
    "late_surrender": "lateSurrender",
    "max_split_hands": "maxSplitHands",
    "resplit_aces": "resplitAces",
    "hit_split_aces": "hitSplitAces",
    "double_any_two": "doubleAnyTwo",
}


class Action(Enum):
    """Player actions the advisor can evaluate, in declaration order."""

    STAND = "STAND"
    HIT = "HIT"
    DOUBLE = "DOUBLE"
    SPLIT = "SPLIT"
    SURRENDER = "SURRENDER"


_ACTION_LABELS: dict[Action, str] = {
    Action.STAND: "Stand",
    Action.HIT: "Hit",
    Action.DOUBLE: "Double",
    Action.SPLIT: "Split",
    Action.SURRENDER: "Surrender",
}


def format_action_label(action: Action) -> str:
    """Return the display label for an action.

    Examples:
        >>> format_action_label(Action.DOUBLE)
        'Double'
    """
    return _ACTION_LABELS.get(action, action.value)


@dataclass(frozen=True)
class Rules:
    """Table rule set.

    Attributes:
        decks:              Decks in the shoe (≥ 1, truncated to an integer).
        dealer_hits_soft17: True if the dealer hits soft 17 (H17).
        double_after_split: True if doubling is allowed on split hands (DAS).
        blackjack_payout:   Payout ratio for a natural (1.5 = 3:2).
        late_surrender:     True if surrender is offered on the first two cards.
        max_split_hands:    Maximum hands reachable by splitting (2–4).
        resplit_aces:       True if a pair of split aces may be split again.
        hit_split_aces:     True if split aces may take more than one card.
        double_any_two:     True to double on any two cards; else 9–11 only.
    """

    decks: int = 6
    dealer_hits_soft17: bool = False
    double_after_split: bool = True
    blackjack_payout: float = 1.5
    late_surrender: bool = True
    max_split_hands: int = 2
    resplit_aces: bool = False
    hit_split_aces: bool = False
    double_any_two: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "decks", max(1, int(self.decks)))
        object.__setattr__(
            self,
            "max_split_hands",
            min(MAX_SPLIT_HANDS, max(MIN_SPLIT_HANDS, int(self.max_split_hands))),
        )
        object.__setattr__(self, "blackjack_payout", float(self.blackjack_payout))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rules":
        """Build rules from a message dict (camelCase or snake_case keys).

        Missing keys keep their defaults; unknown keys are ignored.

        Examples:
            >>> Rules.from_dict({"decks": 2.7, "dealerHitsSoft17": True}).decks
            2
        """
        kwargs: dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            camel = _CAMEL_NAMES.get(name, name)
            if camel in data:
                kwargs[name] = data[camel]
            elif name in data:
                kwargs[name] = data[name]
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys used on the message boundary."""
        return {_CAMEL_NAMES.get(f.name, f.name): getattr(self, f.name) for f in fields(self)}

    def allows_double(self, shape: HandShape) -> bool:
        """Return True if a hand of this shape may double down.

        Exactly two cards, and either any-two doubling or a hard 9–11.
        """
        if shape.n_cards != 2:
            return False
        if self.double_any_two:
            return True
        return not shape.soft and 9 <= shape.total <= 11

    def allows_resplit(self, pair_is_aces: bool) -> bool:
        """Return True if one more split (a third hand) is allowed."""
        if self.max_split_hands < 3:
            return False
        return self.resplit_aces or not pair_is_aces


# ─── Core settlement function ─────────────────────────────────────────────────

def settle(
    player_total: int,
    player_blackjack: bool,
    dealer_total: int,
    dealer_blackjack: bool,
    stake: float = 1.0,
    blackjack_payout: float = 1.5,
) -> float:
    """Return the player's profit for one (player, dealer) outcome pair.

    Args:
        player_total:     Player's final total.
        player_blackjack: True only if the player holds a natural that is
                          eligible for the blackjack bonus.
        dealer_total:     Dealer's final total (> 21 means bust).
        dealer_blackjack: True if the dealer holds a natural.
        stake:            Units at risk (1 normal, 2 doubled).
        blackjack_payout: Ratio paid on an eligible player natural.

    Examples:
        >>> settle(20, False, 18, False)
        1.0
        >>> settle(22, False, 23, False, stake=2.0)   # player busts first
        -2.0
        >>> settle(21, True, 20, False)
        1.5
        >>> settle(21, True, 21, True)
        0.0
        >>> settle(21, False, 21, True)               # three-card 21 vs natural
        -1.0
    """
    if player_total > 21:
        return -stake
    if player_blackjack:
        return 0.0 if dealer_blackjack else stake * blackjack_payout
    if dealer_blackjack:
        return -stake
    if dealer_total > 21:
        return stake
    if player_total > dealer_total:
        return stake
    if player_total < dealer_total:
        return -stake
    return 0.0


def settle_hand(
    player_cards: tuple[int, ...],
    dealer_cards: tuple[int, ...],
    stake: float = 1.0,
    blackjack_payout: float = 1.5,
    blackjack_eligible: bool = False,
) -> float:
    """Settle a completed player hand against a completed dealer hand.

    Args:
        player_cards:       Player's final hand as rank indices.
        dealer_cards:       Dealer's final hand as rank indices.
        stake:              Units at risk.
        blackjack_payout:   Ratio paid on an eligible natural.
        blackjack_eligible: False for split hands, whose A+10 is a plain 21.

    Returns:
        Profit in units from the player's perspective.
    """
    player_total, _ = hand_value(player_cards)
    dealer_total, _ = hand_value(dealer_cards)
    return settle(
        player_total,
        blackjack_eligible and is_blackjack(player_cards),
        dealer_total,
        is_blackjack(dealer_cards),
        stake,
        blackjack_payout,
    )
