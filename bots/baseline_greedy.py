"""Baseline greedy bots: smallest-first and largest-first."""

from __future__ import annotations

from collections import Counter
from typing import Any, Sequence

from engine.cards import Card, Rank
from engine.combos import Combo, ComboType
from engine.service import PlayerView

from .base import BotStrategy

_OVERRIDES = (ComboType.BOMB, ComboType.ROCKET)


def hand_strength(hand: Sequence[Card]) -> int:
    """Rough 0..3 estimate of how well a hand plays as landlord."""
    counts = Counter(card.rank for card in hand)
    jokers = counts[Rank.SMALL_JOKER] + counts[Rank.BIG_JOKER]
    triples = sum(1 for count in counts.values() if count >= 3)
    score = 0
    if jokers >= 1:
        score += 1
    if counts[Rank.TWO] >= 2:
        score += 1
    if triples >= 2:
        score += 1
    return score


def _bid_from_strength(view: PlayerView) -> Any:
    strength = min(hand_strength(view.hand), view.rules.bidding.max_call)
    if view.rules.bidding.mode == "rob":
        return {"action": "rob" if strength >= 2 else "no-rob"}
    if strength <= view.highest_bid:
        return {"action": "pass"}
    return {"action": "call", "value": strength}


def _as_move(combo: Combo) -> Any:
    return {"move": "play", "cards": list(combo.cards)}


class GreedyMinBot(BotStrategy):
    """Lead the cheapest combo and answer with the cheapest winner."""

    name = "GreedyMin"

    def decide_bid(self, view: PlayerView) -> Any:
        return _bid_from_strength(view)

    def decide_play(self, view: PlayerView) -> Any:
        legal = view.legal_moves()
        if not legal:
            return {"move": "pass"}
        if view.lead:
            return _as_move(min(legal, key=lambda c: (len(c.cards), c.main_rank)))
        # Hold bombs and the rocket back while a plain answer exists.
        return _as_move(min(legal, key=lambda c: (c.type in _OVERRIDES, c.main_rank)))


class GreedyMaxBot(BotStrategy):
    """Lead the longest, highest combo and answer with the strongest one."""

    name = "GreedyMax"

    def decide_bid(self, view: PlayerView) -> Any:
        return _bid_from_strength(view)

    def decide_play(self, view: PlayerView) -> Any:
        legal = view.legal_moves()
        if not legal:
            return {"move": "pass"}
        if view.lead:
            return _as_move(max(legal, key=lambda c: (c.length, len(c.cards), c.main_rank)))
        return _as_move(max(legal, key=lambda c: (c.main_rank, c.length)))
