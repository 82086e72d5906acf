"""Deck creation utilities for Dou Dizhu."""

from __future__ import annotations

from random import Random
from typing import List, Optional, Sequence, Tuple

from .cards import Card, JOKER_RANKS, ORDINARY_RANKS, PLAIN_SUITS, Suit

DECK_SIZE = 54
HAND_SIZE = 17
BOTTOM_SIZE = 3


def build_deck() -> List[Card]:
    """Return the ordered 54-card deck."""
    cards = [Card(rank, suit) for rank in ORDINARY_RANKS for suit in PLAIN_SUITS]
    cards.extend(Card(rank, Suit.JOKER) for rank in JOKER_RANKS)
    return cards


def deal_three_player(
    *,
    rng: Optional[Random] = None,
    deck: Optional[Sequence[Card]] = None,
) -> Tuple[List[List[Card]], List[Card]]:
    """Deal three 17-card hands and the 3-card bottom."""
    if deck is not None:
        cards = list(deck)
    else:
        cards = build_deck()
        if rng is None:
            rng = Random()
        rng.shuffle(cards)
    if len(cards) != DECK_SIZE or len(set(cards)) != DECK_SIZE:
        raise ValueError("Deck must contain exactly 54 distinct cards.")

    hands = [cards[seat * HAND_SIZE : (seat + 1) * HAND_SIZE] for seat in range(3)]
    bottom = cards[3 * HAND_SIZE :]
    return hands, bottom
