"""Card-related data structures and helpers for Dou Dizhu."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Sequence


class Suit(Enum):
    SPADES = "S"
    HEARTS = "H"
    CLUBS = "C"
    DIAMONDS = "D"
    JOKER = "J"

    def __str__(self) -> str:
        return self.name.lower()


class Rank(Enum):
    """Ranks valued by playing strength, lowest first."""

    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13
    ACE = 14
    TWO = 15
    SMALL_JOKER = 16
    BIG_JOKER = 17

    def __str__(self) -> str:
        return RANK_FACES[self]


PLAIN_SUITS: tuple[Suit, ...] = (Suit.SPADES, Suit.HEARTS, Suit.CLUBS, Suit.DIAMONDS)

# Rank order from lowest to highest.
RANK_ORDER: list[Rank] = sorted(Rank, key=lambda rank: rank.value)

ORDINARY_RANKS: list[Rank] = [rank for rank in RANK_ORDER if rank.value <= Rank.TWO.value]
JOKER_RANKS: tuple[Rank, Rank] = (Rank.SMALL_JOKER, Rank.BIG_JOKER)

# Straights, pair runs and airplanes only use 3..A.
SEQUENCE_RANKS: list[Rank] = [rank for rank in RANK_ORDER if rank.value <= Rank.ACE.value]

RANK_FACES: dict[Rank, str] = {
    Rank.THREE: "3",
    Rank.FOUR: "4",
    Rank.FIVE: "5",
    Rank.SIX: "6",
    Rank.SEVEN: "7",
    Rank.EIGHT: "8",
    Rank.NINE: "9",
    Rank.TEN: "T",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
    Rank.ACE: "A",
    Rank.TWO: "2",
    Rank.SMALL_JOKER: "SJ",
    Rank.BIG_JOKER: "BJ",
}
FACE_RANKS: dict[str, Rank] = {face: rank for rank, face in RANK_FACES.items()}

SUIT_SYMBOLS: dict[Suit, str] = {
    Suit.SPADES: "♠",
    Suit.HEARTS: "♥",
    Suit.CLUBS: "♣",
    Suit.DIAMONDS: "♦",
    Suit.JOKER: "",
}


@dataclass(frozen=True)
class Card:
    """Immutable representation of a playing card.

    Rank and suit together identify a card; the 54-card deck holds each
    ordinary rank once per plain suit and each joker once.
    """

    rank: Rank
    suit: Suit

    def __post_init__(self) -> None:
        is_joker_rank = self.rank in JOKER_RANKS
        if is_joker_rank != (self.suit is Suit.JOKER):
            raise ValueError(f"Invalid card: {self.rank.name} of {self.suit.name}")

    def __str__(self) -> str:
        return card_code(self)


def sort_cards(cards: Iterable[Card], *, descending: bool = False) -> List[Card]:
    return sorted(cards, key=lambda c: (c.rank.value, c.suit.value), reverse=descending)


def group_by_rank(cards: Iterable[Card]) -> Dict[Rank, List[Card]]:
    groups: Dict[Rank, List[Card]] = {}
    for card in sort_cards(cards):
        groups.setdefault(card.rank, []).append(card)
    return groups


def card_code(card: Card) -> str:
    """Compact code such as ``3S``, ``TH`` or ``BJ``."""
    if card.suit is Suit.JOKER:
        return RANK_FACES[card.rank]
    return f"{RANK_FACES[card.rank]}{card.suit.value}"


def parse_card(code: str) -> Card:
    """Inverse of :func:`card_code`."""
    text = code.strip().upper()
    if text in ("SJ", "BJ"):
        return Card(FACE_RANKS[text], Suit.JOKER)
    if len(text) != 2:
        raise ValueError(f"Unrecognised card code: {code!r}")
    face, suit_code = text[0], text[1]
    if face not in FACE_RANKS:
        raise ValueError(f"Unrecognised rank in card code: {code!r}")
    try:
        suit = Suit(suit_code)
    except ValueError as exc:
        raise ValueError(f"Unrecognised suit in card code: {code!r}") from exc
    return Card(FACE_RANKS[face], suit)


def parse_cards(codes: str | Sequence[str]) -> List[Card]:
    """Parse ``"3S 3H 3D"`` or a list of codes."""
    if isinstance(codes, str):
        codes = codes.split()
    return [parse_card(code) for code in codes]


def serialize_card(card: Card) -> dict[str, str]:
    return {"rank": card.rank.name.lower(), "suit": card.suit.name.lower(), "code": card_code(card)}


def card_label(card: Card) -> str:
    if card.suit is Suit.JOKER:
        return "Small Joker" if card.rank is Rank.SMALL_JOKER else "Big Joker"
    return f"{SUIT_SYMBOLS[card.suit]}{RANK_FACES[card.rank]}"
