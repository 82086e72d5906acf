"""Per-deal play state for Dou Dizhu."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .cards import Card, sort_cards
from .combos import Combo, ComboType
from .deck import DECK_SIZE


class EngineDefectError(RuntimeError):
    """An internal inconsistency: the engine, not a bot, is at fault."""


class CardAccountingError(EngineDefectError):
    """Hands, bottom and played cards no longer add up to the deck."""


class RoundAbortedError(EngineDefectError):
    """The round exceeded its turn ceiling without finishing."""


class InvalidPlay(RuntimeError):
    """Raised when a play is applied out of turn or with cards not held."""


@dataclass(frozen=True)
class PlayRecord:
    """One entry of the play history; ``combo`` is ``None`` for a pass."""

    turn: int
    seat: int
    combo: Optional[Combo]
    forced: bool = False
    reason: Optional[str] = None

    @property
    def is_pass(self) -> bool:
        return self.combo is None


@dataclass
class RoundState:
    hands: List[List[Card]]
    bottom: List[Card]
    landlord: Optional[int] = None
    current_player: int = 0
    requirement: Optional[Combo] = None
    passes: int = 0
    last_player: Optional[int] = None
    turn: int = 0
    trick: int = 0
    played: List[Card] = field(default_factory=list)
    history: List[PlayRecord] = field(default_factory=list)
    plays_by_seat: List[int] = field(default_factory=lambda: [0, 0, 0])
    bombs: int = 0
    rockets: int = 0

    def __post_init__(self) -> None:
        if len(self.hands) != 3:
            raise ValueError("RoundState supports exactly three seats.")
        self.hands = [sort_cards(hand) for hand in self.hands]
        self.bottom = list(self.bottom)
        self.assert_conservation()

    @property
    def is_lead(self) -> bool:
        return self.requirement is None

    def assign_landlord(self, seat: int) -> None:
        if self.landlord is not None:
            raise InvalidPlay("Landlord already assigned.")
        self.landlord = seat
        self.hands[seat] = sort_cards(self.hands[seat] + self.bottom)
        self.current_player = seat
        self.assert_conservation()

    def apply_play(self, seat: int, combo: Combo, *, forced: bool = False, reason: Optional[str] = None) -> None:
        self._ensure_turn(seat)
        hand = self.hands[seat]
        remaining = list(hand)
        for card in combo.cards:
            if card not in remaining:
                raise InvalidPlay(f"Card {card} not held by seat {seat}.")
            remaining.remove(card)
        self.hands[seat] = remaining
        self.played.extend(combo.cards)
        self.history.append(PlayRecord(self.turn, seat, combo, forced, reason))
        self.plays_by_seat[seat] += 1
        if combo.type is ComboType.BOMB:
            self.bombs += 1
        elif combo.type is ComboType.ROCKET:
            self.rockets += 1
        self.requirement = combo
        self.last_player = seat
        self.passes = 0
        self.turn += 1
        self.assert_conservation()
        if not self.hands[seat]:
            return
        self.current_player = (seat + 1) % 3

    def apply_pass(self, seat: int, *, forced: bool = False, reason: Optional[str] = None) -> bool:
        """Record a pass; return True when it completes a trick reset."""
        self._ensure_turn(seat)
        if self.requirement is None:
            raise InvalidPlay("Cannot pass while leading.")
        self.history.append(PlayRecord(self.turn, seat, None, forced, reason))
        self.passes += 1
        self.turn += 1
        if self.passes >= 2 and self.last_player is not None:
            self.requirement = None
            self.passes = 0
            self.trick += 1
            self.current_player = self.last_player
            return True
        self.current_player = (seat + 1) % 3
        return False

    def winner(self) -> Optional[int]:
        for seat, hand in enumerate(self.hands):
            if not hand:
                return seat
        return None

    def observed_plays(self) -> Tuple[Tuple[Card, ...], ...]:
        seen: List[List[Card]] = [[], [], []]
        for record in self.history:
            if record.combo is not None:
                seen[record.seat].extend(record.combo.cards)
        return tuple(tuple(cards) for cards in seen)

    def assert_conservation(self) -> None:
        held: List[Card] = [card for hand in self.hands for card in hand]
        if self.landlord is None:
            held.extend(self.bottom)
        held.extend(self.played)
        duplicates = [card for card, count in Counter(held).items() if count > 1]
        if len(held) != DECK_SIZE or duplicates:
            raise CardAccountingError(
                f"Card accounting mismatch: {len(held)} cards tracked, duplicates={sorted(map(str, duplicates))}"
            )

    def _ensure_turn(self, seat: int) -> None:
        if self.landlord is None:
            raise InvalidPlay("No landlord assigned yet.")
        if seat != self.current_player:
            raise InvalidPlay(f"Not seat {seat}'s turn.")
        if self.winner() is not None:
            raise InvalidPlay("Round already finished.")
