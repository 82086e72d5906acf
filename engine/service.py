"""Read-only views handed to bots and external clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .bidding import Auction
from .cards import Card, card_label, serialize_card
from .combos import Combo, enumerate_responses
from .rules_schema import RuleSet
from .state import PlayRecord, RoundState


@dataclass(frozen=True)
class PlayerView:
    """Snapshot of what one seat may see. Holds no references to live state."""

    seat: int
    phase: str
    hand: Tuple[Card, ...]
    landlord: Optional[int]
    requirement: Optional[Combo]
    lead: bool
    history: Tuple[PlayRecord, ...]
    observed: Tuple[Tuple[Card, ...], ...]
    remaining: Tuple[int, int, int]
    trick: int
    turn: int
    bids: Tuple[Tuple[int, str, Optional[int]], ...]
    highest_bid: int
    bottom: Tuple[Card, ...]
    rules: RuleSet

    @property
    def can_pass(self) -> bool:
        return not self.lead

    def legal_moves(self) -> List[Combo]:
        return enumerate_responses(self.hand, self.requirement, self.rules.combos)

    def to_dict(self) -> dict:
        return {
            "seat": self.seat,
            "phase": self.phase,
            "hand": [serialize_card(card) for card in self.hand],
            "hand_labels": [card_label(card) for card in self.hand],
            "landlord": self.landlord,
            "requirement": self.requirement.to_payload() if self.requirement else None,
            "lead": self.lead,
            "history": [
                {
                    "seat": record.seat,
                    "turn": record.turn,
                    "move": "pass" if record.is_pass else "play",
                    "combo": record.combo.to_payload() if record.combo else None,
                }
                for record in self.history
            ],
            "remaining": list(self.remaining),
            "trick": self.trick,
            "bids": [{"seat": seat, "action": action, "value": value} for seat, action, value in self.bids],
            "highest_bid": self.highest_bid,
            "bottom": [str(card) for card in self.bottom],
            "bid_mode": self.rules.bidding.mode,
        }


def bidding_view(state: RoundState, auction: Auction, seat: int, rules: RuleSet) -> PlayerView:
    return PlayerView(
        seat=seat,
        phase="bidding",
        hand=tuple(state.hands[seat]),
        landlord=None,
        requirement=None,
        lead=False,
        history=(),
        observed=((), (), ()),
        remaining=(len(state.hands[0]), len(state.hands[1]), len(state.hands[2])),
        trick=0,
        turn=0,
        bids=tuple(auction.history),
        highest_bid=auction.highest_bid,
        bottom=(),
        rules=rules,
    )


def play_view(state: RoundState, auction: Optional[Auction], seat: int, rules: RuleSet) -> PlayerView:
    return PlayerView(
        seat=seat,
        phase="playing",
        hand=tuple(state.hands[seat]),
        landlord=state.landlord,
        requirement=state.requirement,
        lead=state.requirement is None,
        history=tuple(state.history),
        observed=state.observed_plays(),
        remaining=(len(state.hands[0]), len(state.hands[1]), len(state.hands[2])),
        trick=state.trick,
        turn=state.turn,
        bids=tuple(auction.history) if auction else (),
        highest_bid=auction.highest_bid if auction else 0,
        bottom=tuple(state.bottom),
        rules=rules,
    )
