"""Tagged decision payloads returned by bots, validated at the engine boundary."""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .cards import Card, parse_card
from .combos import Combo


class DecisionModel(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")


class PassBid(DecisionModel):
    action: Literal["pass"] = "pass"


class CallBid(DecisionModel):
    action: Literal["call"] = "call"
    value: int = Field(..., ge=1)


class RobBid(DecisionModel):
    action: Literal["rob"] = "rob"


class NoRobBid(DecisionModel):
    action: Literal["no-rob"] = "no-rob"


BidDecision = Annotated[Union[PassBid, CallBid, RobBid, NoRobBid], Field(discriminator="action")]


class PassMove(DecisionModel):
    move: Literal["pass"] = "pass"


class PlayMove(DecisionModel):
    move: Literal["play"] = "play"
    cards: List[Card] = Field(..., min_length=1)

    @field_validator("cards", mode="before")
    @classmethod
    def coerce_cards(cls, value: Any) -> List[Card]:
        if isinstance(value, str):
            value = value.split()
        if not isinstance(value, (list, tuple)):
            raise ValueError("cards must be a list of Card objects or card codes.")
        cards: List[Card] = []
        for item in value:
            if isinstance(item, Card):
                cards.append(item)
            elif isinstance(item, str):
                cards.append(parse_card(item))
            else:
                raise ValueError(f"Unsupported card entry: {item!r}")
        return cards


PlayDecision = Annotated[Union[PassMove, PlayMove], Field(discriminator="move")]

_BID_ADAPTER: TypeAdapter = TypeAdapter(BidDecision)
_PLAY_ADAPTER: TypeAdapter = TypeAdapter(PlayDecision)


class DecisionRejected(ValueError):
    """A bot payload that failed boundary validation."""


def parse_bid(payload: Any) -> Union[PassBid, CallBid, RobBid, NoRobBid]:
    """Validate a bid payload; ``None`` is read as a pass."""
    if isinstance(payload, (PassBid, CallBid, RobBid, NoRobBid)):
        return payload
    if payload is None:
        return PassBid()
    if isinstance(payload, int) and not isinstance(payload, bool):
        payload = {"action": "call", "value": payload}
    try:
        return _BID_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise DecisionRejected(str(exc)) from exc


def parse_play(payload: Any) -> Union[PassMove, PlayMove]:
    """Validate a play payload; a returned ``Combo`` counts as playing its cards."""
    if isinstance(payload, (PassMove, PlayMove)):
        return payload
    if isinstance(payload, Combo):
        if payload.is_pass:
            return PassMove()
        return PlayMove(cards=list(payload.cards))
    try:
        return _PLAY_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise DecisionRejected(str(exc)) from exc


def play_cards(payload: Any) -> Optional[List[Card]]:
    """Shortcut returning the proposed cards, or ``None`` for a pass."""
    decision = parse_play(payload)
    if isinstance(decision, PassMove):
        return None
    return list(decision.cards)
