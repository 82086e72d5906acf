"""Landlord auction for Dou Dizhu (call-score and rob variants)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple, Union

from .decisions import CallBid, NoRobBid, PassBid, RobBid
from .rules_schema import BiddingConfig

BidAction = Union[PassBid, CallBid, RobBid, NoRobBid]


class BiddingError(ValueError):
    """Base class for bidding related errors."""


class BidNotAllowed(BiddingError):
    """Raised when a bid is out of range or of the wrong kind for the mode."""


class AuctionPhase(Enum):
    ACTIVE = auto()
    COMPLETE = auto()


@dataclass(frozen=True)
class AuctionResult:
    landlord: int
    bid: int
    robs: int = 0

    def stake(self, config: BiddingConfig, base_stake: int = 1) -> int:
        if config.mode == "rob":
            if config.rob_doubles_stake:
                return base_stake * (2 ** self.robs)
            return base_stake
        return base_stake * self.bid


@dataclass
class Auction:
    """Poll each seat once, starting from ``first_seat``."""

    first_seat: int
    config: BiddingConfig = field(default_factory=BiddingConfig)
    phase: AuctionPhase = AuctionPhase.ACTIVE
    current_player: int = field(init=False)
    highest_bid: int = 0
    highest_bidder: Optional[int] = None
    robs: int = 0
    polled: int = 0
    history: List[Tuple[int, str, Optional[int]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.first_seat not in (0, 1, 2):
            raise BiddingError(f"Invalid first seat {self.first_seat}.")
        self.current_player = self.first_seat

    def submit(self, seat: int, action: BidAction) -> str:
        """Apply ``action`` for ``seat``; return the action as recorded."""
        self._ensure_active(seat)
        if self.config.mode == "call-score":
            recorded = self._submit_call(seat, action)
        else:
            recorded = self._submit_rob(seat, action)
        self._advance()
        return recorded

    def pass_bid(self, seat: int) -> str:
        return self.submit(seat, PassBid())

    def _submit_call(self, seat: int, action: BidAction) -> str:
        if isinstance(action, PassBid):
            self.history.append((seat, "pass", None))
            return "pass"
        if not isinstance(action, CallBid):
            raise BidNotAllowed(f"'{action.action}' is not a call-score bid.")
        if not 1 <= action.value <= self.config.max_call:
            raise BidNotAllowed(f"Call {action.value} outside 1..{self.config.max_call}.")
        if action.value <= self.highest_bid:
            # A call that does not raise is treated as a pass.
            self.history.append((seat, "pass", action.value))
            return "pass"
        self.highest_bid = action.value
        self.highest_bidder = seat
        self.history.append((seat, "call", action.value))
        if action.value == self.config.max_call:
            self.phase = AuctionPhase.COMPLETE
        return "call"

    def _submit_rob(self, seat: int, action: BidAction) -> str:
        if isinstance(action, (PassBid, NoRobBid)):
            self.history.append((seat, "no-rob", None))
            return "no-rob"
        if not isinstance(action, RobBid):
            raise BidNotAllowed(f"'{action.action}' is not a rob-mode bid.")
        if self.highest_bidder is not None:
            self.robs += 1
        self.highest_bidder = seat
        self.highest_bid = 1
        self.history.append((seat, "rob", self.robs))
        return "rob"

    def _advance(self) -> None:
        self.polled += 1
        if self.phase is AuctionPhase.COMPLETE:
            self.current_player = -1
            return
        if self.polled >= 3:
            self.phase = AuctionPhase.COMPLETE
            self.current_player = -1
            return
        self.current_player = (self.current_player + 1) % 3

    def _ensure_active(self, seat: int) -> None:
        if self.phase is AuctionPhase.COMPLETE:
            raise BiddingError("Auction already complete.")
        if seat != self.current_player:
            raise BiddingError("Not this seat's turn to act in the auction.")

    def is_complete(self) -> bool:
        return self.phase is AuctionPhase.COMPLETE

    def all_passed(self) -> bool:
        return self.is_complete() and self.highest_bidder is None

    def result(self) -> Optional[AuctionResult]:
        """Winning seat and bid, or ``None`` when every seat passed."""
        if not self.is_complete():
            raise BiddingError("Auction not yet complete.")
        if self.highest_bidder is None:
            return None
        return AuctionResult(landlord=self.highest_bidder, bid=self.highest_bid, robs=self.robs)
