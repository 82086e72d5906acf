"""Round orchestration for Dou Dizhu: deal, auction, play and scoring."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, auto
from random import Random
from typing import Any, List, Optional, Sequence, Tuple, Union

from .bidding import Auction, AuctionResult, BiddingError, BidNotAllowed
from .cards import Card
from .combos import Combo, detect_all, find_play, smallest_lead
from .decisions import DecisionRejected, PassMove, parse_bid, parse_play
from .deck import deal_three_player
from .dispatch import INLINE, DecisionDispatcher
from .events import Event, EventBus, EventKind
from .rules_schema import DEFAULT_RULES, RuleSet
from .scoring import RoundScore, score_round
from .service import PlayerView, bidding_view, play_view
from .state import InvalidPlay, PlayRecord, RoundAbortedError, RoundState

logger = logging.getLogger(__name__)

Seed = Union[int, str, None]

INVALID_PAYLOAD = "invalid-payload"
NOT_IN_HAND = "not-in-hand"
ILLEGAL_COMBO = "illegal-combo"
CANNOT_PASS_ON_LEAD = "cannot-pass-on-lead"


class RoundPhase(Enum):
    BIDDING = auto()
    PLAYING = auto()
    SCORING = auto()
    DONE = auto()


@dataclass(frozen=True)
class RoundResult:
    landlord: int
    winner: int
    winner_side: str
    deltas: Tuple[int, int, int]
    multiplier: int
    bid_stake: int
    bombs: int
    rockets: int
    spring: Optional[str]
    turns: int
    redeals: int
    events: Tuple[Event, ...] = field(default=(), repr=False)

    @property
    def landlord_won(self) -> bool:
        return self.winner_side == "landlord"

    def seat_won(self, seat: int) -> bool:
        return (seat == self.landlord) == self.landlord_won


@dataclass
class RoundEngine:
    """Manage a single deal.

    The engine is driven one decision at a time through :meth:`submit_bid`
    and :meth:`submit_play`, or end to end by :meth:`run`. Malformed or
    illegal proposals never raise: they are replaced by the pass (bidding,
    following) or by the smallest legal lead.
    """

    rules: RuleSet = field(default_factory=lambda: DEFAULT_RULES)
    seed: Seed = None
    first_seat: int = 0
    deck: Optional[Sequence[Card]] = None
    bus: Optional[EventBus] = None
    round_no: Optional[int] = None
    group: Optional[int] = None

    phase: RoundPhase = field(init=False, default=RoundPhase.BIDDING)
    state: RoundState = field(init=False)
    auction: Auction = field(init=False)
    redeals: int = field(init=False, default=0)
    events: List[Event] = field(init=False, default_factory=list)
    auction_result: Optional[AuctionResult] = field(init=False, default=None)
    result: Optional[RoundResult] = field(init=False, default=None)
    _rng: Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.first_seat not in (0, 1, 2):
            raise ValueError(f"first_seat must be 0, 1 or 2, got {self.first_seat}.")
        self._rng = Random(self.seed)
        self._deal(self.deck)

    # Phase: bidding ------------------------------------------------------

    def submit_bid(self, seat: int, payload: Any, *, failure: Optional[str] = None) -> str:
        self._ensure_phase(RoundPhase.BIDDING)
        if seat != self.auction.current_player:
            raise BiddingError(f"Seat {seat} bid out of turn.")

        reason = failure
        action = None
        if reason is None:
            try:
                action = parse_bid(payload)
            except DecisionRejected:
                reason = INVALID_PAYLOAD
        recorded = None
        if action is not None:
            try:
                recorded = self.auction.submit(seat, action)
            except BidNotAllowed as exc:
                logger.debug("Seat %d bid rejected: %s", seat, exc)
                reason = INVALID_PAYLOAD
        if recorded is None:
            self._warn_fallback(seat, "bid", reason)
            recorded = self.auction.pass_bid(seat)

        _, _, value = self.auction.history[-1]
        self._emit(
            EventKind.BID,
            seat,
            action=recorded,
            value=value,
            forced=reason is not None,
            reason=reason,
        )
        if self.auction.is_complete():
            self._close_auction()
        return recorded

    def _close_auction(self) -> None:
        outcome = self.auction.result()
        if outcome is None:
            if self.redeals < self.rules.bidding.max_redeals:
                self.redeals += 1
                self._deal(None)
                return
            outcome = AuctionResult(landlord=self.first_seat, bid=1, robs=0)
            logger.info("All seats passed %d redeals; seat %d takes the landlord role", self.redeals, self.first_seat)
        self.auction_result = outcome
        self.state.assign_landlord(outcome.landlord)
        self.phase = RoundPhase.PLAYING
        self._emit(
            EventKind.BID,
            outcome.landlord,
            action="landlord",
            value=outcome.bid,
            robs=outcome.robs,
            stake=self.bid_stake,
            bottom=[str(card) for card in self.state.bottom],
        )

    @property
    def bid_stake(self) -> int:
        if self.auction_result is None:
            return 0
        return self.auction_result.stake(self.rules.bidding, self.rules.scoring.base_stake)

    # Phase: playing ------------------------------------------------------

    def submit_play(self, seat: int, payload: Any, *, failure: Optional[str] = None) -> PlayRecord:
        self._ensure_phase(RoundPhase.PLAYING)
        if seat != self.state.current_player:
            raise InvalidPlay(f"Seat {seat} played out of turn.")

        combo, reason = (None, failure) if failure else self._validate_play(seat, payload)
        if combo is None and reason is None:
            self._apply_pass(seat, forced=False, reason=None)
        elif combo is not None:
            self._apply_play(seat, combo, forced=False, reason=None)
        else:
            self._warn_fallback(seat, "play", reason)
            if self.state.is_lead:
                forced_lead = smallest_lead(self.state.hands[seat], self.rules.combos)
                self._apply_play(seat, forced_lead, forced=True, reason=reason)
            else:
                self._apply_pass(seat, forced=True, reason=reason)

        if self.state.turn > self.rules.max_turns:
            logger.error("Round aborted after %d turns", self.state.turn)
            raise RoundAbortedError(f"Round exceeded {self.rules.max_turns} turns.")
        return self.state.history[-1]

    def _validate_play(self, seat: int, payload: Any) -> Tuple[Optional[Combo], Optional[str]]:
        """Return ``(combo, None)``, ``(None, None)`` for a legal pass, or ``(None, reason)``."""
        try:
            decision = parse_play(payload)
        except DecisionRejected:
            return None, INVALID_PAYLOAD
        if isinstance(decision, PassMove):
            if self.state.is_lead:
                return None, CANNOT_PASS_ON_LEAD
            return None, None

        cards = list(decision.cards)
        held = Counter(self.state.hands[seat])
        if any(count > held[card] for card, count in Counter(cards).items()):
            return None, NOT_IN_HAND
        if not detect_all(cards, self.rules.combos):
            return None, ILLEGAL_COMBO
        combo = find_play(self.state.hands[seat], cards, self.state.requirement, self.rules.combos)
        if combo is None:
            return None, ILLEGAL_COMBO
        return combo, None

    def _apply_play(self, seat: int, combo: Combo, *, forced: bool, reason: Optional[str]) -> None:
        self.state.apply_play(seat, combo, forced=forced, reason=reason)
        logger.debug("Seat %d plays %s", seat, combo.describe())
        self._emit(
            EventKind.PLAY,
            seat,
            combo=combo.to_payload(),
            forced=forced,
            reason=reason,
            remaining=len(self.state.hands[seat]),
        )
        if not self.state.hands[seat]:
            self._emit(EventKind.FINISH, seat, landlord=self.state.landlord)
            self.phase = RoundPhase.SCORING
            self._score(seat)

    def _apply_pass(self, seat: int, *, forced: bool, reason: Optional[str]) -> None:
        reset = self.state.apply_pass(seat, forced=forced, reason=reason)
        self._emit(EventKind.PASS, seat, forced=forced, reason=reason)
        if reset:
            self._emit(EventKind.TRICK_RESET, self.state.current_player, trick=self.state.trick)

    # Phase: scoring ------------------------------------------------------

    def _score(self, winner: int) -> RoundScore:
        self._ensure_phase(RoundPhase.SCORING)
        landlord = self.state.landlord
        assert landlord is not None
        score = score_round(
            landlord=landlord,
            winner=winner,
            bid_stake=self.bid_stake,
            bombs=self.state.bombs,
            rockets=self.state.rockets,
            plays_by_seat=self.state.plays_by_seat,
            config=self.rules.scoring,
        )
        self._emit(
            EventKind.SCORE,
            winner,
            deltas=list(score.deltas),
            multiplier=score.multiplier,
            stake=score.stake,
            spring=score.spring,
        )
        self.phase = RoundPhase.DONE
        self.result = RoundResult(
            landlord=landlord,
            winner=winner,
            winner_side="landlord" if score.landlord_won else "farmers",
            deltas=score.deltas,
            multiplier=score.multiplier,
            bid_stake=self.bid_stake,
            bombs=self.state.bombs,
            rockets=self.state.rockets,
            spring=score.spring,
            turns=self.state.turn,
            redeals=self.redeals,
            events=tuple(self.events),
        )
        return score

    # Driving -------------------------------------------------------------

    def current_seat(self) -> Optional[int]:
        if self.phase is RoundPhase.BIDDING:
            return self.auction.current_player
        if self.phase is RoundPhase.PLAYING:
            return self.state.current_player
        return None

    def view(self, seat: int) -> PlayerView:
        if self.phase is RoundPhase.BIDDING:
            return bidding_view(self.state, self.auction, seat, self.rules)
        return play_view(self.state, self.auction, seat, self.rules)

    def run(self, bots: Sequence[Any], dispatcher: Optional[DecisionDispatcher] = None) -> RoundResult:
        """Play the deal to completion with one bot per seat."""
        if len(bots) != 3:
            raise ValueError("A round needs exactly three bots.")
        dispatcher = dispatcher or INLINE
        bot_seed = Random(f"{self.seed}:bots").randrange(2**31) if self.seed is not None else None
        for seat, bot in enumerate(bots):
            dispatcher.call(f"seat {seat} round-start", bot.on_round_start, seat, bot_seed)

        while self.phase is RoundPhase.BIDDING:
            seat = self.auction.current_player
            outcome = dispatcher.call(f"seat {seat} bid", bots[seat].decide_bid, self.view(seat))
            self.submit_bid(seat, outcome.value, failure=outcome.failure)

        while self.phase is RoundPhase.PLAYING:
            seat = self.state.current_player
            outcome = dispatcher.call(f"seat {seat} play", bots[seat].decide_play, self.view(seat))
            self.submit_play(seat, outcome.value, failure=outcome.failure)

        assert self.result is not None
        return self.result

    # Helpers -------------------------------------------------------------

    def _deal(self, deck: Optional[Sequence[Card]]) -> None:
        hands, bottom = deal_three_player(rng=self._rng, deck=deck)
        self.state = RoundState(hands=hands, bottom=bottom)
        self.auction = Auction(first_seat=self.first_seat, config=self.rules.bidding)
        self._emit(
            EventKind.DEAL,
            None,
            hands=[[str(card) for card in hand] for hand in self.state.hands],
            bottom=[str(card) for card in bottom],
            redeal=self.redeals,
        )

    def _emit(self, kind: EventKind, seat: Optional[int], **payload: Any) -> None:
        event = Event(kind=kind, seat=seat, round=self.round_no, group=self.group, payload=payload)
        self.events.append(event)
        if self.bus is not None:
            self.bus.emit(event)

    def _warn_fallback(self, seat: int, decision: str, reason: Optional[str]) -> None:
        logger.warning(
            "Seat %d %s replaced by fallback (%s) [round=%s group=%s]",
            seat,
            decision,
            reason,
            self.round_no,
            self.group,
        )

    def _ensure_phase(self, expected: RoundPhase) -> None:
        if self.phase != expected:
            raise RuntimeError(f"Action not allowed in phase {self.phase}. Expected {expected}.")


def run_round(
    bots: Sequence[Any],
    *,
    seed: Seed = None,
    rules: Optional[RuleSet] = None,
    first_seat: int = 0,
    dispatcher: Optional[DecisionDispatcher] = None,
    bus: Optional[EventBus] = None,
    round_no: Optional[int] = None,
    group: Optional[int] = None,
) -> RoundResult:
    engine = RoundEngine(
        rules=rules or DEFAULT_RULES,
        seed=seed,
        first_seat=first_seat,
        bus=bus,
        round_no=round_no,
        group=group,
    )
    return engine.run(bots, dispatcher)


@dataclass
class GameSession:
    """Track cumulative scores across several rounds with the same three seats."""

    seed: Seed = None
    rules: RuleSet = field(default_factory=lambda: DEFAULT_RULES)
    scores: List[int] = field(default_factory=lambda: [0, 0, 0])
    current_round: Optional[RoundEngine] = field(default=None, init=False)
    round_history: List[RoundResult] = field(default_factory=list)

    def start_round(self, first_seat: int = 0, *, bus: Optional[EventBus] = None) -> RoundEngine:
        if self.current_round is not None and self.current_round.phase is not RoundPhase.DONE:
            raise RuntimeError("Previous round still in progress.")
        round_seed = None if self.seed is None else f"{self.seed}:{len(self.round_history)}"
        self.current_round = RoundEngine(rules=self.rules, seed=round_seed, first_seat=first_seat, bus=bus)
        return self.current_round

    def finish_round(self) -> RoundResult:
        if self.current_round is None:
            raise RuntimeError("No active round.")
        if self.current_round.phase is not RoundPhase.DONE or self.current_round.result is None:
            raise RuntimeError("Cannot finish round before play is complete.")
        result = self.current_round.result
        self.scores = [score + delta for score, delta in zip(self.scores, result.deltas)]
        self.round_history.append(result)
        self.current_round = None
        return result
