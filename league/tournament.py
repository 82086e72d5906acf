"""Seeded elimination tournament for Dou Dizhu bots.

Survivors are shuffled into disjoint groups of three each round. Every group
plays a fixed series, rotating through the three canonical seatings, and its
member with the lowest conservative rating is eliminated. When the survivor
count is not a multiple of three the lowest-rated surplus is dropped before
grouping. Three survivors play a final series without elimination.

:class:`EliminationTournament` exposes the bracket as an incremental protocol
(``next_assignment`` / ``record_game`` / ``complete_assignment``) so that an
external driver can stream games; :func:`run_elimination` drives the same
protocol with the built-in round engine.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from functools import cmp_to_key
from random import Random
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from engine.dispatch import DecisionDispatcher
from engine.events import Event, EventBus, EventKind
from engine.game import RoundResult, run_round
from engine.rules_schema import RuleSet

from .rating import Rating, RatingConfig, conservative_score, update_landlord_game

logger = logging.getLogger(__name__)

DEFAULT_SEED = 0x13579BDF
DEFAULT_GAMES_PER_ROUND = 100
SEAT_ORDERS: Tuple[Tuple[int, int, int], ...] = ((0, 1, 2), (1, 2, 0), (2, 0, 1))
INSUFFICIENT_SLOTS = "insufficient-slots"
LADDER_TOLERANCE = 1e-9


class TournamentConfigError(ValueError):
    """Raised before any game runs when the tournament cannot be set up."""


class TournamentStateError(RuntimeError):
    """Raised when the incremental protocol is driven out of order."""


class TournamentOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    games_per_round: int = Field(DEFAULT_GAMES_PER_ROUND, gt=0)
    seed: int = DEFAULT_SEED
    rating: RatingConfig = Field(default_factory=RatingConfig)
    rules: RuleSet = Field(default_factory=RuleSet)
    decision_timeout: Optional[float] = Field(5.0, gt=0)
    max_workers: int = Field(1, ge=1)


@dataclass(frozen=True)
class Participant:
    id: str
    label: Optional[str] = None
    bot_factory: Optional[Callable[[], Any]] = field(default=None, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        return self.label or self.id


@dataclass
class PlayerStats:
    games: int = 0
    wins: int = 0
    landlord_games: int = 0
    landlord_wins: int = 0
    farmer_games: int = 0
    farmer_wins: int = 0
    score_sum: int = 0

    def copy(self) -> "PlayerStats":
        return replace(self)

    def minus(self, before: "PlayerStats") -> "PlayerStats":
        return PlayerStats(
            games=self.games - before.games,
            wins=self.wins - before.wins,
            landlord_games=self.landlord_games - before.landlord_games,
            landlord_wins=self.landlord_wins - before.landlord_wins,
            farmer_games=self.farmer_games - before.farmer_games,
            farmer_wins=self.farmer_wins - before.farmer_wins,
            score_sum=self.score_sum - before.score_sum,
        )


@dataclass
class PlayerRecord:
    participant: Participant
    rating: Rating
    stats: PlayerStats = field(default_factory=PlayerStats)
    eliminated_round: Optional[int] = None

    @property
    def id(self) -> str:
        return self.participant.id

    @property
    def ladder(self) -> float:
        return conservative_score(self.rating)

    def snapshot(self) -> "PlayerSnapshot":
        return PlayerSnapshot(
            id=self.id,
            label=self.participant.display_name,
            rating=self.rating,
            ladder=self.ladder,
            stats=self.stats.copy(),
            eliminated_round=self.eliminated_round,
        )


@dataclass(frozen=True)
class PlayerSnapshot:
    id: str
    label: str
    rating: Rating
    ladder: float
    stats: PlayerStats
    eliminated_round: Optional[int]


@dataclass(frozen=True)
class PlayerRoundDelta:
    player: PlayerSnapshot
    delta: PlayerStats


@dataclass(frozen=True)
class GroupResult:
    round: int
    group_index: int
    players: Tuple[PlayerRoundDelta, ...]
    eliminated: Optional[PlayerSnapshot]


@dataclass(frozen=True)
class AutoElimination:
    round: int
    reason: str
    player: PlayerSnapshot


@dataclass
class RoundSummary:
    round: int
    groups: List[GroupResult] = field(default_factory=list)
    auto_eliminated: List[AutoElimination] = field(default_factory=list)


@dataclass(frozen=True)
class FinalRoundSummary:
    games: int
    group: GroupResult


@dataclass(frozen=True)
class TournamentResult:
    rounds: Tuple[RoundSummary, ...]
    final_round: Optional[FinalRoundSummary]
    standings: Tuple[PlayerSnapshot, ...]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GameRecord:
    """Outcome of one game. ``player_ids`` lists the participants by seat."""

    player_ids: Tuple[str, str, str]
    landlord: int
    winner: int
    deltas: Tuple[int, int, int]

    @property
    def landlord_won(self) -> bool:
        return self.winner == self.landlord

    @classmethod
    def from_round(cls, player_ids: Sequence[str], result: RoundResult) -> "GameRecord":
        return cls(
            player_ids=(player_ids[0], player_ids[1], player_ids[2]),
            landlord=result.landlord,
            winner=result.winner,
            deltas=result.deltas,
        )


@dataclass(frozen=True)
class Assignment:
    """One group series the driver must play."""

    round: int
    group_index: int
    player_ids: Tuple[str, str, str]
    games: int
    eliminate: bool
    seed: int

    @property
    def is_final(self) -> bool:
        return not self.eliminate

    def seating(self, game_index: int) -> Tuple[str, str, str]:
        order = SEAT_ORDERS[game_index % len(SEAT_ORDERS)]
        return (self.player_ids[order[0]], self.player_ids[order[1]], self.player_ids[order[2]])

    def game_seed(self, game_index: int) -> str:
        return f"{self.seed}:{self.round}:{self.group_index}:{game_index}"


def sort_standings(records: Sequence[PlayerRecord]) -> List[PlayerSnapshot]:
    """Ladder descending; ties go to the later (or absent) elimination round.

    Ladders within ``LADDER_TOLERANCE`` of each other count as tied.
    """

    def eliminated(snap: PlayerSnapshot) -> float:
        return math.inf if snap.eliminated_round is None else snap.eliminated_round

    def compare(a: PlayerSnapshot, b: PlayerSnapshot) -> int:
        if abs(a.ladder - b.ladder) > LADDER_TOLERANCE:
            return -1 if a.ladder > b.ladder else 1
        if eliminated(a) == eliminated(b):
            return 0
        return -1 if eliminated(a) > eliminated(b) else 1

    return sorted((record.snapshot() for record in records), key=cmp_to_key(compare))


def _build_options(options: Any) -> TournamentOptions:
    if options is None:
        return TournamentOptions()
    if isinstance(options, TournamentOptions):
        return options
    try:
        return TournamentOptions.model_validate(options)
    except ValidationError as exc:
        raise TournamentConfigError(str(exc)) from exc


class EliminationTournament:
    """Incremental elimination bracket."""

    def __init__(
        self,
        participants: Sequence[Participant],
        options: Any = None,
        *,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.options = _build_options(options)
        if len(participants) < 3:
            raise TournamentConfigError(f"At least 3 participants are required, got {len(participants)}.")
        ids = [participant.id for participant in participants]
        duplicates = sorted({pid for pid in ids if ids.count(pid) > 1})
        if duplicates:
            raise TournamentConfigError(f"Duplicate participant ids: {duplicates}")

        self.bus = bus
        self.records: List[PlayerRecord] = [
            PlayerRecord(participant=participant, rating=self.options.rating.initial())
            for participant in participants
        ]
        self._by_id: Dict[str, PlayerRecord] = {record.id: record for record in self.records}
        self.survivors: List[PlayerRecord] = list(self.records)
        self.round = 1
        self.rounds: List[RoundSummary] = []
        self.final_round: Optional[FinalRoundSummary] = None
        self._rng = Random(self.options.seed)
        self._summary: Optional[RoundSummary] = None
        self._queue: Deque[Assignment] = deque()
        self._current: Optional[Assignment] = None
        self._games_recorded = 0
        self._before: Dict[str, PlayerStats] = {}
        self._finished = False

    # Protocol ------------------------------------------------------------

    @property
    def is_finished(self) -> bool:
        return self._finished

    def participant(self, player_id: str) -> Participant:
        return self._record(player_id).participant

    def next_assignment(self) -> Optional[Assignment]:
        """Return the series to play next, or ``None`` once the bracket is done."""
        if self._current is not None:
            return self._current
        if not self._queue and not self._finished:
            self._plan()
        if not self._queue:
            return None
        self._current = self._queue.popleft()
        self._games_recorded = 0
        self._before = {pid: self._by_id[pid].stats.copy() for pid in self._current.player_ids}
        return self._current

    def queued_assignments(self) -> List[Assignment]:
        """Series planned for the current round after the active one."""
        return list(self._queue)

    def record_game(self, record: GameRecord) -> None:
        assignment = self._require_current()
        if self._games_recorded >= assignment.games:
            raise TournamentStateError(f"Series already has its {assignment.games} games.")
        if sorted(record.player_ids) != sorted(assignment.player_ids):
            unknown = [pid for pid in record.player_ids if pid not in assignment.player_ids]
            raise TournamentStateError(f"Game players {list(record.player_ids)} do not match the group; unknown={unknown}")
        if record.landlord not in (0, 1, 2) or record.winner not in (0, 1, 2):
            raise TournamentStateError("Landlord and winner must be seats 0, 1 or 2.")

        seats = [self._by_id[pid] for pid in record.player_ids]
        ratings = update_landlord_game(
            [player.rating for player in seats],
            record.landlord,
            record.landlord_won,
            self.options.rating,
        )
        for seat, player in enumerate(seats):
            player.rating = ratings[seat]
            stats = player.stats
            stats.games += 1
            won = seat == record.winner
            if seat == record.landlord:
                stats.landlord_games += 1
                stats.landlord_wins += int(won)
            else:
                stats.farmer_games += 1
                stats.farmer_wins += int(won)
            stats.wins += int(won)
            stats.score_sum += record.deltas[seat]
        self._games_recorded += 1

    def complete_assignment(self) -> GroupResult:
        assignment = self._require_current()
        if self._games_recorded != assignment.games:
            raise TournamentStateError(
                f"Series incomplete: {self._games_recorded}/{assignment.games} games recorded."
            )
        members = [self._by_id[pid] for pid in assignment.player_ids]
        eliminated: Optional[PlayerSnapshot] = None
        if assignment.eliminate:
            lowest = members[0]
            for member in members[1:]:
                if member.ladder < lowest.ladder:
                    lowest = member
            lowest.eliminated_round = assignment.round
            self.survivors = [record for record in self.survivors if record is not lowest]
            eliminated = lowest.snapshot()
            logger.info("Round %d group %d: eliminated %s (ladder %.2f)", assignment.round, assignment.group_index, lowest.id, lowest.ladder)
            self._emit(EventKind.ELIMINATED, assignment.round, assignment.group_index, player=lowest.id, reason="lowest-in-group")

        group = GroupResult(
            round=assignment.round,
            group_index=assignment.group_index,
            players=tuple(
                PlayerRoundDelta(player=member.snapshot(), delta=member.stats.minus(self._before[member.id]))
                for member in members
            ),
            eliminated=eliminated,
        )
        self._current = None
        self._before = {}

        if assignment.is_final:
            self.final_round = FinalRoundSummary(games=assignment.games, group=group)
            self._finished = True
            self._emit(EventKind.ROUND_END, assignment.round, None, final=True)
        else:
            assert self._summary is not None
            self._summary.groups.append(group)
            if not self._queue:
                self._close_round()
        return group

    def result(self) -> TournamentResult:
        if not self._finished:
            raise TournamentStateError("Tournament still in progress.")
        return TournamentResult(
            rounds=tuple(self.rounds),
            final_round=self.final_round,
            standings=tuple(sort_standings(self.records)),
        )

    # Planning ------------------------------------------------------------

    def _plan(self) -> None:
        if len(self.survivors) > 3:
            self._summary = RoundSummary(round=self.round)
            self._emit(EventKind.ROUND_START, self.round, None, survivors=[r.id for r in self.survivors])
            remainder = len(self.survivors) % 3
            if remainder:
                self._auto_eliminate(remainder)
                if len(self.survivors) <= 3:
                    self.rounds.append(self._summary)
                    self._summary = None
                    self._emit(EventKind.ROUND_END, self.round, None, final=False)
                    self._plan_final()
                    return
            pool = list(self.survivors)
            self._rng.shuffle(pool)
            for index in range(len(pool) // 3):
                trio = pool[index * 3 : index * 3 + 3]
                self._queue.append(self._assignment(index, trio, eliminate=True))
            return
        self._plan_final()

    def _plan_final(self) -> None:
        if len(self.survivors) == 3 and self.final_round is None:
            self._emit(EventKind.ROUND_START, self.round, None, survivors=[r.id for r in self.survivors], final=True)
            self._queue.append(self._assignment(0, self.survivors, eliminate=False))
        else:
            self._finished = True

    def _auto_eliminate(self, count: int) -> None:
        assert self._summary is not None
        ranked = sorted(self.survivors, key=lambda record: record.ladder)
        dropped = ranked[:count]
        for record in dropped:
            record.eliminated_round = self.round
            self._summary.auto_eliminated.append(
                AutoElimination(round=self.round, reason=INSUFFICIENT_SLOTS, player=record.snapshot())
            )
            logger.info("Round %d: %s dropped (%s)", self.round, record.id, INSUFFICIENT_SLOTS)
            self._emit(EventKind.ELIMINATED, self.round, None, player=record.id, reason=INSUFFICIENT_SLOTS)
        self.survivors = [record for record in self.survivors if record not in dropped]

    def _close_round(self) -> None:
        assert self._summary is not None
        self.rounds.append(self._summary)
        self._emit(EventKind.ROUND_END, self.round, None, final=False)
        self._summary = None
        self.round += 1

    def _assignment(self, index: int, trio: Sequence[PlayerRecord], *, eliminate: bool) -> Assignment:
        return Assignment(
            round=self.round,
            group_index=index,
            player_ids=(trio[0].id, trio[1].id, trio[2].id),
            games=self.options.games_per_round,
            eliminate=eliminate,
            seed=self.options.seed,
        )

    # Helpers -------------------------------------------------------------

    def _record(self, player_id: str) -> PlayerRecord:
        try:
            return self._by_id[player_id]
        except KeyError as exc:
            raise TournamentStateError(f"Unknown player id {player_id!r}.") from exc

    def _require_current(self) -> Assignment:
        if self._current is None:
            raise TournamentStateError("No active assignment; call next_assignment() first.")
        return self._current

    def _emit(self, kind: EventKind, round_no: int, group: Optional[int], **payload: Any) -> None:
        if self.bus is not None:
            self.bus.emit(Event(kind=kind, round=round_no, group=group, payload=payload))


# Blocking runner -----------------------------------------------------------


def play_series(
    assignment: Assignment,
    participants: Dict[str, Participant],
    rules: RuleSet,
    *,
    dispatcher: Optional[DecisionDispatcher] = None,
    bus: Optional[EventBus] = None,
) -> List[GameRecord]:
    """Play every game of ``assignment`` and return the records in game order."""
    bots = {}
    for pid in assignment.player_ids:
        factory = participants[pid].bot_factory
        if factory is None:
            raise TournamentConfigError(f"Participant {pid!r} has no bot factory.")
        bots[pid] = factory()

    records: List[GameRecord] = []
    for game in range(assignment.games):
        seating = assignment.seating(game)
        result = run_round(
            [bots[pid] for pid in seating],
            seed=assignment.game_seed(game),
            rules=rules,
            dispatcher=dispatcher,
            bus=bus,
            round_no=assignment.round,
            group=assignment.group_index,
        )
        records.append(GameRecord.from_round(seating, result))
    return records


def run_elimination(
    participants: Sequence[Participant],
    options: Any = None,
    *,
    bus: Optional[EventBus] = None,
) -> TournamentResult:
    """Run the whole bracket with the built-in round engine.

    Disjoint groups of a round are played concurrently on ``max_workers``
    threads; their results are fed back in group order.
    """
    tournament = EliminationTournament(participants, options, bus=bus)
    opts = tournament.options
    by_id = {participant.id: participant for participant in participants}
    missing = [participant.id for participant in participants if participant.bot_factory is None]
    if missing:
        raise TournamentConfigError(f"Participants without a bot factory: {missing}")

    dispatcher = DecisionDispatcher(timeout=opts.decision_timeout, max_workers=max(4, 2 * opts.max_workers))
    try:
        with ThreadPoolExecutor(max_workers=opts.max_workers, thread_name_prefix="ddz-series") as pool:
            while True:
                first = tournament.next_assignment()
                if first is None:
                    break
                batch = [first, *tournament.queued_assignments()]
                futures = [
                    pool.submit(play_series, assignment, by_id, opts.rules, dispatcher=dispatcher, bus=bus)
                    for assignment in batch
                ]
                for assignment, future in zip(batch, futures):
                    records = future.result()
                    current = tournament.next_assignment()
                    if current != assignment:
                        raise TournamentStateError("Assignment order changed while a round was running.")
                    for record in records:
                        tournament.record_game(record)
                    tournament.complete_assignment()
    finally:
        dispatcher.close()
    return tournament.result()
