"""Combo detection, enumeration and comparison for Dou Dizhu.

Combos are identified by their rank multiset, not by the suits of the cards
they consume: two pairs of sevens are the same combo. Ambiguous card sets
(for example a body of triples that could anchor two different airplane
runs) produce one interpretation per valid decomposition; callers choose.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .cards import Card, Rank, SEQUENCE_RANKS, group_by_rank, sort_cards
from .rules_schema import ComboConfig

MIN_STRAIGHT = 5
MIN_PAIR_RUN = 3
MIN_AIRPLANE = 2

_SEQUENCE_VALUES = frozenset(rank.value for rank in SEQUENCE_RANKS)
_HIGH_VALUES = frozenset((Rank.TWO.value, Rank.SMALL_JOKER.value, Rank.BIG_JOKER.value))
_ROCKET_VALUES = (Rank.SMALL_JOKER.value, Rank.BIG_JOKER.value)


class ComboError(ValueError):
    """Raised when a combo cannot be built or compared."""


class ComboType(Enum):
    PASS = "pass"
    SINGLE = "single"
    PAIR = "pair"
    TRIPLE = "triple"
    TRIPLE_SINGLE = "triple-single"
    TRIPLE_PAIR = "triple-pair"
    STRAIGHT = "straight"
    PAIR_STRAIGHT = "pair-straight"
    AIRPLANE = "airplane"
    AIRPLANE_SINGLES = "airplane-singles"
    AIRPLANE_PAIRS = "airplane-pairs"
    FOUR_TWO_SINGLES = "four-two-singles"
    FOUR_TWO_PAIRS = "four-two-pairs"
    BOMB = "bomb"
    ROCKET = "rocket"


SEQUENCE_TYPES = frozenset(
    {
        ComboType.STRAIGHT,
        ComboType.PAIR_STRAIGHT,
        ComboType.AIRPLANE,
        ComboType.AIRPLANE_SINGLES,
        ComboType.AIRPLANE_PAIRS,
    }
)

# Display/sort weight, weakest shapes first.
TYPE_WEIGHT: Dict[ComboType, int] = {
    ComboType.PASS: 0,
    ComboType.SINGLE: 100,
    ComboType.PAIR: 120,
    ComboType.TRIPLE: 200,
    ComboType.TRIPLE_SINGLE: 220,
    ComboType.TRIPLE_PAIR: 230,
    ComboType.STRAIGHT: 280,
    ComboType.PAIR_STRAIGHT: 300,
    ComboType.AIRPLANE: 400,
    ComboType.AIRPLANE_SINGLES: 420,
    ComboType.AIRPLANE_PAIRS: 430,
    ComboType.FOUR_TWO_SINGLES: 500,
    ComboType.FOUR_TWO_PAIRS: 510,
    ComboType.BOMB: 900,
    ComboType.ROCKET: 1000,
}


@dataclass(frozen=True)
class Combo:
    """A legally shaped play.

    ``main_rank`` is the comparison anchor (the highest rank of the run for
    sequence types, the triple or quad rank for winged shapes). ``length`` is
    the run length for sequence types and 1 otherwise.
    """

    type: ComboType
    main_rank: int
    length: int = 1
    cards: Tuple[Card, ...] = ()

    @property
    def key(self) -> Tuple[ComboType, int, int, Tuple[int, ...]]:
        return (self.type, self.main_rank, self.length, tuple(sorted(card.rank.value for card in self.cards)))

    @property
    def is_pass(self) -> bool:
        return self.type is ComboType.PASS

    def describe(self) -> str:
        if self.is_pass:
            return "pass"
        codes = " ".join(str(card) for card in sort_cards(self.cards))
        return f"{self.type.value}[{codes}]"

    def to_payload(self) -> dict:
        return {
            "type": self.type.value,
            "main_rank": self.main_rank,
            "length": self.length,
            "cards": [str(card) for card in sort_cards(self.cards)],
        }


PASS = Combo(ComboType.PASS, 0, 0, ())


def _is_run(values: Sequence[int]) -> bool:
    if any(value not in _SEQUENCE_VALUES for value in values):
        return False
    return all(values[i] == values[i - 1] + 1 for i in range(1, len(values)))


def _wings_ok(values: Iterable[int], config: ComboConfig) -> bool:
    if config.wings_allow_high_cards:
        return True
    return not any(value in _HIGH_VALUES for value in values)


def _classify(counts: Dict[int, int], config: ComboConfig) -> List[Tuple[ComboType, int, int]]:
    """Return every (type, main_rank, length) reading of a rank multiset."""
    total = sum(counts.values())
    ranks = sorted(counts)
    found: List[Tuple[ComboType, int, int]] = []

    if total == 1:
        return [(ComboType.SINGLE, ranks[0], 1)]
    if total == 2:
        if tuple(ranks) == _ROCKET_VALUES:
            return [(ComboType.ROCKET, Rank.BIG_JOKER.value, 1)]
        if len(ranks) == 1:
            return [(ComboType.PAIR, ranks[0], 1)]
        return []
    if total == 3 and len(ranks) == 1:
        return [(ComboType.TRIPLE, ranks[0], 1)]
    if total == 4:
        if len(ranks) == 1:
            return [(ComboType.BOMB, ranks[0], 1)]
        triple = [rank for rank in ranks if counts[rank] == 3]
        if triple:
            return [(ComboType.TRIPLE_SINGLE, triple[0], 1)]
        return []
    if total == 5 and sorted(counts.values()) == [2, 3]:
        triple = next(rank for rank in ranks if counts[rank] == 3)
        return [(ComboType.TRIPLE_PAIR, triple, 1)]

    if total >= MIN_STRAIGHT and len(ranks) == total and _is_run(ranks):
        found.append((ComboType.STRAIGHT, ranks[-1], total))
    if len(ranks) >= MIN_PAIR_RUN and all(counts[rank] == 2 for rank in ranks) and _is_run(ranks):
        found.append((ComboType.PAIR_STRAIGHT, ranks[-1], len(ranks)))
    if len(ranks) >= MIN_AIRPLANE and all(counts[rank] == 3 for rank in ranks) and _is_run(ranks):
        found.append((ComboType.AIRPLANE, ranks[-1], len(ranks)))

    found.extend(_classify_airplane_wings(counts, total, config))
    found.extend(_classify_four_with_two(counts, total, config))
    return found


def _classify_airplane_wings(
    counts: Dict[int, int], total: int, config: ComboConfig
) -> Iterator[Tuple[ComboType, int, int]]:
    for length, wing_width, combo_type in (
        (total // 4, 1, ComboType.AIRPLANE_SINGLES),
        (total // 5, 2, ComboType.AIRPLANE_PAIRS),
    ):
        if length < MIN_AIRPLANE or length * (3 + wing_width) != total:
            continue
        bodies = [rank for rank in sorted(counts) if counts[rank] == 3 and rank in _SEQUENCE_VALUES]
        for start in range(len(bodies) - length + 1):
            body = bodies[start : start + length]
            if not _is_run(body):
                continue
            rest = {rank: count for rank, count in counts.items() if rank not in body}
            if len(rest) != length or any(count != wing_width for count in rest.values()):
                continue
            if not _wings_ok(rest, config):
                continue
            yield combo_type, body[-1], length


def _classify_four_with_two(
    counts: Dict[int, int], total: int, config: ComboConfig
) -> Iterator[Tuple[ComboType, int, int]]:
    quads = [rank for rank, count in counts.items() if count == 4]
    for quad in sorted(quads):
        rest = {rank: count for rank, count in counts.items() if rank != quad}
        if total == 6 and config.allows_four_with_singles():
            if _wings_ok(rest, config):
                yield ComboType.FOUR_TWO_SINGLES, quad, 1
        if total == 8 and config.allows_four_with_pairs():
            if len(rest) == 2 and all(count == 2 for count in rest.values()) and _wings_ok(rest, config):
                yield ComboType.FOUR_TWO_PAIRS, quad, 1


def detect_all(cards: Sequence[Card], config: Optional[ComboConfig] = None) -> List[Combo]:
    """Return every combo reading of exactly ``cards`` (empty list if illegal)."""
    config = config or ComboConfig()
    cards = tuple(cards)
    if not cards:
        return [PASS]
    if len(set(cards)) != len(cards):
        return []
    counts = Counter(card.rank.value for card in cards)
    readings = _classify(dict(counts), config)
    readings.sort(key=lambda item: (TYPE_WEIGHT[item[0]], -item[1]))
    return [Combo(combo_type, main_rank, length, cards) for combo_type, main_rank, length in readings]


def detect_combo(cards: Sequence[Card], config: Optional[ComboConfig] = None) -> Optional[Combo]:
    """Classify ``cards``; ``None`` means the cards form no legal shape."""
    readings = detect_all(cards, config)
    return readings[0] if readings else None


def beats(candidate: Combo, requirement: Optional[Combo]) -> bool:
    """Return True when ``candidate`` legally beats ``requirement``."""
    if candidate.is_pass:
        return False
    if requirement is None or requirement.is_pass:
        return True
    if requirement.type is ComboType.ROCKET:
        return False
    if candidate.type is ComboType.ROCKET:
        return True
    if candidate.type is ComboType.BOMB and requirement.type is not ComboType.BOMB:
        return True
    if candidate.type is not requirement.type or candidate.length != requirement.length:
        return False
    return candidate.main_rank > requirement.main_rank


def combo_sort_key(combo: Combo) -> Tuple[int, int, int]:
    return (TYPE_WEIGHT[combo.type], combo.length, combo.main_rank)


# Enumeration -----------------------------------------------------------


class _HandIndex:
    """Rank-indexed view of a hand used while generating combos."""

    def __init__(self, hand: Sequence[Card]) -> None:
        self.groups: Dict[int, List[Card]] = {rank.value: cards for rank, cards in group_by_rank(hand).items()}
        self.ranks: List[int] = sorted(self.groups)

    def count(self, rank: int) -> int:
        return len(self.groups.get(rank, ()))

    def with_at_least(self, n: int) -> List[int]:
        return [rank for rank in self.ranks if self.count(rank) >= n]

    def take(self, needs: Dict[int, int]) -> Tuple[Card, ...]:
        cards: List[Card] = []
        for rank in sorted(needs):
            cards.extend(self.groups[rank][: needs[rank]])
        return tuple(cards)

    def runs(self, width: int, min_length: int, length: Optional[int] = None) -> Iterator[List[int]]:
        """Every window of consecutive sequence ranks held at least ``width`` times."""
        eligible = [rank for rank in self.with_at_least(width) if rank in _SEQUENCE_VALUES]
        for start in range(len(eligible)):
            run = [eligible[start]]
            for rank in eligible[start + 1 :]:
                if rank != run[-1] + 1:
                    break
                run.append(rank)
                if len(run) >= min_length and (length is None or len(run) == length):
                    yield list(run)


def _make(index: _HandIndex, combo_type: ComboType, main_rank: int, length: int, needs: Dict[int, int]) -> Combo:
    return Combo(combo_type, main_rank, length, index.take(needs))


def _generate(
    index: _HandIndex,
    config: ComboConfig,
    wanted: Optional[frozenset] = None,
    length: Optional[int] = None,
) -> Iterator[Combo]:
    def want(combo_type: ComboType) -> bool:
        return wanted is None or combo_type in wanted

    if want(ComboType.SINGLE):
        for rank in index.ranks:
            yield _make(index, ComboType.SINGLE, rank, 1, {rank: 1})
    if want(ComboType.PAIR):
        for rank in index.with_at_least(2):
            yield _make(index, ComboType.PAIR, rank, 1, {rank: 2})
    if want(ComboType.TRIPLE):
        for rank in index.with_at_least(3):
            yield _make(index, ComboType.TRIPLE, rank, 1, {rank: 3})
    if want(ComboType.TRIPLE_SINGLE) or want(ComboType.TRIPLE_PAIR):
        for rank in index.with_at_least(3):
            for other in index.ranks:
                if other == rank:
                    continue
                if want(ComboType.TRIPLE_SINGLE):
                    yield _make(index, ComboType.TRIPLE_SINGLE, rank, 1, {rank: 3, other: 1})
                if want(ComboType.TRIPLE_PAIR) and index.count(other) >= 2:
                    yield _make(index, ComboType.TRIPLE_PAIR, rank, 1, {rank: 3, other: 2})
    if want(ComboType.STRAIGHT):
        for run in index.runs(1, MIN_STRAIGHT, length):
            yield _make(index, ComboType.STRAIGHT, run[-1], len(run), {rank: 1 for rank in run})
    if want(ComboType.PAIR_STRAIGHT):
        for run in index.runs(2, MIN_PAIR_RUN, length):
            yield _make(index, ComboType.PAIR_STRAIGHT, run[-1], len(run), {rank: 2 for rank in run})
    if want(ComboType.AIRPLANE) or want(ComboType.AIRPLANE_SINGLES) or want(ComboType.AIRPLANE_PAIRS):
        for run in index.runs(3, MIN_AIRPLANE, length):
            body = {rank: 3 for rank in run}
            if want(ComboType.AIRPLANE):
                yield _make(index, ComboType.AIRPLANE, run[-1], len(run), body)
            others = [rank for rank in index.ranks if rank not in body and _wings_ok((rank,), config)]
            if want(ComboType.AIRPLANE_SINGLES):
                for wings in combinations(others, len(run)):
                    needs = dict(body)
                    needs.update({rank: 1 for rank in wings})
                    yield _make(index, ComboType.AIRPLANE_SINGLES, run[-1], len(run), needs)
            if want(ComboType.AIRPLANE_PAIRS):
                pair_ranks = [rank for rank in others if index.count(rank) >= 2]
                for wings in combinations(pair_ranks, len(run)):
                    needs = dict(body)
                    needs.update({rank: 2 for rank in wings})
                    yield _make(index, ComboType.AIRPLANE_PAIRS, run[-1], len(run), needs)
    if want(ComboType.FOUR_TWO_SINGLES) or want(ComboType.FOUR_TWO_PAIRS):
        for quad in index.with_at_least(4):
            others = [rank for rank in index.ranks if rank != quad and _wings_ok((rank,), config)]
            if want(ComboType.FOUR_TWO_SINGLES) and config.allows_four_with_singles():
                for wings in _single_wing_multisets(index, others):
                    needs = {quad: 4}
                    for rank in wings:
                        needs[rank] = needs.get(rank, 0) + 1
                    yield _make(index, ComboType.FOUR_TWO_SINGLES, quad, 1, needs)
            if want(ComboType.FOUR_TWO_PAIRS) and config.allows_four_with_pairs():
                pair_ranks = [rank for rank in others if index.count(rank) >= 2]
                for first, second in combinations(pair_ranks, 2):
                    yield _make(index, ComboType.FOUR_TWO_PAIRS, quad, 1, {quad: 4, first: 2, second: 2})
    if want(ComboType.BOMB):
        for rank in index.with_at_least(4):
            yield _make(index, ComboType.BOMB, rank, 1, {rank: 4})
    if want(ComboType.ROCKET) and all(index.count(rank) for rank in _ROCKET_VALUES):
        yield _make(index, ComboType.ROCKET, Rank.BIG_JOKER.value, 1, {rank: 1 for rank in _ROCKET_VALUES})


def _single_wing_multisets(index: _HandIndex, others: Sequence[int]) -> Iterator[Tuple[int, int]]:
    # Two kickers of any rank, a pair of the same rank included.
    for i, first in enumerate(others):
        if index.count(first) >= 2:
            yield first, first
        for second in others[i + 1 :]:
            yield first, second


def _unique_sorted(combos: Iterable[Combo]) -> List[Combo]:
    seen = set()
    unique: List[Combo] = []
    for combo in combos:
        if combo.key in seen:
            continue
        seen.add(combo.key)
        unique.append(combo)
    unique.sort(key=combo_sort_key)
    return unique


def enumerate_all_combos(hand: Sequence[Card], config: Optional[ComboConfig] = None) -> List[Combo]:
    """Every combo the hand could lead with, weakest shapes first."""
    config = config or ComboConfig()
    return _unique_sorted(_generate(_HandIndex(hand), config))


def enumerate_responses(
    hand: Sequence[Card],
    requirement: Optional[Combo],
    config: Optional[ComboConfig] = None,
) -> List[Combo]:
    """Combos from ``hand`` that beat ``requirement`` (all leads when it is None)."""
    if requirement is None or requirement.is_pass:
        return enumerate_all_combos(hand, config)
    if not isinstance(requirement, Combo):
        raise ComboError(f"Requirement must be a Combo, got {type(requirement).__name__}.")
    config = config or ComboConfig()
    wanted = frozenset({requirement.type, ComboType.BOMB, ComboType.ROCKET})
    length = requirement.length if requirement.type in SEQUENCE_TYPES else None
    candidates = _generate(_HandIndex(hand), config, wanted, length)
    return _unique_sorted(combo for combo in candidates if beats(combo, requirement))


def smallest_lead(hand: Sequence[Card], config: Optional[ComboConfig] = None) -> Combo:
    """The forced lead: fewest cards, then lowest main rank."""
    if not hand:
        raise ComboError("Cannot lead from an empty hand.")
    options = enumerate_all_combos(hand, config)
    return min(options, key=lambda combo: (len(combo.cards), combo.main_rank, TYPE_WEIGHT[combo.type]))


def find_play(
    hand: Sequence[Card],
    cards: Sequence[Card],
    requirement: Optional[Combo],
    config: Optional[ComboConfig] = None,
) -> Optional[Combo]:
    """Return the reading of ``cards`` that is a legal play from ``hand``.

    ``None`` means the proposal is not a member of the legal lead or response
    set. Among several legal readings the strongest one is returned.
    """
    if not cards:
        return None
    remaining = Counter(hand)
    for card in cards:
        if remaining[card] <= 0:
            return None
        remaining[card] -= 1
    readings = [combo for combo in detect_all(cards, config) if not combo.is_pass and beats(combo, requirement)]
    if not readings:
        return None
    legal = {combo.key for combo in enumerate_responses(hand, requirement, config)}
    members = [combo for combo in readings if combo.key in legal]
    if not members:
        return None
    return max(members, key=combo_sort_key)
