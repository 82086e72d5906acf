"""Round scoring helpers for Dou Dizhu."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .rules_schema import ScoringConfig


class ScoringError(ValueError):
    """Base class for scoring issues."""


@dataclass(frozen=True)
class RoundScore:
    deltas: Tuple[int, int, int]
    multiplier: int
    stake: int
    landlord_won: bool
    spring: Optional[str]


def spring_kind(landlord: int, winner: int, plays_by_seat: Sequence[int]) -> Optional[str]:
    """Return ``"spring"``, ``"anti-spring"`` or ``None``.

    Spring: the landlord wins and neither farmer ever played a combo.
    Anti-spring: the farmers win and the landlord played only its opening lead.
    """
    farmers = [seat for seat in range(3) if seat != landlord]
    if winner == landlord:
        if all(plays_by_seat[seat] == 0 for seat in farmers):
            return "spring"
        return None
    if plays_by_seat[landlord] <= 1:
        return "anti-spring"
    return None


def score_round(
    *,
    landlord: int,
    winner: int,
    bid_stake: int,
    bombs: int,
    rockets: int,
    plays_by_seat: Sequence[int],
    config: Optional[ScoringConfig] = None,
) -> RoundScore:
    config = config or ScoringConfig()
    if landlord not in (0, 1, 2) or winner not in (0, 1, 2):
        raise ScoringError("Seats must be 0, 1 or 2.")
    if bid_stake <= 0:
        raise ScoringError("Stake must be positive.")
    if len(plays_by_seat) != 3:
        raise ScoringError("Exactly three seats are supported.")

    multiplier = config.bomb_multiplier ** bombs * config.rocket_multiplier ** rockets
    spring = spring_kind(landlord, winner, plays_by_seat)
    if spring == "spring":
        multiplier *= config.spring_multiplier
    elif spring == "anti-spring":
        multiplier *= config.anti_spring_multiplier

    stake = bid_stake * multiplier
    landlord_won = winner == landlord
    sign = 1 if landlord_won else -1
    deltas = [0, 0, 0]
    for seat in range(3):
        deltas[seat] = sign * 2 * stake if seat == landlord else -sign * stake

    return RoundScore(
        deltas=(deltas[0], deltas[1], deltas[2]),
        multiplier=multiplier,
        stake=stake,
        landlord_won=landlord_won,
        spring=spring,
    )
