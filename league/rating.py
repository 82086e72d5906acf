"""Gaussian skill ratings for one-versus-two team games.

Each participant is a ``(mu, sigma)`` estimate. A game between the landlord
(a one-member team) and the farmers (a two-member team) moves every member
towards the observed outcome with the usual truncated-Gaussian corrections:

    c^2 = sum(sigma_i^2) + 2 * beta^2
    t   = (mu_winners - mu_losers) / c
    v   = pdf(t) / cdf(t),   w = v * (v + t)

Winners gain ``sigma_i^2 / c * v``, losers lose the same form, and every
variance shrinks by ``1 - sigma_i^2 / c^2 * w``. Variance is inflated by
``tau^2`` before each update.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_MU = 1000.0
CONSERVATIVE_K = 3.0
MIN_VARIANCE = 1e-9
MIN_CDF = 1e-12


class RatingConfig(BaseModel):
    """Rating scale; ``sigma``, ``beta`` and ``tau`` default to fractions of ``mu``."""

    model_config = ConfigDict(frozen=True)

    mu: float = Field(DEFAULT_MU, gt=0, allow_inf_nan=False)
    sigma: float = Field(DEFAULT_MU / 3, gt=0)
    beta: float = Field(DEFAULT_MU / 6, gt=0)
    tau: float = Field(DEFAULT_MU / 300, gt=0)

    @model_validator(mode="before")
    @classmethod
    def derive_scale(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        mu = data.get("mu", DEFAULT_MU)
        if isinstance(mu, bool) or not isinstance(mu, (int, float)) or not mu > 0:
            return data
        filled = dict(data)
        for name, divisor in (("sigma", 3), ("beta", 6), ("tau", 300)):
            if filled.get(name) is None:
                filled[name] = mu / divisor
        return filled

    def initial(self) -> "Rating":
        return Rating(mu=self.mu, sigma=self.sigma)


@dataclass(frozen=True)
class Rating:
    mu: float = DEFAULT_MU
    sigma: float = DEFAULT_MU / 3

    def __post_init__(self) -> None:
        if not math.isfinite(self.mu):
            raise ValueError("mu must be finite.")
        if not self.sigma > 0:
            raise ValueError("sigma must be positive.")

    @property
    def conservative(self) -> float:
        return conservative_score(self)


def conservative_score(rating: Rating, k: float = CONSERVATIVE_K) -> float:
    return rating.mu - k * rating.sigma


def _pdf(x: float) -> float:
    return math.exp(-0.5 * x * x) / math.sqrt(2 * math.pi)


def _cdf(x: float) -> float:
    return 0.5 * (1 + math.erf(x / math.sqrt(2)))


def v_win(t: float) -> float:
    return _pdf(t) / max(_cdf(t), MIN_CDF)


def w_win(t: float) -> float:
    v = v_win(t)
    return v * (v + t)


def rate_two_teams(
    winners: Sequence[Rating],
    losers: Sequence[Rating],
    config: Optional[RatingConfig] = None,
) -> Tuple[List[Rating], List[Rating]]:
    """Return updated ``(winners, losers)`` after the winners beat the losers."""
    config = config or RatingConfig()
    if not winners or not losers:
        raise ValueError("Both teams need at least one member.")
    tau2 = config.tau ** 2
    beta2 = config.beta ** 2

    win_var = [r.sigma ** 2 + tau2 for r in winners]
    lose_var = [r.sigma ** 2 + tau2 for r in losers]
    mu_win = sum(r.mu for r in winners)
    mu_lose = sum(r.mu for r in losers)

    c2 = sum(win_var) + sum(lose_var) + 2 * beta2
    c = math.sqrt(c2)
    t = (mu_win - mu_lose) / c
    v = v_win(t)
    w = w_win(t)

    def _update(rating: Rating, var: float, sign: float) -> Rating:
        mu = rating.mu + sign * (var / c) * v
        new_var = var * (1 - (var / c2) * w)
        return Rating(mu=mu, sigma=math.sqrt(max(new_var, MIN_VARIANCE)))

    new_winners = [_update(r, var, 1.0) for r, var in zip(winners, win_var)]
    new_losers = [_update(r, var, -1.0) for r, var in zip(losers, lose_var)]
    return new_winners, new_losers


def update_landlord_game(
    seats: Sequence[Rating],
    landlord: int,
    landlord_won: bool,
    config: Optional[RatingConfig] = None,
) -> List[Rating]:
    """Apply one game's outcome to the three seat ratings (in seat order)."""
    if len(seats) != 3:
        raise ValueError("Exactly three seat ratings are required.")
    if landlord not in (0, 1, 2):
        raise ValueError(f"Invalid landlord seat {landlord}.")
    farmers = [seat for seat in range(3) if seat != landlord]
    landlord_team = [seats[landlord]]
    farmer_team = [seats[seat] for seat in farmers]

    updated = list(seats)
    if landlord_won:
        (new_landlord,), new_farmers = rate_two_teams(landlord_team, farmer_team, config)
    else:
        new_farmers, (new_landlord,) = rate_two_teams(farmer_team, landlord_team, config)
    updated[landlord] = new_landlord
    for seat, rating in zip(farmers, new_farmers):
        updated[seat] = rating
    return updated
