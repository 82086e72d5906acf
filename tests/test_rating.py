import math

import pytest
from pydantic import ValidationError

from league.rating import Rating, RatingConfig, conservative_score, rate_two_teams, update_landlord_game


def test_config_derives_scale_from_mu():
    config = RatingConfig()
    assert config.sigma == pytest.approx(1000 / 3)
    assert config.beta == pytest.approx(1000 / 6)
    assert config.tau == pytest.approx(1000 / 300)
    assert RatingConfig(mu=25.0).initial() == Rating(mu=25.0, sigma=25.0 / 3)
    assert RatingConfig(mu=25.0, sigma=1.0).sigma == 1.0
    assert RatingConfig(mu=30.0, tau=None).tau == pytest.approx(0.1)


def test_config_is_frozen_after_deriving_scale():
    config = RatingConfig(mu=60.0)
    assert RatingConfig.model_validate(config.model_dump()) == config
    with pytest.raises(ValidationError):
        config.sigma = 1.0
    assert config.sigma == pytest.approx(20.0)


def test_config_rejects_bad_values():
    with pytest.raises(ValueError):
        RatingConfig(mu=0)
    with pytest.raises(ValueError):
        RatingConfig(mu=math.inf)
    with pytest.raises(ValueError):
        Rating(mu=1.0, sigma=0.0)


def test_conservative_score():
    assert conservative_score(Rating(mu=1000.0, sigma=100.0)) == pytest.approx(700.0)
    assert Rating(mu=10.0, sigma=1.0).conservative == pytest.approx(7.0)


def test_landlord_win_moves_ratings_symmetrically():
    config = RatingConfig()
    start = [config.initial()] * 3
    updated = update_landlord_game(start, landlord=1, landlord_won=True, config=config)
    gain = updated[1].mu - start[1].mu
    assert gain > 0
    assert updated[0].mu == pytest.approx(updated[2].mu)
    assert start[0].mu - updated[0].mu == pytest.approx(gain)
    assert all(rating.sigma < start[0].sigma for rating in updated)


def test_farmer_win_lowers_landlord():
    config = RatingConfig()
    start = [config.initial()] * 3
    updated = update_landlord_game(start, landlord=0, landlord_won=False, config=config)
    assert updated[0].mu < start[0].mu
    assert updated[1].mu > start[1].mu and updated[2].mu > start[2].mu


def test_upsets_move_ratings_more():
    strong, weak = Rating(mu=1500.0, sigma=100.0), Rating(mu=500.0, sigma=100.0)
    (expected,), _ = rate_two_teams([strong], [weak])
    (upset,), _ = rate_two_teams([weak], [strong])
    assert upset.mu - weak.mu > expected.mu - strong.mu > 0


def test_extreme_gap_stays_finite():
    (winner,), (loser,) = rate_two_teams([Rating(mu=0.0, sigma=1.0)], [Rating(mu=1e6, sigma=1.0)])
    assert math.isfinite(winner.mu) and math.isfinite(loser.mu)
    assert winner.sigma > 0 and loser.sigma > 0


def test_update_requires_three_seats():
    with pytest.raises(ValueError):
        update_landlord_game([Rating()] * 2, landlord=0, landlord_won=True)
    with pytest.raises(ValueError):
        update_landlord_game([Rating()] * 3, landlord=3, landlord_won=True)
    with pytest.raises(ValueError):
        rate_two_teams([], [Rating()])
