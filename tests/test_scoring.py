import pytest

from engine.rules_schema import ScoringConfig
from engine.scoring import ScoringError, score_round, spring_kind


def test_landlord_win_pays_double_stake():
    score = score_round(landlord=1, winner=1, bid_stake=2, bombs=0, rockets=0, plays_by_seat=[3, 5, 2])
    assert score.deltas == (-2, 4, -2)
    assert score.multiplier == 1
    assert score.landlord_won
    assert score.spring is None


def test_farmer_win_and_bomb_multipliers():
    score = score_round(landlord=0, winner=2, bid_stake=1, bombs=2, rockets=1, plays_by_seat=[4, 3, 5])
    assert score.multiplier == 8
    assert score.deltas == (-16, 8, 8)
    assert sum(score.deltas) == 0


def test_spring_and_anti_spring():
    assert spring_kind(landlord=0, winner=0, plays_by_seat=[7, 0, 0]) == "spring"
    assert spring_kind(landlord=0, winner=0, plays_by_seat=[7, 1, 0]) is None
    assert spring_kind(landlord=0, winner=1, plays_by_seat=[1, 4, 3]) == "anti-spring"
    assert spring_kind(landlord=0, winner=1, plays_by_seat=[2, 4, 3]) is None

    score = score_round(landlord=0, winner=0, bid_stake=3, bombs=1, rockets=0, plays_by_seat=[6, 0, 0])
    assert score.spring == "spring"
    assert score.multiplier == 4
    assert score.deltas == (24, -12, -12)


def test_custom_multipliers():
    config = ScoringConfig(bomb_multiplier=3, anti_spring_multiplier=5)
    score = score_round(
        landlord=2, winner=0, bid_stake=1, bombs=1, rockets=0, plays_by_seat=[3, 3, 1], config=config
    )
    assert score.multiplier == 15
    assert score.deltas == (15, 15, -30)


def test_invalid_inputs():
    with pytest.raises(ScoringError):
        score_round(landlord=3, winner=0, bid_stake=1, bombs=0, rockets=0, plays_by_seat=[1, 1, 1])
    with pytest.raises(ScoringError):
        score_round(landlord=0, winner=0, bid_stake=0, bombs=0, rockets=0, plays_by_seat=[1, 1, 1])
