from engine.deck import build_deck
from engine.game import RoundEngine


def test_bidding_view_hides_bottom():
    engine = RoundEngine(seed=21)
    view = engine.view(0)
    assert view.phase == "bidding"
    assert len(view.hand) == 17
    assert view.bottom == ()
    assert view.landlord is None
    assert view.remaining == (17, 17, 17)


def test_play_view_reflects_state_without_sharing_it():
    engine = RoundEngine(deck=build_deck())
    engine.submit_bid(0, {"action": "call", "value": 3})
    view = engine.view(0)
    assert view.phase == "playing"
    assert view.lead and not view.can_pass
    assert view.landlord == 0
    assert len(view.hand) == 20
    assert [str(card) for card in view.bottom] == ["2D", "SJ", "BJ"]
    assert isinstance(view.hand, tuple)

    engine.submit_play(0, {"move": "play", "cards": ["3S"]})
    assert len(view.hand) == 20
    follower = engine.view(1)
    assert follower.can_pass
    assert follower.requirement.main_rank == 3
    assert all(combo.main_rank > 3 or combo.type.value in ("bomb", "rocket") for combo in follower.legal_moves())
    assert [str(card) for card in follower.observed[0]] == ["3S"]


def test_view_serialises_to_plain_data():
    engine = RoundEngine(deck=build_deck())
    engine.submit_bid(0, {"action": "call", "value": 3})
    engine.submit_play(0, {"move": "play", "cards": ["3S"]})
    payload = engine.view(1).to_dict()
    assert payload["seat"] == 1
    assert payload["landlord"] == 0
    assert payload["requirement"]["type"] == "single"
    assert payload["history"][0]["move"] == "play"
    assert payload["bids"] == [{"seat": 0, "action": "call", "value": 3}]
    assert payload["bid_mode"] == "call-score"
    assert payload["remaining"] == [19, 17, 17]
