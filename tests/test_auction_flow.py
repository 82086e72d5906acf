import pytest

from engine.bidding import Auction, AuctionResult, BiddingError, BidNotAllowed
from engine.decisions import CallBid, NoRobBid, PassBid, RobBid
from engine.rules_schema import BiddingConfig

ROB = BiddingConfig(mode="rob")


def test_highest_call_wins_after_every_seat_is_polled():
    auction = Auction(first_seat=0)
    auction.submit(0, CallBid(value=1))
    auction.submit(1, CallBid(value=2))
    assert not auction.is_complete()
    auction.submit(2, PassBid())
    assert auction.is_complete()
    assert auction.result() == AuctionResult(landlord=1, bid=2, robs=0)


def test_call_that_does_not_raise_counts_as_pass():
    auction = Auction(first_seat=0)
    auction.submit(0, CallBid(value=2))
    assert auction.submit(1, CallBid(value=1)) == "pass"
    auction.submit(2, PassBid())
    assert auction.history[1] == (1, "pass", 1)
    assert auction.result().landlord == 0


def test_max_call_ends_auction_immediately():
    auction = Auction(first_seat=2)
    auction.submit(2, CallBid(value=3))
    assert auction.is_complete()
    assert auction.result() == AuctionResult(landlord=2, bid=3, robs=0)
    with pytest.raises(BiddingError):
        auction.submit(0, PassBid())


def test_all_pass_returns_no_result():
    auction = Auction(first_seat=1)
    for seat in (1, 2, 0):
        auction.pass_bid(seat)
    assert auction.all_passed()
    assert auction.result() is None


def test_out_of_turn_and_out_of_range_bids_are_rejected():
    auction = Auction(first_seat=0)
    with pytest.raises(BiddingError):
        auction.submit(1, PassBid())
    with pytest.raises(BidNotAllowed):
        auction.submit(0, CallBid(value=4))
    with pytest.raises(BidNotAllowed):
        auction.submit(0, RobBid())
    with pytest.raises(BiddingError):
        auction.result()


def test_rob_mode_counts_robs_and_doubles_stake():
    auction = Auction(first_seat=0, config=ROB)
    auction.submit(0, RobBid())
    auction.submit(1, NoRobBid())
    auction.submit(2, RobBid())
    result = auction.result()
    assert result.landlord == 2
    assert result.robs == 1
    assert result.stake(ROB, base_stake=1) == 2
    assert result.stake(BiddingConfig(mode="rob", rob_doubles_stake=False), base_stake=1) == 1


def test_rob_mode_rejects_scores():
    auction = Auction(first_seat=0, config=ROB)
    with pytest.raises(BidNotAllowed):
        auction.submit(0, CallBid(value=1))
    assert auction.submit(0, PassBid()) == "no-rob"


def test_call_score_stake_scales_with_bid():
    assert AuctionResult(landlord=0, bid=3).stake(BiddingConfig(), base_stake=2) == 6
