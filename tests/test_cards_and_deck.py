from random import Random

import pytest

from engine.cards import Card, Rank, Suit, card_code, card_label, parse_card, parse_cards, sort_cards
from engine.deck import BOTTOM_SIZE, DECK_SIZE, HAND_SIZE, build_deck, deal_three_player


def test_deck_has_54_distinct_cards():
    deck = build_deck()
    assert len(deck) == DECK_SIZE
    assert len(set(deck)) == DECK_SIZE
    assert sum(1 for card in deck if card.suit is Suit.JOKER) == 2


def test_card_codes_round_trip_for_whole_deck():
    for card in build_deck():
        assert parse_card(card_code(card)) == card


def test_parse_cards_accepts_string_and_list():
    assert parse_cards("3S TH BJ") == [
        Card(Rank.THREE, Suit.SPADES),
        Card(Rank.TEN, Suit.HEARTS),
        Card(Rank.BIG_JOKER, Suit.JOKER),
    ]
    assert parse_cards(["sj"]) == [Card(Rank.SMALL_JOKER, Suit.JOKER)]


@pytest.mark.parametrize("code", ["", "1S", "3X", "TEN"])
def test_parse_card_rejects_garbage(code):
    with pytest.raises(ValueError):
        parse_card(code)


def test_joker_rank_requires_joker_suit():
    with pytest.raises(ValueError):
        Card(Rank.BIG_JOKER, Suit.SPADES)
    with pytest.raises(ValueError):
        Card(Rank.ACE, Suit.JOKER)


def test_labels_and_sorting():
    cards = parse_cards("2S 3D BJ AH")
    assert [card.rank for card in sort_cards(cards)] == [Rank.THREE, Rank.ACE, Rank.TWO, Rank.BIG_JOKER]
    assert card_label(Card(Rank.SMALL_JOKER, Suit.JOKER)) == "Small Joker"
    assert card_label(Card(Rank.ACE, Suit.SPADES)) == "♠A"


def test_deal_sizes_and_determinism():
    hands, bottom = deal_three_player(rng=Random(3))
    assert [len(hand) for hand in hands] == [HAND_SIZE] * 3
    assert len(bottom) == BOTTOM_SIZE
    assert len({card for hand in hands for card in hand} | set(bottom)) == DECK_SIZE

    again, again_bottom = deal_three_player(rng=Random(3))
    assert again == hands
    assert again_bottom == bottom


def test_deal_rejects_short_deck():
    with pytest.raises(ValueError):
        deal_three_player(deck=build_deck()[:-1])
