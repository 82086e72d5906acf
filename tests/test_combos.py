from random import Random

import pytest

from engine.cards import parse_cards
from engine.combos import (
    PASS,
    Combo,
    ComboError,
    ComboType,
    beats,
    detect_all,
    detect_combo,
    enumerate_all_combos,
    enumerate_responses,
    find_play,
    smallest_lead,
)
from engine.deck import build_deck
from engine.rules_schema import ComboConfig


def combo(codes, config=None):
    found = detect_combo(parse_cards(codes), config)
    assert found is not None, codes
    return found


@pytest.mark.parametrize(
    "codes, combo_type, main_rank, length",
    [
        ("7S", ComboType.SINGLE, 7, 1),
        ("QS QH", ComboType.PAIR, 12, 1),
        ("9S 9H 9D", ComboType.TRIPLE, 9, 1),
        ("9S 9H 9D 4C", ComboType.TRIPLE_SINGLE, 9, 1),
        ("9S 9H 9D 4C 4D", ComboType.TRIPLE_PAIR, 9, 1),
        ("3S 4H 5D 6C 7S", ComboType.STRAIGHT, 7, 5),
        ("TS JS QS KS AS", ComboType.STRAIGHT, 14, 5),
        ("5S 5H 6S 6H 7S 7H", ComboType.PAIR_STRAIGHT, 7, 3),
        ("8S 8H 8D 9S 9H 9D", ComboType.AIRPLANE, 9, 2),
        ("8S 8H 8D 9S 9H 9D 3C 5C", ComboType.AIRPLANE_SINGLES, 9, 2),
        ("8S 8H 8D 9S 9H 9D 3C 3D 5C 5D", ComboType.AIRPLANE_PAIRS, 9, 2),
        ("6S 6H 6C 6D 3S 4S", ComboType.FOUR_TWO_SINGLES, 6, 1),
        ("6S 6H 6C 6D 3S 3H 4S 4H", ComboType.FOUR_TWO_PAIRS, 6, 1),
        ("6S 6H 6C 6D", ComboType.BOMB, 6, 1),
        ("SJ BJ", ComboType.ROCKET, 17, 1),
    ],
)
def test_detect_combo_shapes(codes, combo_type, main_rank, length):
    found = combo(codes)
    assert found.type is combo_type
    assert found.main_rank == main_rank
    assert found.length == length


@pytest.mark.parametrize(
    "codes",
    [
        "3S 4H",
        "JS QS KS AS 2S",
        "3S 4S 5S 6S",
        "3S 3H 4S 4H",
        "3S 3H 3C 3D 4S 4H 4C 4D",
        "2S 2H 2D AS AH AD",
        "SJ SJ",
    ],
)
def test_detect_combo_rejects_illegal_shapes(codes):
    assert detect_combo(parse_cards(codes)) is None


def test_empty_play_is_pass():
    assert detect_combo([]) == PASS


def test_high_card_wings_are_configurable():
    airplane = parse_cards("3S 3H 3D 4S 4H 4D 2S 6S")
    assert detect_combo(airplane) is None
    relaxed = ComboConfig(wings_allow_high_cards=True)
    assert detect_combo(airplane, relaxed).type is ComboType.AIRPLANE_SINGLES

    four_with_jokers = parse_cards("5S 5H 5C 5D SJ BJ")
    assert detect_combo(four_with_jokers) is None
    assert detect_combo(four_with_jokers, relaxed).type is ComboType.FOUR_TWO_SINGLES


def test_high_card_wings_only_enumerate_when_allowed():
    relaxed = ComboConfig(wings_allow_high_cards=True)

    def of_type(hand, combo_type, config=None):
        return [c for c in enumerate_all_combos(parse_cards(hand), config) if c.type is combo_type]

    airplane_hand = "3S 3H 3D 4S 4H 4D 2S 6S"
    assert of_type(airplane_hand, ComboType.AIRPLANE_SINGLES) == []
    relaxed_airplanes = of_type(airplane_hand, ComboType.AIRPLANE_SINGLES, relaxed)
    assert len(relaxed_airplanes) == 1
    assert set(relaxed_airplanes[0].cards) == set(parse_cards(airplane_hand))

    quad_hand = "5S 5H 5C 5D SJ BJ"
    assert of_type(quad_hand, ComboType.FOUR_TWO_SINGLES) == []
    relaxed_quads = of_type(quad_hand, ComboType.FOUR_TWO_SINGLES, relaxed)
    assert [c.main_rank for c in relaxed_quads] == [5]
    assert len(of_type(quad_hand, ComboType.ROCKET)) == 1


def test_triple_with_high_kicker_is_always_legal():
    assert combo("9S 9H 9D 2C").type is ComboType.TRIPLE_SINGLE
    assert combo("9S 9H 9D BJ").type is ComboType.TRIPLE_SINGLE


def test_four_with_two_policy():
    singles = parse_cards("6S 6H 6C 6D 3S 4S")
    pairs = parse_cards("6S 6H 6C 6D 3S 3H 4S 4H")
    assert detect_combo(singles, ComboConfig(four_with_two="pairs")) is None
    assert detect_combo(pairs, ComboConfig(four_with_two="singles")) is None
    assert detect_combo(pairs, ComboConfig(four_with_two="pairs")).type is ComboType.FOUR_TWO_PAIRS


def test_detect_all_rejects_duplicate_cards():
    card = parse_cards("7S")[0]
    assert detect_all([card, card]) == []


def test_beats_ordering():
    low, high = combo("4S"), combo("5S")
    assert beats(high, low)
    assert not beats(low, high)
    assert not beats(low, low)

    straight5 = combo("3S 4H 5D 6C 7S")
    straight6 = combo("4S 5H 6D 7C 8S 9S")
    assert not beats(straight6, straight5)
    assert not beats(combo("QS QH"), low)

    bomb3, bomb9 = combo("3S 3H 3C 3D"), combo("9S 9H 9C 9D")
    rocket = combo("SJ BJ")
    assert beats(bomb3, straight6)
    assert beats(bomb9, bomb3)
    assert not beats(bomb3, bomb9)
    assert beats(rocket, bomb9)
    assert not beats(bomb9, rocket)
    assert not beats(rocket, rocket)
    assert not beats(PASS, low)
    assert beats(low, None)


def test_triple_lead_and_no_response_to_pair():
    hand = parse_cards("3S 3H 3D")
    leads = enumerate_all_combos(hand)
    assert any(c.type is ComboType.TRIPLE and c.main_rank == 3 for c in leads)

    requirement = Combo(ComboType.PAIR, 5, 1, tuple(parse_cards("5S 5H")))
    assert enumerate_responses(hand, requirement) == []


def test_enumerate_includes_rank_variants_and_sequences():
    hand = parse_cards("3S 3H 4S 4H 5S 5H 6S 7S 7H 7D SJ BJ")
    leads = enumerate_all_combos(hand)
    kinds = {(c.type, c.main_rank, c.length) for c in leads}
    assert (ComboType.PAIR, 3, 1) in kinds
    assert (ComboType.PAIR, 7, 1) in kinds
    assert (ComboType.PAIR_STRAIGHT, 5, 3) in kinds
    assert (ComboType.PAIR_STRAIGHT, 4, 2) not in kinds
    assert (ComboType.STRAIGHT, 7, 5) in kinds
    assert (ComboType.TRIPLE_PAIR, 7, 1) in kinds
    assert (ComboType.ROCKET, 17, 1) in kinds


def test_responses_respect_length_and_overrides():
    hand = parse_cards("3D 4D 5D 6D 7D 8D KS KH KC KD")
    requirement = combo("3S 4S 5S 6S 7H")
    responses = enumerate_responses(hand, requirement)
    assert [(c.type, c.main_rank) for c in responses] == [
        (ComboType.STRAIGHT, 8),
        (ComboType.BOMB, 13),
    ]


def test_enumerated_combos_round_trip_through_detection():
    deck = build_deck()
    Random(11).shuffle(deck)
    hand = deck[:20]
    for found in enumerate_all_combos(hand):
        assert set(found.cards) <= set(hand)
        readings = {(c.type, c.main_rank, c.length) for c in detect_all(found.cards)}
        assert (found.type, found.main_rank, found.length) in readings


def test_smallest_lead_and_find_play():
    hand = parse_cards("7D 3S 3H 9C")
    forced = smallest_lead(hand)
    assert forced.type is ComboType.SINGLE
    assert forced.main_rank == 3

    pair = find_play(hand, parse_cards("3S 3H"), None)
    assert pair is not None and pair.type is ComboType.PAIR
    assert find_play(hand, parse_cards("3S 3H"), combo("5S 5H")) is None
    assert find_play(hand, parse_cards("4S"), None) is None
    assert find_play(hand, [], None) is None

    with pytest.raises(ComboError):
        smallest_lead([])
