import pytest

from .allocator import pick_weighted, secure_random_int
from .models_entity import DeckItem

DECK = [DeckItem(10_000, 2, 2), DeckItem(20_000, 1, 1)]


@pytest.mark.parametrize("ticket, expected", [(0, 0), (1, 0), (2, 1)])
def test_ticket_maps_to_item(ticket, expected):
    # units are [10000, 10000, 20000]
    assert pick_weighted(DECK, ticket=ticket) == expected


def test_items_without_remaining_are_skipped():
    deck = [DeckItem(1_000, 3, 0), DeckItem(2_000, 1, 1), DeckItem(5_000, 2, 0)]

    assert pick_weighted(deck, ticket=0) == 1


def test_random_source_gets_the_total():
    seen = []

    def fake(total):
        seen.append(total)
        return total - 1

    assert pick_weighted(DECK, random_int=fake) == 1
    assert seen == [3]


def test_exhausted_deck_raises():
    with pytest.raises(ValueError):
        pick_weighted([DeckItem(1_000, 1, 0)])


@pytest.mark.parametrize("ticket", [-1, 3])
def test_ticket_out_of_range_raises(ticket):
    with pytest.raises(ValueError):
        pick_weighted(DECK, ticket=ticket)


def test_secure_random_int_range():
    assert secure_random_int(0) == 0
    assert secure_random_int(1) == 0
    values = {secure_random_int(7) for _ in range(500)}
    assert values <= set(range(7))
    assert len(values) > 1


def test_every_item_can_win():
    deck = [DeckItem(1_000, 5, 5), DeckItem(2_000, 5, 5)]
    winners = {pick_weighted(deck) for _ in range(200)}

    assert winners == {0, 1}
