"""Tests for the four-slot card set and cyclic split placement."""

from __future__ import annotations

import pytest

from talkpoints.core.contracts.card import Card, CardContent, CardState
from talkpoints.engine.card_set import (
    SPLIT_PLACEMENT,
    CardSetManager,
    fresh_card,
    replaced_slots,
    split_cards,
)
from talkpoints.engine.normalizer import PLACEHOLDER_TOPIC


def _card(topic: str, **update: object) -> Card:
    card = Card(
        topic=topic,
        hotlinks=[f"{topic.lower()}1", f"{topic.lower()}2", f"{topic.lower()}3"],
        content=CardContent(paragraph=f"About {topic}", bullets=["a", "b", "c"]),
    )
    return card.model_copy(update=update)


def _set() -> list[Card]:
    return [_card("A"), _card("B"), _card("C"), _card("D")]


def test_placement_table() -> None:
    assert SPLIT_PLACEMENT == {1: (2, 3), 2: (3, 4), 3: (4,), 4: (1, 2)}
    assert replaced_slots(0) == (1, 2)
    assert replaced_slots(3) == (0, 1)
    with pytest.raises(IndexError):
        replaced_slots(4)


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        (0, ["A", "S1", "S2", "D"]),
        (1, ["A", "B", "S1", "S2"]),
        (2, ["A", "B", "C", "S1"]),
        (3, ["S1", "S2", "C", "D"]),
    ],
)
def test_split_cards_places_subtopics(source: int, expected: list[str]) -> None:
    out = split_cards(_set(), source, [_card("S1"), _card("S2")])
    assert [c.topic for c in out] == expected


def test_split_from_slot_three_uses_only_one_subtopic() -> None:
    out = split_cards(_set(), 2, [_card("S1"), _card("S2")])
    assert "S2" not in [c.topic for c in out]
    assert len(out) == 4


def test_split_keeps_source_card_verbatim() -> None:
    source = _card("D", trigger_count=3, state=CardState.SPLIT, last_trigger_time=12.0)
    cards = [_card("A"), _card("B"), _card("C"), source]

    out = split_cards(cards, 3, [_card("S1"), _card("S2")])

    assert out[3] == source


def test_subtopics_start_fresh() -> None:
    sub = _card("S1", trigger_count=3, state=CardState.SPLIT, locked=True)
    out = split_cards(_set(), 0, [sub])

    assert out[1].trigger_count == 0
    assert out[1].state is CardState.BASE
    assert out[1].locked is False
    assert out[2].topic == "C"


def test_fresh_card_copies_deeply() -> None:
    card = _card("A")
    copy = fresh_card(card)
    copy.content.bullets.append("extra")
    assert card.content.bullets == ["a", "b", "c"]


def test_manager_pads_to_four_with_placeholders() -> None:
    manager = CardSetManager([_card("A")])
    assert len(manager) == 4
    assert [c.topic for c in manager][1:] == [PLACEHOLDER_TOPIC] * 3


def test_manager_replace_all_pads_from_previous() -> None:
    manager = CardSetManager(_set())
    previous = manager.cards

    manager.replace_all([_card("X"), _card("Y")], previous)

    assert [c.topic for c in manager] == ["X", "Y", "C", "D"]


def test_within_one_pass_most_recent_wins() -> None:
    cards = [
        _card("A", trigger_count=3, last_trigger_time=5.0),
        _card("B"),
        _card("C", trigger_count=3, last_trigger_time=9.0),
        _card("D"),
    ]
    manager = CardSetManager(cards)
    manager.note_pass([0, 2])

    assert manager.pending_indices() == [2, 0]
    assert manager.select_split_source() == 2


def test_earlier_pass_is_served_first() -> None:
    cards = [
        _card("A"),
        _card("B", trigger_count=3, last_trigger_time=10.0),
        _card("C", trigger_count=3, last_trigger_time=11.0),
        _card("D"),
    ]
    manager = CardSetManager(cards)
    manager.note_pass([1])
    manager.note_pass([2])

    assert manager.select_split_source() == 1


def test_tie_goes_to_earliest_slot() -> None:
    cards = [_card(t, trigger_count=3, last_trigger_time=4.0) for t in "ABCD"]
    manager = CardSetManager(cards)
    manager.note_pass([3, 1])

    assert manager.select_split_source() == 1


def test_reset_card_drops_out_of_pending() -> None:
    manager = CardSetManager([_card("A", trigger_count=3), _card("B"), _card("C"), _card("D")])
    manager.note_threshold(0)
    manager[0] = manager[0].model_copy(update={"trigger_count": 0})

    assert manager.select_split_source() is None


def test_apply_split_consumes_signals() -> None:
    cards = [
        _card("A"),
        _card("B"),
        _card("C"),
        _card("D", trigger_count=3, last_trigger_time=1.0),
    ]
    manager = CardSetManager(cards)
    manager.note_threshold(3)

    out = manager.apply_split(3, [_card("S1"), _card("S2")])

    assert [c.topic for c in out] == ["S1", "S2", "C", "D"]
    assert manager.select_split_source() is None


def test_chained_split_stays_at_four() -> None:
    manager = CardSetManager(_set())
    manager[0] = manager[0].model_copy(update={"trigger_count": 3, "last_trigger_time": 1.0})
    manager.note_threshold(0)
    manager.apply_split(0, [_card("B2"), _card("C2")])

    manager[1] = manager[1].model_copy(update={"trigger_count": 3, "last_trigger_time": 2.0})
    manager.note_threshold(1)
    manager.apply_split(manager.select_split_source() or 0, [_card("C3"), _card("D3")])

    assert [c.topic for c in manager] == ["A", "B2", "C3", "D3"]


def test_note_threshold_out_of_range() -> None:
    with pytest.raises(IndexError):
        CardSetManager(_set()).note_threshold(4)


def test_replace_all_without_signals_clears_pending() -> None:
    manager = CardSetManager([_card("A", trigger_count=3), _card("B"), _card("C"), _card("D")])
    manager.note_threshold(0)
    manager.replace_all(manager.cards, keep_signals=False)
    assert manager.pending_indices() == []
