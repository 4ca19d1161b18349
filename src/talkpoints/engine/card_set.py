"""Card set manager: the four-slot invariant and cyclic split placement.

Split placement
---------------
When a card reaches the split threshold its subtopic cards take over the
slots named in :data:`SPLIT_PLACEMENT`. The table is 1-based and asymmetric:
slots 1-3 replace forward neighbours only, slot 4 wraps around to 1 and 2.

Split signals
-------------
Crossing the threshold is a one-shot signal. Signals queue up in
:class:`CardSetManager` keyed by slot, first come first served across passes.
Cards that cross together in one pass are queued most recently triggered
first, ties to the earliest slot. Subtopic cards start fresh, so they can
cross the threshold later and split again, chaining A → B → C while the set
stays at four.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from talkpoints.core.contracts.card import CARD_SET_SIZE, Card, CardState

from .normalizer import ensure_size

#: Source slot → slots replaced by its subtopic(s), both 1-based.
SPLIT_PLACEMENT: dict[int, tuple[int, ...]] = {
    1: (2, 3),
    2: (3, 4),
    3: (4,),
    4: (1, 2),
}


def replaced_slots(source_index: int) -> tuple[int, ...]:
    """0-based version of :data:`SPLIT_PLACEMENT` for ``source_index``."""
    try:
        targets = SPLIT_PLACEMENT[source_index + 1]
    except KeyError as exc:
        raise IndexError(f"No split placement for slot {source_index}") from exc
    return tuple(slot - 1 for slot in targets)


def fresh_card(card: Card) -> Card:
    """Copy of ``card`` with trigger bookkeeping cleared."""
    return card.model_copy(
        deep=True,
        update={
            "trigger_count": 0,
            "state": CardState.BASE,
            "last_trigger_time": 0.0,
            "locked": False,
        },
    )


def split_cards(
    cards: Sequence[Card],
    source_index: int,
    subtopics: Sequence[Card],
) -> list[Card]:
    """Place ``subtopics`` into the slots replaced by ``source_index``.

    The source card and every slot not named by the table are kept as-is.
    Subtopics fill the replaced slots in table order; a replaced slot with no
    matching subtopic keeps its current card rather than repeating one.
    """
    out = ensure_size(cards)
    for slot, subtopic in zip(replaced_slots(source_index), subtopics, strict=False):
        out[slot] = fresh_card(subtopic)
    return out


class CardSetManager:
    """Owns the live set and the queue of pending split signals."""

    def __init__(self, cards: Sequence[Card] | None = None, *, split_threshold: int = 3) -> None:
        self.split_threshold = split_threshold
        self._cards: list[Card] = ensure_size(cards) if cards else []
        self._pending: list[int] = []

    # ------------------------------------------------------------------ set

    @property
    def cards(self) -> list[Card]:
        """The live set (a shallow list copy)."""
        return list(self._cards)

    def is_empty(self) -> bool:
        return not self._cards

    def replace_all(
        self,
        cards: Sequence[Card],
        previous: Sequence[Card] | None = None,
        *,
        keep_signals: bool = True,
    ) -> None:
        """Swap in a new set fitted to four slots.

        Queued split signals follow their slot unless ``keep_signals`` is off,
        which is the case for a brand-new set (init, regeneration, undo).
        """
        self._cards = ensure_size(cards, previous)
        if not keep_signals:
            self._pending.clear()

    def clear(self) -> None:
        self._cards = []
        self._pending.clear()

    def __getitem__(self, index: int) -> Card:
        return self._cards[index]

    def __setitem__(self, index: int, card: Card) -> None:
        self._cards[index] = card

    def __iter__(self) -> Iterator[Card]:
        return iter(list(self._cards))

    def __len__(self) -> int:
        return len(self._cards)

    # -------------------------------------------------------------- signals

    def note_threshold(self, index: int) -> None:
        """Queue the card at ``index`` as a split candidate."""
        if not 0 <= index < len(self._cards):
            raise IndexError(f"No card in slot {index}")
        if index not in self._pending:
            self._pending.append(index)

    def note_pass(self, indices: Sequence[int]) -> None:
        """Queue the cards that crossed the threshold in one evaluation pass.

        The most recently triggered goes first; ties go to the earliest slot.
        """
        ordered = sorted(indices, key=lambda idx: (-self._cards[idx].last_trigger_time, idx))
        for idx in ordered:
            self.note_threshold(idx)

    def pending_indices(self) -> list[int]:
        """Queued slots, in queue order, whose card is still at the threshold."""
        return [
            idx
            for idx in self._pending
            if idx < len(self._cards) and self._cards[idx].trigger_count >= self.split_threshold
        ]

    def select_split_source(self) -> int | None:
        """The oldest queued signal that is still valid."""
        pending = self.pending_indices()
        return pending[0] if pending else None

    def _discard(self, index: int) -> None:
        if index in self._pending:
            self._pending.remove(index)

    def apply_split(self, source_index: int, subtopics: Sequence[Card]) -> list[Card]:
        """Consume the source's signal and place its subtopics."""
        self._cards = split_cards(self._cards, source_index, subtopics)
        self._discard(source_index)
        for slot in replaced_slots(source_index)[: len(subtopics)]:
            self._discard(slot)
        return self.cards


__all__ = [
    "CARD_SET_SIZE",
    "SPLIT_PLACEMENT",
    "CardSetManager",
    "fresh_card",
    "replaced_slots",
    "split_cards",
]
