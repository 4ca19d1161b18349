"""Per-card growth state machine.

``state = f(trigger_count)`` with thresholds at 1, 2 and 3. Cards are pydantic
models; every function here returns a new card and leaves its argument
untouched, so snapshots taken before a pass stay intact.
"""

from __future__ import annotations

from talkpoints.core.contracts.card import Card, CardState


def state_for_count(trigger_count: int, *, split_threshold: int = 3) -> CardState:
    """Map a cumulative trigger count to its display state."""
    if trigger_count >= split_threshold:
        return CardState.SPLIT
    if trigger_count >= 2:
        return CardState.ELONGATED
    if trigger_count >= 1:
        return CardState.GROWING
    return CardState.BASE


def with_trigger_count(card: Card, trigger_count: int, *, split_threshold: int = 3) -> Card:
    """Set the count and recompute state; a locked card keeps its state."""
    trigger_count = max(0, trigger_count)
    if card.locked:
        return card.model_copy(update={"trigger_count": trigger_count})
    return card.model_copy(
        update={
            "trigger_count": trigger_count,
            "state": state_for_count(trigger_count, split_threshold=split_threshold),
        }
    )


def register_matches(
    card: Card,
    new_matches: int,
    now: float,
    *,
    split_threshold: int = 3,
) -> Card:
    """Fold ``new_matches`` qualifying matches observed at ``now`` into ``card``.

    Locked cards and passes without matches return ``card`` itself.
    """
    if card.locked or new_matches <= 0:
        return card
    updated = with_trigger_count(
        card, card.trigger_count + new_matches, split_threshold=split_threshold
    )
    return updated.model_copy(update={"last_trigger_time": now})


def crossed_split_threshold(before: Card, after: Card, *, split_threshold: int = 3) -> bool:
    """True when this transition is the one that reached the split threshold."""
    return before.trigger_count < split_threshold <= after.trigger_count


def reset(card: Card) -> Card:
    """Manual override: back to zero triggers and ``base``, even when locked."""
    return card.model_copy(update={"trigger_count": 0, "state": CardState.BASE})


def set_locked(card: Card, locked: bool) -> Card:
    return card.model_copy(update={"locked": locked})


__all__ = [
    "crossed_split_threshold",
    "register_matches",
    "reset",
    "set_locked",
    "state_for_count",
    "with_trigger_count",
]
