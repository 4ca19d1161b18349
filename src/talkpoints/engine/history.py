"""Single-slot rollback buffer for the card set.

Holds deep copies so later edits to the live set never leak into the saved
state. Pushing overwrites whatever was there; popping empties the slot.
"""

from __future__ import annotations

from collections.abc import Sequence

from talkpoints.core.contracts.card import Card


class SnapshotStack:
    """Snapshot stack with a capacity of one."""

    __slots__ = ("_slot",)

    def __init__(self) -> None:
        self._slot: list[Card] | None = None

    def push(self, cards: Sequence[Card]) -> list[Card] | None:
        """Save a copy of ``cards``; return the snapshot it displaced."""
        displaced = self._slot
        self._slot = [card.model_copy(deep=True) for card in cards]
        return displaced

    def pop(self) -> list[Card] | None:
        snapshot, self._slot = self._slot, None
        return snapshot

    def peek(self) -> list[Card] | None:
        return self._slot

    def restore(self, snapshot: list[Card] | None) -> None:
        """Put back a snapshot previously returned by :meth:`push`."""
        self._slot = snapshot

    def __len__(self) -> int:
        return 0 if self._slot is None else 1


__all__ = ["SnapshotStack"]
