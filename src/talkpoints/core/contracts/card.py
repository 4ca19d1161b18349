"""Card: the unit of display and state in a talking-points card set.

A card carries generated content (topic, hotlinks, paragraph, bullets,
expansion) plus engine-owned bookkeeping (trigger count, derived state,
last trigger time, lock). Only the engine writes the bookkeeping fields; the
generation service is trusted with content only.

Wire format
-----------
Field names on the wire are camelCase (``triggerCount``, ``lastTriggerTime``,
``growthFactor``). Models accept either spelling on input and emit camelCase
through :meth:`Card.to_wire`.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

#: Hard cardinality of a card set.
CARD_SET_SIZE = 4

#: Number of hotlinks and bullets per card.
HOTLINKS_PER_CARD = 3
BULLETS_PER_CARD = 3


class CardState(str, Enum):
    """Display state derived from a card's trigger count."""

    BASE = "base"
    GROWING = "growing"
    ELONGATED = "elongated"
    SPLIT = "split"


class CardPosition(str, Enum):
    """Coarse narrative-order hint carried through regeneration."""

    START = "start"
    END = "end"


class CardContent(BaseModel):
    """Talking-point text shown on a card."""

    paragraph: str
    bullets: list[str] = Field(default_factory=list)
    expansion: str = ""


class Card(BaseModel):
    """One topic card.

    Fields
    ------
    topic : str
        Short display label.
    hotlinks : list[str]
        Single-word triggers; three per card, unique across the set.
    content : CardContent
        Paragraph, exactly three bullets after normalization, and expansion.
    state : CardState
        Derived from ``trigger_count`` by the state machine.
    trigger_count : int
        Cumulative qualifying matches since the last reset.
    last_trigger_time : float
        Engine-clock timestamp of the most recent qualifying match.
    locked : bool
        While true the card is excluded from trigger-driven transitions.
    """

    model_config = ConfigDict(populate_by_name=True)

    topic: str
    hotlinks: list[str] = Field(default_factory=list)
    content: CardContent
    state: CardState = CardState.BASE
    position: CardPosition = CardPosition.START
    trigger_count: int = Field(default=0, ge=0, alias="triggerCount")
    last_trigger_time: float = Field(default=0.0, alias="lastTriggerTime")
    priority: float = 0.0
    growth_factor: float = Field(default=1.0, alias="growthFactor")
    locked: bool = False

    def to_wire(self) -> dict[str, Any]:
        """Serialize with camelCase keys, as sent to the generation service."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "BULLETS_PER_CARD",
    "CARD_SET_SIZE",
    "HOTLINKS_PER_CARD",
    "Card",
    "CardContent",
    "CardPosition",
    "CardState",
]
