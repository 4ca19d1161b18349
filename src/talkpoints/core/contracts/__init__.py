from __future__ import annotations

from .card import CARD_SET_SIZE, Card, CardContent, CardPosition, CardState
from .generation import (
    ContextPack,
    FailureKind,
    GenerationError,
    GenerationFailure,
    GenerationRequest,
    GenerationService,
    InitPayload,
    Participant,
    SplitDirective,
    UpdatePayload,
    VisualCues,
)

__all__ = [
    "CARD_SET_SIZE",
    "Card",
    "CardContent",
    "CardPosition",
    "CardState",
    "ContextPack",
    "FailureKind",
    "GenerationError",
    "GenerationFailure",
    "GenerationRequest",
    "GenerationService",
    "InitPayload",
    "Participant",
    "SplitDirective",
    "UpdatePayload",
    "VisualCues",
]
