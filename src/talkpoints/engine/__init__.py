"""Talking-points engine: detection, card states, the card set and its updates.

Everything below ``orchestrator`` is synchronous and pure over pydantic card
models; the orchestrator owns the timers and the single remote call.
"""

from __future__ import annotations

from .card_set import SPLIT_PLACEMENT, CardSetManager, replaced_slots, split_cards
from .history import SnapshotStack
from .normalizer import normalize_card, normalize_init, normalize_update, parse_payload
from .orchestrator import UpdateOrchestrator
from .state_machine import state_for_count
from .triggers import TriggerDetector, TriggerHistory

__all__ = [
    "SPLIT_PLACEMENT",
    "CardSetManager",
    "SnapshotStack",
    "TriggerDetector",
    "TriggerHistory",
    "UpdateOrchestrator",
    "normalize_card",
    "normalize_init",
    "normalize_update",
    "parse_payload",
    "replaced_slots",
    "split_cards",
    "state_for_count",
]
