"""Schema tests for cards, context packs and generation requests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from talkpoints.core.contracts import (
    Card,
    CardContent,
    CardState,
    ContextPack,
    FailureKind,
    GenerationFailure,
    GenerationRequest,
    SplitDirective,
)


def _card(topic: str = "Pricing", hotlinks: list[str] | None = None) -> Card:
    return Card(
        topic=topic,
        hotlinks=hotlinks or ["budget", "cost", "value"],
        content=CardContent(paragraph="p", bullets=["a", "b", "c"], expansion="e"),
    )


def test_card_defaults_are_fresh() -> None:
    card = _card()
    assert card.state is CardState.BASE
    assert card.trigger_count == 0
    assert card.last_trigger_time == 0.0
    assert card.locked is False


def test_card_wire_format_uses_camel_case() -> None:
    wire = _card().model_copy(update={"trigger_count": 2}).to_wire()
    assert wire["triggerCount"] == 2
    assert "lastTriggerTime" in wire and "growthFactor" in wire
    assert wire["state"] == "base"

    again = Card.model_validate(wire)
    assert again.trigger_count == 2


def test_card_rejects_negative_trigger_count() -> None:
    with pytest.raises(ValidationError):
        Card(topic="x", content=CardContent(paragraph="p"), trigger_count=-1)


def test_context_pack_accepts_camel_case_aliases() -> None:
    pack = ContextPack.model_validate(
        {
            "userName": "Ana",
            "personRelationship": "manager",
            "goal": "Get promoted",
            "subGoals": ["Raise visibility", "Ask for scope"],
            "document": "Q3 review notes",
            "userId": "u-1",
        }
    )
    assert pack.name == "Ana"
    assert pack.person_relationship == "manager"
    assert pack.primary_sub_goal == "Raise visibility"
    assert pack.document_context == "Q3 review notes"
    assert pack.user_id == "u-1"


def test_context_pack_requires_goal() -> None:
    with pytest.raises(ValidationError):
        ContextPack.model_validate({"name": "Ana"})


def test_update_request_wire_includes_cards_and_split() -> None:
    request = GenerationRequest(
        action="update",
        context_pack=ContextPack(goal="Close the deal"),
        transcript="we talked about budget",
        current_cards=[_card()],
        split=SplitDirective(source=4, replace=[1, 2]),
    )
    body = request.to_wire()

    assert body["action"] == "update"
    assert body["contextPack"]["goal"] == "Close the deal"
    assert body["currentCards"][0]["topic"] == "Pricing"
    assert body["split"] == {"source": 4, "replace": [1, 2]}
    assert "regenerate" not in body


def test_init_request_wire_omits_current_cards() -> None:
    request = GenerationRequest(
        action="init",
        context_pack=ContextPack(goal="g"),
        regenerate=True,
    )
    body = request.to_wire()
    assert "currentCards" not in body
    assert body["regenerate"] is True


def test_only_transport_and_contract_failures_are_user_visible() -> None:
    visible = {
        kind
        for kind in FailureKind
        if GenerationFailure(kind=kind, message="m").user_visible
    }
    assert visible == {FailureKind.TRANSPORT, FailureKind.CONTRACT}
