"""Tests for the FastAPI app: health probe and the talking-points route.

The generation service is injected through `create_app(service=...)`, so no
LLM is involved.
"""

from __future__ import annotations

import json
from typing import Any, Final

from fastapi.testclient import TestClient

from talkpoints import __version__ as PKG_VERSION
from talkpoints.api.app import create_app
from talkpoints.core.contracts.generation import GenerationError, GenerationRequest

ALLOWED_ENVS: Final[set[str]] = {"dev", "test", "prod"}

PACK: Final[dict[str, Any]] = {
    "name": "Ana",
    "person": "Sam",
    "goal": "Close the seed round",
    "subGoals": ["Agree on valuation"],
}


def _raw(topic: str) -> dict[str, Any]:
    return {
        "topic": topic,
        "hotlinks": [f"{topic}1", f"{topic}2", f"{topic}3"],
        "content": {"paragraph": topic, "bullets": ["a", "b", "c"], "expansion": "e"},
    }


class StubService:
    def __init__(self, reply: Any) -> None:
        self.reply = reply
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> Any:
        self.requests.append(request)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def _client(reply: Any) -> tuple[TestClient, StubService]:
    service = StubService(reply)
    return TestClient(create_app(service=service)), service


def test_health_endpoint_contract() -> None:
    client, _ = _client({})
    resp = client.get("/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["environment"] in ALLOWED_ENVS
    assert data["version"] == PKG_VERSION


def test_missing_fields_return_400() -> None:
    client, service = _client({})

    resp = client.post("/talkingpoints/generate", json={"contextPack": PACK})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing required fields"}
    assert service.requests == []


def test_unknown_action_returns_400() -> None:
    client, _ = _client({})
    resp = client.post(
        "/talkingpoints/generate",
        json={"transcript": "hi", "contextPack": PACK, "action": "explode"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid action"


def test_context_pack_without_goal_returns_400() -> None:
    client, _ = _client({})
    resp = client.post(
        "/talkingpoints/generate",
        json={"transcript": "hi", "contextPack": {"name": "Ana"}},
    )
    assert resp.status_code == 400


def test_init_returns_opening_and_four_cards() -> None:
    reply = "```json\n" + json.dumps({"opening": "Welcome Ana!", "cards": [_raw("A")]}) + "\n```"
    client, service = _client(reply)

    resp = client.post(
        "/talkingpoints/generate",
        json={"transcript": "hello", "contextPack": PACK, "action": "init", "userId": "u-1"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["opening"] == "Welcome Ana!"
    assert len(body["cards"]) == 4
    assert body["cards"][0]["topic"] == "A"
    assert body["cards"][1]["topic"] == "Untitled Topic"
    assert service.requests[0].context_pack.user_id == "u-1"


def test_update_pads_from_current_cards() -> None:
    client, service = _client({"updated_cards": [_raw("N1")], "visual_cues": {"priority": 2}})
    current = [_raw("C1"), _raw("C2"), _raw("C3"), _raw("C4")]

    resp = client.post(
        "/talkingpoints/generate",
        json={
            "transcript": "we discussed C2",
            "contextPack": PACK,
            "action": "update",
            "currentCards": current,
            "split": {"source": 2, "replace": [3, 4]},
        },
    )

    assert resp.status_code == 200
    body = resp.json()
    assert [c["topic"] for c in body["updated_cards"]] == ["N1", "C2", "C3", "C4"]
    assert body["visual_cues"] == {"growth_factor": 1.0, "priority": 2.0}
    request = service.requests[0]
    assert request.action == "update"
    assert request.split is not None and request.split.replace == [3, 4]


def test_service_failure_returns_500() -> None:
    client, _ = _client(GenerationError("Missing API key for provider 'openrouter'."))
    resp = client.post("/talkingpoints/generate", json={"transcript": "hi", "contextPack": PACK})

    assert resp.status_code == 500
    assert "Missing API key" in resp.json()["error"]


def test_unparseable_reply_returns_500() -> None:
    client, _ = _client("not json at all")
    resp = client.post("/talkingpoints/generate", json={"transcript": "hi", "contextPack": PACK})

    assert resp.status_code == 500
    assert "error" in resp.json()
