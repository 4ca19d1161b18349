# tests/test_cli.py
"""
Tests for the talking-points command-line interface.

We use `typer.testing.CliRunner` to invoke the app in-process. The `simulate`
command gets a fake generation service through the `_build_service` seam.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from talkpoints import cli
from talkpoints.cli import app
from talkpoints.core.contracts.generation import GenerationRequest


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    return CliRunner()


def _raw(topic: str, hotlinks: list[str]) -> dict[str, Any]:
    return {
        "topic": topic,
        "hotlinks": hotlinks,
        "content": {"paragraph": f"About {topic}", "bullets": ["a", "b", "c"], "expansion": "e"},
    }


INIT = {
    "opening": "Welcome Ana!",
    "cards": [
        _raw("Pricing", ["budget", "cost", "price"]),
        _raw("Timeline", ["launch", "deadline", "quarter"]),
        _raw("Team", ["hire", "staff", "roles"]),
        _raw("Risks", ["risk", "legal", "security"]),
    ],
}


class ScriptedService:
    def __init__(self) -> None:
        self.requests: list[GenerationRequest] = []

    async def generate(self, request: GenerationRequest) -> Any:
        self.requests.append(request)
        if request.action == "init":
            return INIT
        return {"updated_cards": [_raw("Margins", ["margin", "discount", "terms"])]}


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, result.output
    assert "normalize" in result.output
    assert "simulate" in result.output


def test_normalize_init_response(runner: CliRunner, tmp_path: Path) -> None:
    response = tmp_path / "init.json"
    response.write_text(json.dumps(INIT), encoding="utf-8")

    result = runner.invoke(app, ["normalize", str(response)])

    assert result.exit_code == 0, result.output
    assert "Welcome Ana!" in result.output
    assert "Pricing" in result.output


def test_normalize_update_pads_from_previous(runner: CliRunner, tmp_path: Path) -> None:
    response = tmp_path / "update.json"
    response.write_text(json.dumps({"updated_cards": [_raw("Fresh", ["x", "y", "z"])]}), encoding="utf-8")
    previous = tmp_path / "cards.json"
    previous.write_text(json.dumps(INIT), encoding="utf-8")

    result = runner.invoke(
        app, ["normalize", str(response), "--action", "update", "--previous", str(previous)]
    )

    assert result.exit_code == 0, result.output
    assert "Fresh" in result.output
    assert "Risks" in result.output


def test_normalize_reports_contract_failure(runner: CliRunner, tmp_path: Path) -> None:
    response = tmp_path / "bad.txt"
    response.write_text("no json here", encoding="utf-8")

    result = runner.invoke(app, ["normalize", str(response)])

    assert result.exit_code == 1
    assert "contract" in result.output


def test_normalize_rejects_unknown_action(runner: CliRunner, tmp_path: Path) -> None:
    response = tmp_path / "init.json"
    response.write_text(json.dumps(INIT), encoding="utf-8")

    result = runner.invoke(app, ["normalize", str(response), "--action", "merge"])

    assert result.exit_code == 2


def test_normalize_fails_on_missing_file(runner: CliRunner) -> None:
    result = runner.invoke(app, ["normalize", "ghost.json"])
    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_simulate_replays_transcript(
    runner: CliRunner, tmp_path: Path, monkeypatch: Any
) -> None:
    service = ScriptedService()
    monkeypatch.setattr(cli, "_build_service", lambda model: service)

    transcript = tmp_path / "meeting.txt"
    transcript.write_text("Thanks for joining.\nLet's look at the budget first.\n", encoding="utf-8")
    context = tmp_path / "pack.json"
    context.write_text(json.dumps({"name": "Ana", "goal": "Agree on pricing"}), encoding="utf-8")

    result = runner.invoke(app, ["simulate", str(transcript), "--context", str(context)])

    assert result.exit_code == 0, result.output
    assert [r.action for r in service.requests] == ["init", "update"]
    assert "Margins" in result.output


def test_simulate_rejects_invalid_context(runner: CliRunner, tmp_path: Path) -> None:
    transcript = tmp_path / "meeting.txt"
    transcript.write_text("hello\n", encoding="utf-8")
    context = tmp_path / "pack.json"
    context.write_text(json.dumps({"name": "Ana"}), encoding="utf-8")

    result = runner.invoke(app, ["simulate", str(transcript), "--context", str(context)])

    assert result.exit_code == 2
    assert "Invalid context pack" in result.output
