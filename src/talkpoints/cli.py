# src/talkpoints/cli.py
"""
Talking-points Command Line Interface (CLI).

Built with `typer` and `rich`.

Features
--------
- **Normalize**: Run the response normalizer on a saved generation response
  and show the four cards it yields (or the failure it reports).
- **Simulate**: Replay a transcript file line by line through the engine
  against the configured LLM, rendering the card set after every update.

Usage
-----
    $ talkpoints normalize samples/update_response.json --action update --previous cards.json
    $ talkpoints simulate samples/meeting.txt --context samples/context_pack.json
"""

from __future__ import annotations

import asyncio
import json
import traceback
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from talkpoints.agents.talking_points_agent import LLMGenerationService
from talkpoints.core.contracts.card import Card
from talkpoints.core.contracts.generation import (
    ContextPack,
    GenerationFailure,
    GenerationService,
)
from talkpoints.core.settings import EngineConfig
from talkpoints.engine.normalizer import normalize_cards, normalize_init, normalize_update
from talkpoints.engine.orchestrator import UpdateOrchestrator

load_dotenv()

app = typer.Typer(
    help="Talking points: live hotlink-driven conversation cards.",
    rich_markup_mode="markdown",
)
console = Console()


# --------------------------------------------------------------------------- #
# Helpers: Rendering & I/O
# --------------------------------------------------------------------------- #


def _render_cards(cards: Sequence[Card], title: str = "Cards") -> None:
    """Render the card set as a table, one row per slot."""
    table = Table(title=title, show_lines=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Topic", style="bold")
    table.add_column("State")
    table.add_column("Triggers", justify="right")
    table.add_column("Hotlinks", style="cyan")
    table.add_column("Talking points")

    for idx, card in enumerate(cards, start=1):
        bullets = "\n".join(f"• {escape(b)}" for b in card.content.bullets)
        state = card.state.value + (" 🔒" if card.locked else "")
        table.add_row(
            str(idx),
            escape(card.topic),
            state,
            str(card.trigger_count),
            ", ".join(card.hotlinks),
            f"{escape(card.content.paragraph)}\n{bullets}",
        )
    console.print(table)


def _render_failure(failure: GenerationFailure) -> None:
    console.print(f"[bold red]❌ {failure.kind.value}:[/bold red] {escape(failure.message)}")


def _render_opening(opening: str) -> None:
    console.print(Panel(escape(opening) or "(no opening)", title="Opening", border_style="green"))


def _load_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _load_cards(path: Path) -> list[Card]:
    """Read a card list, or an object with ``cards``/``updated_cards``."""
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("cards", data.get("updated_cards", []))
    return normalize_cards(data)


def _build_service(model: str | None) -> GenerationService:
    """Return the generation service used by `simulate`.

    Kept as a separate function so tests can monkeypatch it with a fake.
    """
    return LLMGenerationService(model=model)


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def normalize(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Saved raw generation response (JSON, optionally fenced).",
        ),
    ],
    action: Annotated[
        str,
        typer.Option("--action", "-a", help="Response kind: 'init' or 'update'."),
    ] = "init",
    previous: Annotated[
        Path | None,
        typer.Option(
            "--previous",
            "-p",
            exists=True,
            dir_okay=False,
            help="Card set the update was requested for; pads short responses.",
        ),
    ] = None,
) -> None:
    """
    Normalize a saved generation response and show the resulting card set.
    """
    if action not in ("init", "update"):
        console.print(f"[bold red]Unknown action:[/bold red] {action!r} (use 'init' or 'update')")
        raise typer.Exit(code=2)

    raw = file.read_text(encoding="utf-8")

    if action == "init":
        init = normalize_init(raw)
        if init.is_err():
            _render_failure(init.unwrap_err())
            raise typer.Exit(code=1)
        payload = init.unwrap()
        _render_opening(payload.opening)
        _render_cards(payload.cards)
        return

    prior = _load_cards(previous) if previous is not None else None
    update = normalize_update(raw, prior)
    if update.is_err():
        _render_failure(update.unwrap_err())
        raise typer.Exit(code=1)
    updated = update.unwrap()
    _render_cards(updated.updated_cards, title="Updated cards")
    cues = updated.visual_cues
    console.print(f"[dim]growth_factor={cues.growth_factor} priority={cues.priority}[/dim]")


async def _simulate(
    lines: Sequence[str],
    context_pack: ContextPack,
    service: GenerationService,
    config: EngineConfig,
) -> UpdateOrchestrator:
    """Feed ``lines`` one at a time; update right after each trigger pass."""
    engine = UpdateOrchestrator(service, context_pack, config, on_error=_render_failure)
    engine.start()
    try:
        init = await engine.initialize()
        if init.is_err():
            raise typer.Exit(code=1)
        _render_opening(engine.opening)
        _render_cards(engine.cards, title="Initial cards")

        transcript = ""
        for number, line in enumerate(lines, start=1):
            transcript = f"{transcript} {line}".strip()
            grown = engine.on_transcript_update(transcript)
            if not grown:
                continue
            console.print(f"[yellow]Line {number}:[/yellow] {grown} card(s) triggered")
            result = await engine.request_update()
            if result.is_ok():
                _render_cards(engine.cards, title=f"After line {number}")
    finally:
        engine.close()
    return engine


@app.command()  # type: ignore[misc]
def simulate(
    transcript: Annotated[
        Path,
        typer.Argument(
            exists=True,
            dir_okay=False,
            readable=True,
            help="Transcript text file; each line is one utterance.",
        ),
    ],
    context: Annotated[
        Path,
        typer.Option(
            "--context",
            "-c",
            exists=True,
            dir_okay=False,
            readable=True,
            help="Context pack JSON (goal, subGoals, person, ...).",
        ),
    ],
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model alias or provider model ID."),
    ] = None,
    cooldown: Annotated[
        float,
        typer.Option("--cooldown", help="Seconds between trigger-driven updates."),
    ] = 0.0,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show full error tracebacks for debugging."),
    ] = False,
) -> None:
    """
    Replay a transcript through the engine and render each card update.
    """
    lines = [line.strip() for line in transcript.read_text(encoding="utf-8").splitlines()]
    lines = [line for line in lines if line]
    try:
        context_pack = ContextPack.model_validate(_load_json(context))
    except (ValueError, OSError) as e:
        console.print(f"[bold red]❌ Invalid context pack:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=2) from e

    config = EngineConfig(
        warmup_delay=0.0,
        debounce_delay=3600.0,
        update_cooldown=cooldown,
        release_delay=0.0,
        silence_timeout=3600.0,
        min_transcript_words=0,
    )
    console.print(
        Panel.fit(
            f"[bold cyan]Talking points[/bold cyan]\nReplaying: [u]{transcript.name}[/u]",
            border_style="cyan",
        )
    )

    try:
        engine = asyncio.run(_simulate(lines, context_pack, _build_service(model), config))
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[bold red]❌ Simulation Error:[/bold red] {escape(str(e))}")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from e

    _render_cards(engine.cards, title="Final cards")


if __name__ == "__main__":
    app()
