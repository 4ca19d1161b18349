"""Response normalizer: untrusted generation output → canonical cards.

This is the only door from the generation service into the card model.

- Shape problems on individual cards (missing topic, bullets that are blank,
  too many or too few, content returned as a bare string, unknown state) are
  repaired with fixed placeholders.
- Count problems (fewer or more than four cards) are repaired by padding from
  the previous set by index, or with placeholder cards, and by truncation.
- Anything that cannot be read as a JSON object, carries an explicit
  ``error`` field, or lacks its top-level discriminator is a hard failure
  returned as ``Err(GenerationFailure)``.

None of the public functions raise.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, TypeVar

from talkpoints.core.contracts.card import (
    BULLETS_PER_CARD,
    CARD_SET_SIZE,
    HOTLINKS_PER_CARD,
    Card,
    CardContent,
    CardPosition,
    CardState,
)
from talkpoints.core.contracts.generation import (
    FailureKind,
    GenerationFailure,
    InitPayload,
    UpdatePayload,
    VisualCues,
)
from talkpoints.core.result import Result, err, ok

PLACEHOLDER_TOPIC = "Untitled Topic"
PLACEHOLDER_HOTLINKS: tuple[str, ...] = ("trigger1", "trigger2", "trigger3")
PLACEHOLDER_PARAGRAPH = "No summary provided."
PLACEHOLDER_EXPANSION = "Further details to be discussed."
PLACEHOLDER_BULLETS: tuple[str, ...] = ("Bullet 1", "Bullet 2", "Bullet 3")

EnumT = TypeVar("EnumT", bound=Enum)


# --------------------------------------------------------------------------- #
# Top-level parsing
# --------------------------------------------------------------------------- #


def _clean_json_text(raw: str) -> str:
    """Strip Markdown code fences and keep the outermost ``{...}`` span."""
    text = raw.strip()

    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline:].strip()
        if text.endswith("```"):
            text = text[:-3].strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        text = text[start : end + 1]

    return text


def _contract_failure(message: str) -> GenerationFailure:
    return GenerationFailure(kind=FailureKind.CONTRACT, message=message)


def parse_payload(raw: Any) -> Result[Mapping[str, Any], GenerationFailure]:
    """Read ``raw`` as a JSON object.

    Mappings pass through; ``str``/``bytes`` are decoded as JSON after fence
    stripping. An ``error`` field on the object is a contract failure: the reply
    carries no cards.
    """
    payload: Any = raw
    if isinstance(raw, bytes | bytearray):
        payload = bytes(raw).decode("utf-8", errors="replace")
    if isinstance(payload, str):
        cleaned = _clean_json_text(payload)
        if not cleaned:
            return err(_contract_failure("Generation response was empty."))
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            return err(_contract_failure(f"Generation response is not valid JSON: {exc}"))

    if not isinstance(payload, Mapping):
        return err(_contract_failure("Generation response is not a JSON object."))

    remote_error = payload.get("error")
    if remote_error:
        return err(_contract_failure(f"Generation service reported an error: {remote_error}"))

    return ok(payload)


# --------------------------------------------------------------------------- #
# Field-level repair
# --------------------------------------------------------------------------- #


def _text(raw: Any) -> str | None:
    """Return a stripped non-blank string, or ``None``."""
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int | float):
        raw = str(raw)
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    return text or None


def _clean_hotlink(raw: Any) -> str:
    if not isinstance(raw, str):
        return ""
    return "".join(ch for ch in raw if ch.isalnum())


def _hotlinks(raw: Any) -> list[str]:
    """Exactly three alphanumeric single words.

    Hyphens, spaces and punctuation are squeezed out of each word; duplicates
    within the card are dropped; missing words are filled from the
    placeholder triple.
    """
    if not isinstance(raw, list | tuple):
        return list(PLACEHOLDER_HOTLINKS)

    words: list[str] = []
    for entry in raw:
        word = _clean_hotlink(entry)
        if word and word.lower() not in {w.lower() for w in words}:
            words.append(word)
        if len(words) == HOTLINKS_PER_CARD:
            break

    for filler in PLACEHOLDER_HOTLINKS:
        if len(words) == HOTLINKS_PER_CARD:
            break
        if filler not in {w.lower() for w in words}:
            words.append(filler)
    return words


def _bullets(raw: Any) -> list[str]:
    """Exactly three non-blank bullets: filter, truncate, then pad."""
    bullets: list[str] = []
    if isinstance(raw, list | tuple):
        for entry in raw:
            text = _text(entry)
            if text:
                bullets.append(text)
    bullets = bullets[:BULLETS_PER_CARD]
    for idx in range(len(bullets), BULLETS_PER_CARD):
        bullets.append(PLACEHOLDER_BULLETS[idx])
    return bullets


def _enum_value(raw: Any, enum_cls: type[EnumT], default: EnumT) -> EnumT:
    if isinstance(raw, enum_cls):
        return raw
    if isinstance(raw, str):
        try:
            return enum_cls(raw.strip().lower())
        except ValueError:
            return default
    return default


def _number(raw: Any, default: float) -> float:
    if isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def _content(raw: Any) -> CardContent:
    if isinstance(raw, str):
        node: Mapping[str, Any] = {"paragraph": raw}
    elif isinstance(raw, Mapping):
        node = raw
    else:
        node = {}
    return CardContent(
        paragraph=_text(node.get("paragraph")) or PLACEHOLDER_PARAGRAPH,
        bullets=_bullets(node.get("bullets")),
        expansion=_text(node.get("expansion")) or PLACEHOLDER_EXPANSION,
    )


def normalize_card(raw: Any) -> Card:
    """Coerce one loosely-shaped card into a valid :class:`Card`.

    Only content and presentation fields are read; trigger bookkeeping is the
    engine's business and always starts fresh here.
    """
    if isinstance(raw, Card):
        raw = raw.to_wire()
    node: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    return Card(
        topic=_text(node.get("topic")) or PLACEHOLDER_TOPIC,
        hotlinks=_hotlinks(node.get("hotlinks")),
        content=_content(node.get("content")),
        state=_enum_value(node.get("state"), CardState, CardState.BASE),
        position=_enum_value(node.get("position"), CardPosition, CardPosition.START),
        priority=_number(node.get("priority"), 0.0),
        growth_factor=_number(node.get("growthFactor", node.get("growth_factor")), 1.0),
    )


def placeholder_card() -> Card:
    """A card made entirely of placeholders."""
    return normalize_card({})


# --------------------------------------------------------------------------- #
# Set-level repair
# --------------------------------------------------------------------------- #


def ensure_size(cards: Sequence[Card], previous: Sequence[Card] | None = None) -> list[Card]:
    """Return exactly :data:`CARD_SET_SIZE` cards.

    Extra cards are truncated. A missing slot ``i`` is filled with a copy of
    ``previous[i]`` when the previous set has that index, otherwise with a
    placeholder card.
    """
    out = list(cards[:CARD_SET_SIZE])
    for idx in range(len(out), CARD_SET_SIZE):
        if previous is not None and idx < len(previous):
            out.append(previous[idx].model_copy(deep=True))
        else:
            out.append(placeholder_card())
    return out


def normalize_cards(raw: Any, previous: Sequence[Card] | None = None) -> list[Card]:
    """Normalize a raw card list and fit it to the set size."""
    cards = [normalize_card(item) for item in raw] if isinstance(raw, list | tuple) else []
    return ensure_size(cards, previous)


def _visual_cues(raw: Any) -> VisualCues:
    if not isinstance(raw, Mapping):
        return VisualCues()
    return VisualCues(
        growth_factor=_number(raw.get("growth_factor"), 1.0),
        priority=_number(raw.get("priority"), 0.0),
    )


def normalize_init(raw: Any) -> Result[InitPayload, GenerationFailure]:
    """Validate an ``init`` response (``opening`` + ``cards``)."""
    parsed = parse_payload(raw)
    if parsed.is_err():
        return err(parsed.unwrap_err())
    payload = parsed.unwrap()

    opening = payload.get("opening")
    cards = payload.get("cards")
    if not isinstance(opening, str) or not isinstance(cards, list):
        return err(_contract_failure("Init response must contain 'opening' and a 'cards' list."))

    return ok(InitPayload(opening=opening.strip(), cards=normalize_cards(cards)))


def normalize_update(
    raw: Any,
    previous: Sequence[Card] | None = None,
) -> Result[UpdatePayload, GenerationFailure]:
    """Validate an ``update`` response, padding short sets from ``previous``."""
    parsed = parse_payload(raw)
    if parsed.is_err():
        return err(parsed.unwrap_err())
    payload = parsed.unwrap()

    updated = payload.get("updated_cards")
    if not isinstance(updated, list):
        return err(_contract_failure("Update response must contain an 'updated_cards' list."))

    return ok(
        UpdatePayload(
            updated_cards=normalize_cards(updated, previous),
            visual_cues=_visual_cues(payload.get("visual_cues")),
        )
    )


__all__ = [
    "PLACEHOLDER_BULLETS",
    "PLACEHOLDER_EXPANSION",
    "PLACEHOLDER_HOTLINKS",
    "PLACEHOLDER_PARAGRAPH",
    "PLACEHOLDER_TOPIC",
    "ensure_size",
    "normalize_card",
    "normalize_cards",
    "normalize_init",
    "normalize_update",
    "parse_payload",
    "placeholder_card",
]
