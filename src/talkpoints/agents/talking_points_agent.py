"""Talking-points generation agent.

Turns a :class:`GenerationRequest` into chat messages for the LLM and returns
the raw completion text. It does no validation of its own: everything the
model says goes through the response normalizer before it touches a card.

Message layout
--------------
1. ``system``: the assistant persona, goals and document context.
2. ``user``: the action prompt (init, regeneration or update, the latter
   optionally carrying a split request with its placement).
3. ``user``: the transcript.

Document context
----------------
A :class:`DocumentRetriever` may supply passages relevant to the transcript.
The query is built from transcript keywords, falling back to the goal. When
the retriever has nothing, the context pack's own ``document_context`` is
used.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Protocol

from talkpoints.core.contracts.generation import (
    ContextPack,
    GenerationError,
    GenerationRequest,
    SplitDirective,
)
from talkpoints.core.settings import get_logger, load_settings
from talkpoints.llm.client import LLMClient

logger = get_logger("talkpoints.agents")

_TRANSCRIPT_TAIL_CHARS = 500
_RETRIEVAL_LIMIT = 3
_NON_WORD_RE = re.compile(r"\W+")

_CARD_SCHEMA = """{
  "topic": "string",
  "hotlinks": ["word1", "word2", "word3"],
  "content": {
    "paragraph": "string",
    "bullets": ["bullet1", "bullet2", "bullet3"],
    "expansion": "string"
  },
  "state": "base",
  "position": "start"
}"""

_FORMAT_RULES = """- Hotlink words must be single, common English words: no hyphens,
  spaces or special characters, and no overlap with any other card.
- Every card has exactly 3 hotlink words.
- Do NOT return a single string for content.
- Do NOT leave bullets empty. If unsure, invent plausible bullets.
- Respond ONLY with valid JSON, no markdown, no commentary."""


# --------------------------------------------------------------------------- #
# Retrieval collaborator
# --------------------------------------------------------------------------- #


class DocumentRetriever(Protocol):
    """Knowledge-base lookup for passages relevant to the conversation."""

    def relevant_context(self, query: str, user_id: str | None, limit: int) -> list[str]:
        """Return up to ``limit`` passages for ``query``."""
        ...


class NullRetriever:
    """Retriever for deployments without a knowledge base."""

    def relevant_context(self, query: str, user_id: str | None, limit: int) -> list[str]:
        return []


def build_retrieval_query(transcript: str, goal: str) -> str:
    """Lowercased transcript words longer than two characters, or the goal."""
    words = [
        word
        for word in _NON_WORD_RE.split(transcript.lower())
        if len(word) > 2 and "-" not in word
    ]
    return " ".join(words) or goal


# --------------------------------------------------------------------------- #
# Prompts
# --------------------------------------------------------------------------- #


def _document_text(context_pack: ContextPack, document_context: str) -> str:
    return document_context or context_pack.document_context or "no document"


def build_system_prompt(context_pack: ContextPack, document_context: str = "") -> str:
    """Persona and goals shared by every action."""
    name = context_pack.name or "the user"
    person = context_pack.person or "their counterpart"
    relationship = context_pack.person_relationship or "conversation partner"
    sub_goal = context_pack.primary_sub_goal or "none"
    today = date.today().isoformat()

    return f"""You are Talk Advantage, an AI presentation assistant giving {name} a strategic
edge in a live conversation with {person}, their {relationship}. Today is {today}.
The primary goal is {context_pack.goal}, and the secondary goal is {sub_goal}.
Use the following document context for reference:
{_document_text(context_pack, document_context)}

Core behaviors:
- Identity: a tactical interaction partner guiding {name} through a 2x2 grid of
  topic cards with talking points toward {context_pack.goal}.
- Conversation tracking: follow the live transcript and use hotlink (trigger)
  words to detect progress or pivots. Allow moving forward to new topics or
  back to earlier cards. Prioritize the most recent things said.
- Style: adapt to the tone of the conversation and mimic the user's voice.
  No emojis. Avoid lists unless the card format asks for them.
- Reflection: before producing cards, check that they serve {context_pack.goal}
  and {sub_goal} at medium specificity.
- Provide no additional commentary."""


def build_init_prompt(context_pack: ContextPack, document_context: str = "") -> str:
    """Opening statement plus four cards."""
    name = context_pack.name or "the user"
    sub_goal = context_pack.primary_sub_goal or "none"
    topics = ", ".join(context_pack.key_topics) or "none given"

    return f"""Generate an opening statement and 4 conversation topic cards to guide {name}
toward the primary goal of {context_pack.goal} and the secondary goal of {sub_goal}.
Key topics: {topics}.
Use this document context if relevant: {_document_text(context_pack, document_context)}

Every card MUST have this shape:
{_CARD_SCHEMA}
{_FORMAT_RULES}

Opening statement requirements:
- Start with "Welcome {name}!"
- Mention the primary goal and the secondary goal.
- 2-3 concise, professional sentences without placeholders.

Card requirements:
- Each card is a distinct path toward the goals.
- Topic: 3 words max. Paragraph: 1-2 sentences. Bullets: 3, 1-2 sentences each.
  Expansion: 1-2 sentences on next steps.

Output format:
{{
  "opening": "string",
  "cards": [ ...4 cards... ]
}}"""


def build_regenerate_prompt(context_pack: ContextPack, document_context: str = "") -> str:
    """Topic-shift variant of the init prompt: a fresh set of four cards."""
    return (
        "The conversation has moved away from every current card: no hotlink was "
        "heard for a while. Generate a completely new set of 4 cards seeded by the "
        f"goal ({context_pack.goal}) and sub-goal "
        f"({context_pack.primary_sub_goal or 'none'}) and by what is being said now.\n\n"
        + build_init_prompt(context_pack, document_context)
    )


def _split_rules(split: SplitDirective) -> str:
    slots = " and ".join(str(slot) for slot in split.replace) or "none"
    return f"""
Split request:
- Card {split.source} reached its third trigger. Keep card {split.source} exactly as it is.
- Return closely related subtopic cards that logically follow from card
  {split.source}, placed at position(s) {slots} of "updated_cards". Each has a
  3-word max topic, 3 new hotlink words, a new paragraph and 3 bullets.
- Leave every other position unchanged."""


def build_update_prompt(
    transcript: str,
    current_cards: Sequence[Mapping[str, object]],
    split: SplitDirective | None = None,
) -> str:
    """Refresh card content after trigger activity."""
    cards_json = json.dumps(list(current_cards), indent=2)
    split_block = _split_rules(split) if split is not None else ""

    return f"""Current conversation state:
{transcript[-_TRANSCRIPT_TAIL_CHARS:]}

Active cards (in display order, positions 1-4):
{cards_json}

Every card MUST have this shape:
{_CARD_SCHEMA}
{_FORMAT_RULES}

Update rules:
- A card whose triggerCount is 2 is elongated: deepen its content.
- Cards with 0 or 1 triggers may be replaced with new subtopics related to the
  most recently triggered card.
- Always return exactly 4 cards in "updated_cards", in the same order.{split_block}

Output format:
{{
  "updated_cards": [ ...4 cards... ],
  "visual_cues": {{"growth_factor": 1.0, "priority": 0}}
}}
growth_factor is between 1.0 and 2.0; priority is between 0 and 3."""


def build_messages(request: GenerationRequest, document_context: str = "") -> list[dict[str, str]]:
    """Assemble the three chat messages for ``request``."""
    pack = request.context_pack
    if request.action == "update":
        user_prompt = build_update_prompt(
            request.transcript,
            [card.to_wire() for card in request.current_cards],
            request.split,
        )
    elif request.regenerate:
        user_prompt = build_regenerate_prompt(pack, document_context)
    else:
        user_prompt = build_init_prompt(pack, document_context)

    return [
        {"role": "system", "content": build_system_prompt(pack, document_context)},
        {"role": "user", "content": user_prompt},
        {
            "role": "user",
            "content": f"Here is the current conversation transcript:\n\n{request.transcript}",
        },
    ]


# --------------------------------------------------------------------------- #
# Service
# --------------------------------------------------------------------------- #


def _get_llm_client() -> LLMClient:
    """Return the LLM client used by the agent.

    Separated into a tiny helper so tests can monkeypatch this function and
    inject a fake client.
    """
    return LLMClient.from_env(default_model_alias=load_settings().model_alias)


class LLMGenerationService:
    """:class:`GenerationService` backed by a chat-completions model.

    The blocking HTTP call runs in a worker thread so the event loop keeps
    serving transcript updates meanwhile.
    """

    def __init__(
        self,
        client: LLMClient | None = None,
        retriever: DocumentRetriever | None = None,
        *,
        model: str | None = None,
    ) -> None:
        self._client = client
        self._retriever: DocumentRetriever = retriever if retriever is not None else NullRetriever()
        self._model = model

    def with_model(self, model: str) -> LLMGenerationService:
        """Same client and retriever, different model alias or ID."""
        return LLMGenerationService(self._client, self._retriever, model=model)

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = _get_llm_client()
        return self._client

    def _document_context(self, request: GenerationRequest) -> str:
        pack = request.context_pack
        query = build_retrieval_query(request.transcript, pack.goal)
        passages = self._retriever.relevant_context(query, pack.user_id, _RETRIEVAL_LIMIT)
        return "\n\n".join(passages)

    async def generate(self, request: GenerationRequest) -> str:
        """Return the raw completion for ``request``.

        Raises
        ------
        GenerationError
            If the LLM call fails for any reason.
        """
        messages = build_messages(request, self._document_context(request))
        logger.debug("Requesting %s talking points (%d messages)", request.action, len(messages))
        try:
            return await asyncio.to_thread(self.client.generate, messages, model=self._model)
        except RuntimeError as exc:
            raise GenerationError(str(exc)) from exc


__all__ = [
    "DocumentRetriever",
    "LLMGenerationService",
    "NullRetriever",
    "build_init_prompt",
    "build_messages",
    "build_regenerate_prompt",
    "build_retrieval_query",
    "build_system_prompt",
    "build_update_prompt",
]
