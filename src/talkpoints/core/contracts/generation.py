"""Contracts for talking to the external content-generation collaborator.

Request side
------------
:class:`GenerationRequest` packages the action (``init`` or ``update``), the
:class:`ContextPack` (goals, participants, supporting document text), the
transcript tail and, for updates, the serialized live card set plus an
optional :class:`SplitDirective` naming the card to split and the slots its
subtopics replace.

Response side
-------------
Raw responses are untrusted. They are turned into :class:`InitPayload` or
:class:`UpdatePayload` only by the normalizer, which reports problems as a
:class:`GenerationFailure` inside a ``Result``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Protocol

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .card import Card

Action = Literal["init", "update"]


class Participant(BaseModel):
    """Someone taking part in the conversation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    role: str = ""
    relationship_to_user: str = Field(
        default="",
        validation_alias=AliasChoices("relationship_to_user", "relationshipToUser"),
    )


class ContextPack(BaseModel):
    """Goal and audience information that seeds every generation request."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(default="", validation_alias=AliasChoices("name", "user_name", "userName"))
    user_role: str = Field(default="", validation_alias=AliasChoices("user_role", "userRole"))
    person: str = ""
    person_relationship: str = Field(
        default="",
        validation_alias=AliasChoices("person_relationship", "personRelationship"),
    )
    goal: str
    sub_goals: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("sub_goals", "subGoals")
    )
    participants: list[Participant] = Field(default_factory=list)
    key_topics: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("key_topics", "keyTopics")
    )
    notes: str = ""
    document_context: str = Field(
        default="",
        validation_alias=AliasChoices("document_context", "documentContext", "document"),
    )
    user_id: str | None = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))

    @property
    def primary_sub_goal(self) -> str:
        """First sub-goal, or an empty string when none were given."""
        return self.sub_goals[0] if self.sub_goals else ""


class SplitDirective(BaseModel):
    """Ask the generator for subtopic cards continuing ``source`` (1-based slots)."""

    source: int = Field(ge=1, le=4)
    replace: list[int] = Field(default_factory=list)


class GenerationRequest(BaseModel):
    """Everything the generation service needs for one call."""

    action: Action
    context_pack: ContextPack
    transcript: str = ""
    current_cards: list[Card] = Field(default_factory=list)
    split: SplitDirective | None = None
    regenerate: bool = False

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON body of the original HTTP route."""
        body: dict[str, Any] = {
            "action": self.action,
            "contextPack": self.context_pack.model_dump(mode="json"),
            "transcript": self.transcript,
        }
        if self.action == "update":
            body["currentCards"] = [card.to_wire() for card in self.current_cards]
        if self.split is not None:
            body["split"] = self.split.model_dump(mode="json")
        if self.regenerate:
            body["regenerate"] = True
        return body


class VisualCues(BaseModel):
    """Presentation hints returned with an update."""

    growth_factor: float = 1.0
    priority: float = 0.0


class InitPayload(BaseModel):
    """Validated ``init`` response: an opening statement plus four cards."""

    opening: str
    cards: list[Card]


class UpdatePayload(BaseModel):
    """Validated ``update`` response: four cards plus visual cues."""

    updated_cards: list[Card]
    visual_cues: VisualCues = Field(default_factory=VisualCues)


class FailureKind(str, Enum):
    """Why a generation round did not produce a new card set.

    ``TRANSPORT`` and ``CONTRACT`` are real failures shown to the user. The
    remaining kinds describe requests the orchestrator dropped on purpose.
    """

    TRANSPORT = "transport"
    CONTRACT = "contract"
    DISABLED = "disabled"
    NOT_READY = "not_ready"
    NOT_INITIALIZED = "not_initialized"
    IN_FLIGHT = "in_flight"
    COOLDOWN = "cooldown"
    NO_NEW_TRIGGERS = "no_new_triggers"
    TRANSCRIPT_TOO_SHORT = "transcript_too_short"
    EMPTY_HISTORY = "empty_history"


_USER_VISIBLE = frozenset({FailureKind.TRANSPORT, FailureKind.CONTRACT})


class GenerationFailure(BaseModel):
    """Failure payload carried in ``Err`` results."""

    kind: FailureKind
    message: str

    @property
    def user_visible(self) -> bool:
        """True for transport and contract failures."""
        return self.kind in _USER_VISIBLE


class GenerationError(RuntimeError):
    """Raised by a :class:`GenerationService` when the remote call fails."""


class GenerationService(Protocol):
    """The external content generator (an LLM behind chat completions)."""

    async def generate(self, request: GenerationRequest) -> Any:
        """Return the raw response (text or decoded JSON) for ``request``."""
        ...


__all__ = [
    "Action",
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
