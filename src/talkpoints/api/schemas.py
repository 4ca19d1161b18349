"""Request and response bodies of the talking-points HTTP route.

Field names follow the camelCase JSON used by browser clients. Every field is
optional at the schema level so the route itself can answer missing fields
with a plain ``400 {"error": ...}`` instead of a validation report.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerateBody(BaseModel):
    """Body of ``POST /talkingpoints/generate``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transcript: str = ""
    context_pack: dict[str, Any] | None = Field(default=None, alias="contextPack")
    action: str = "init"
    current_cards: list[Any] = Field(default_factory=list, alias="currentCards")
    split: dict[str, Any] | None = None
    regenerate: bool = False
    model: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class InitResponse(BaseModel):
    opening: str
    cards: list[dict[str, Any]]


class UpdateResponse(BaseModel):
    updated_cards: list[dict[str, Any]]
    visual_cues: dict[str, float]


class ErrorResponse(BaseModel):
    error: str


__all__ = ["ErrorResponse", "GenerateBody", "InitResponse", "UpdateResponse"]
