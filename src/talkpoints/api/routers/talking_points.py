"""
API route for talking-points generation.

Endpoints
---------
- `POST /talkingpoints/generate`: run one ``init`` or ``update`` round
  against the generation service and return normalized cards.

Status codes
------------
- 200 with ``{opening, cards}`` or ``{updated_cards, visual_cues}``.
- 400 with ``{"error": ...}`` when ``transcript`` or ``contextPack`` is
  missing, the context pack is invalid, or the action is unknown.
- 500 with ``{"error": ...}`` when the service fails or its output cannot be
  normalized.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from talkpoints.agents.talking_points_agent import LLMGenerationService
from talkpoints.core.contracts.generation import (
    ContextPack,
    GenerationError,
    GenerationRequest,
    GenerationService,
    SplitDirective,
)
from talkpoints.core.settings import get_logger
from talkpoints.engine.normalizer import normalize_cards, normalize_init, normalize_update

from ..schemas import ErrorResponse, GenerateBody, InitResponse, UpdateResponse

router = APIRouter(tags=["Talking Points"])
logger = get_logger("talkpoints.api")

_ACTIONS = ("init", "update")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def _service_for(request: Request, body: GenerateBody) -> GenerationService:
    service: GenerationService = request.app.state.generation_service
    if body.model and isinstance(service, LLMGenerationService):
        return service.with_model(body.model)
    return service


@router.post(
    "/talkingpoints/generate",
    response_model=InitResponse | UpdateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Generate or update talking-point cards",
)
async def generate_talking_points(body: GenerateBody, request: Request) -> Any:
    """
    Generate an opening plus four cards (``init``) or refresh the current
    cards (``update``). The response always holds exactly four cards.
    """
    if not body.transcript or not body.context_pack:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required fields")
    if body.action not in _ACTIONS:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid action")

    try:
        pack_data = dict(body.context_pack)
        if body.user_id and not pack_data.get("userId") and not pack_data.get("user_id"):
            pack_data["userId"] = body.user_id
        context_pack = ContextPack.model_validate(pack_data)
        split = SplitDirective.model_validate(body.split) if body.split else None
    except ValidationError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {exc.errors()[0]['msg']}")

    current_cards = normalize_cards(body.current_cards) if body.current_cards else []
    generation_request = GenerationRequest(
        action="init" if body.action == "init" else "update",
        context_pack=context_pack,
        transcript=body.transcript,
        current_cards=current_cards,
        split=split,
        regenerate=body.regenerate,
    )

    try:
        raw = await _service_for(request, body).generate(generation_request)
    except GenerationError as exc:
        logger.warning("Talking-points generation failed: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    if body.action == "init":
        init = normalize_init(raw)
        if init.is_err():
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, init.unwrap_err().message)
        payload = init.unwrap()
        return InitResponse(opening=payload.opening, cards=[c.to_wire() for c in payload.cards])

    update = normalize_update(raw, current_cards)
    if update.is_err():
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, update.unwrap_err().message)
    updated = update.unwrap()
    return UpdateResponse(
        updated_cards=[c.to_wire() for c in updated.updated_cards],
        visual_cues=updated.visual_cues.model_dump(),
    )


__all__ = ["router"]
