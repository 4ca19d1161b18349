# -----------------------------------------------------------------------------
# A tiny, in-process model registry used by the LLM client.
#
# The registry maps logical aliases (e.g. "talking_points") to concrete
# provider model IDs together with their default sampling parameters, so the
# generation agent never hard-codes a provider model name.
#
# Talking points are generated through OpenRouter, which fronts many hosted
# models behind one OpenAI-compatible chat-completions endpoint. Plain OpenAI
# stays available for callers that configure it explicitly.
# -----------------------------------------------------------------------------
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"


@dataclass(frozen=True, slots=True)
class ModelConfig:
    """Configuration for a single LLM model.

    Parameters
    ----------
    name:
        Provider-specific model identifier, e.g.
        ``"mistralai/mistral-7b-instruct"``.
    provider:
        Logical provider name; drives authentication, extra headers and
        endpoint selection inside the client. ``"openrouter"`` or
        ``"openai"``.
    base_url:
        Base URL of the chat-completions API. May be overridden per provider
        through environment variables.
    max_tokens:
        Default completion budget; callers may override it per request.
    temperature:
        Default sampling temperature.
    """

    name: str
    provider: str = "openrouter"
    base_url: str = OPENROUTER_BASE_URL
    max_tokens: int = 1000
    temperature: float = 0.7


# --------------------------------------------------------------------------- #
# Registry
# --------------------------------------------------------------------------- #

MODEL_REGISTRY: dict[str, ModelConfig] = {
    # Card generation: small instruct model, warm sampling, short replies.
    "talking_points": ModelConfig(
        name="mistralai/mistral-7b-instruct",
        provider="openrouter",
        base_url=OPENROUTER_BASE_URL,
        max_tokens=1000,
        temperature=0.7,
    ),
    # Larger OpenRouter-hosted model for richer document context.
    "talking_points_large": ModelConfig(
        name="anthropic/claude-3-haiku",
        provider="openrouter",
        base_url=OPENROUTER_BASE_URL,
        max_tokens=1500,
        temperature=0.7,
    ),
    # Direct OpenAI access for deployments without an OpenRouter key.
    "fast": ModelConfig(
        name="gpt-4o-mini",
        provider="openai",
        base_url=OPENAI_BASE_URL,
        max_tokens=1000,
        temperature=0.7,
    ),
}

#: Default logical alias used when callers do not explicitly choose a model.
DEFAULT_ALIAS: str = "talking_points"


def get_model(alias_or_name: str) -> ModelConfig:
    """Return a :class:`ModelConfig` for the given alias or model name.

    Unknown names are treated as concrete OpenRouter model IDs (for example
    ``"openai/gpt-4o"``) with the default sampling parameters.
    """
    if alias_or_name in MODEL_REGISTRY:
        return MODEL_REGISTRY[alias_or_name]
    return ModelConfig(name=alias_or_name)


def all_models() -> Mapping[str, ModelConfig]:
    """Return a shallow copy of the registry for diagnostics and tests."""
    return dict(MODEL_REGISTRY)


__all__ = [
    "DEFAULT_ALIAS",
    "MODEL_REGISTRY",
    "OPENAI_BASE_URL",
    "OPENROUTER_BASE_URL",
    "ModelConfig",
    "all_models",
    "get_model",
]
