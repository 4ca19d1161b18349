"""Chat-completions access for the generation agent (OpenRouter by default)."""

from __future__ import annotations

from .client import LLMClient
from .models import DEFAULT_ALIAS, MODEL_REGISTRY, ModelConfig, all_models, get_model

__all__ = [
    "DEFAULT_ALIAS",
    "LLMClient",
    "MODEL_REGISTRY",
    "ModelConfig",
    "all_models",
    "get_model",
]
