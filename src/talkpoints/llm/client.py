# -----------------------------------------------------------------------------
# A small, synchronous chat-completions client:
#   - reads provider API keys / base URLs from the environment
#   - resolves logical aliases → concrete model IDs through the registry
#   - exposes a single `generate()` method that returns the completion text
#
# Both supported providers speak the OpenAI chat-completions protocol:
#
#   - OpenRouter (provider="openrouter"), the default for talking points.
#     Requests carry the `HTTP-Referer` and `X-Title` attribution headers.
#   - OpenAI     (provider="openai").
#
# Transport is `urllib.request` from the standard library. Unit tests mock
# the internal `_post()` method so no real HTTP calls are made.
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from typing import Any

from .models import DEFAULT_ALIAS, OPENROUTER_BASE_URL, ModelConfig, get_model

#: Environment variables holding each provider's key and base-URL override.
_API_KEY_ENV: dict[str, str] = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
}
_BASE_URL_ENV: dict[str, str] = {
    "openrouter": "OPENROUTER_BASE_URL",
    "openai": "OPENAI_BASE_URL",
}

DEFAULT_REFERER = "https://talkadvantage.ai"
DEFAULT_TITLE = "TalkAdvantage"


@dataclass(slots=True)
class LLMClient:
    """Chat-completions client with a simple `generate()` API.

    Parameters
    ----------
    api_key:
        Default key for the OpenRouter provider. :meth:`from_env` fills it
        from ``OPENROUTER_API_KEY``.
    base_url:
        Default OpenRouter base URL, overridable via ``OPENROUTER_BASE_URL``.
    default_model_alias:
        Registry alias used when callers do not pass ``model``.
    timeout_seconds:
        Network timeout for each HTTP request.
    referer, title:
        Attribution headers OpenRouter shows on its dashboards.
    """

    api_key: str
    base_url: str = OPENROUTER_BASE_URL
    default_model_alias: str = DEFAULT_ALIAS
    timeout_seconds: float = 30.0
    referer: str = DEFAULT_REFERER
    title: str = DEFAULT_TITLE

    @classmethod
    def from_env(cls, default_model_alias: str = DEFAULT_ALIAS) -> LLMClient:
        """Construct a client from ``OPENROUTER_API_KEY`` / ``OPENROUTER_BASE_URL``.

        ``OPENAI_API_KEY`` is looked up lazily, only when an OpenAI model is
        actually requested.
        """
        return cls(
            api_key=os.getenv("OPENROUTER_API_KEY", ""),
            base_url=os.getenv("OPENROUTER_BASE_URL", OPENROUTER_BASE_URL),
            default_model_alias=default_model_alias,
        )

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def generate(
        self,
        messages: Sequence[Mapping[str, str]],
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the text of the first choice for ``messages``.

        Raises
        ------
        RuntimeError
            If a required API key is missing, the HTTP request fails, or the
            response carries no usable content.
        """
        config: ModelConfig = get_model(model or self.default_model_alias)
        effective_temperature = float(
            temperature if temperature is not None else config.temperature
        )
        effective_max_tokens = int(max_tokens if max_tokens is not None else config.max_tokens)

        response = self._chat_completion(
            config=config,
            messages=messages,
            temperature=effective_temperature,
            max_tokens=effective_max_tokens,
        )
        return self._extract_content(response)

    # --------------------------------------------------------------------- #
    # Request construction
    # --------------------------------------------------------------------- #
    def _credentials(self, provider: str) -> tuple[str, str]:
        """Resolve ``(api_key, base_url)`` for ``provider``.

        Environment variables win; the client's own key and URL only back
        the OpenRouter provider.
        """
        key_var = _API_KEY_ENV.get(provider, "OPENROUTER_API_KEY")
        api_key = os.getenv(key_var, "") or (self.api_key if provider == "openrouter" else "")
        if not api_key:
            raise RuntimeError(
                f"No API key for '{provider}' models; set {key_var} in the environment."
            )
        url_var = _BASE_URL_ENV.get(provider, "OPENROUTER_BASE_URL")
        return api_key, os.getenv(url_var, "")

    def _chat_completion(
        self,
        *,
        config: ModelConfig,
        messages: Sequence[Mapping[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        """POST one chat-completions request for ``config``."""
        provider = config.provider.lower().strip()
        api_key, base_url = self._credentials(provider)
        if not base_url:
            base_url = self.base_url if provider == "openrouter" else config.base_url

        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
        if provider == "openrouter":
            headers.update({"HTTP-Referer": self.referer, "X-Title": self.title})

        payload: MutableMapping[str, Any] = {
            "model": config.name,
            "messages": [dict(role=m["role"], content=m["content"]) for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        return self._post(
            url=f"{base_url.rstrip('/')}/chat/completions", headers=headers, payload=payload
        )

    # --------------------------------------------------------------------- #
    # Transport (test seam)
    # --------------------------------------------------------------------- #
    def _post(
        self,
        *,
        url: str,
        headers: Mapping[str, str],
        payload: Mapping[str, Any],
    ) -> dict[str, Any]:
        """Send ``payload`` as JSON and return the decoded reply.

        Tests monkeypatch this method; every transport failure is re-raised
        as :class:`RuntimeError`.
        """
        request = urllib.request.Request(
            url, data=json.dumps(payload).encode("utf-8"), headers=dict(headers), method="POST"
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout_seconds) as resp:
                text = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            detail = body or exc.reason
            raise RuntimeError(f"Completion request failed ({exc.code}): {detail}") from exc
        except (urllib.error.URLError, TimeoutError) as exc:
            raise RuntimeError(f"Completion request did not reach {url}: {exc}") from exc

        try:
            return dict(json.loads(text))
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            raise RuntimeError("Completion reply is not a JSON object") from exc

    @staticmethod
    def _extract_content(response: Mapping[str, Any]) -> str:
        """Text of the first choice.

        OpenRouter reports upstream failures as an ``error`` object inside a
        200 response; those surface as :class:`RuntimeError` too.
        """
        error = response.get("error")
        if error:
            detail = error.get("message") if isinstance(error, Mapping) else error
            raise RuntimeError(f"LLM provider error: {detail}")

        choices = response.get("choices") or []
        first = choices[0] if isinstance(choices, list) and choices else None
        if not isinstance(first, Mapping):
            raise RuntimeError("Completion reply has no choices")

        content = (first.get("message") or {}).get("content")
        if not isinstance(content, str) or not content.strip():
            raise RuntimeError("Completion reply has an empty message")
        return content


__all__ = ["LLMClient"]
