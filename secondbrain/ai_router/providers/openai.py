"""OpenAI provider using the official openai SDK (AsyncOpenAI).

Usage:
    provider = OpenAIProvider(api_key="sk-...")
    response = await provider.chat(messages, model="gpt-4o-mini")
"""

from __future__ import annotations

from typing import Any

import openai
from openai import AsyncOpenAI

from secondbrain.ai_router.providers.base import AIProvider
from secondbrain.ai_router.schemas import (
    AIResponse,
    Message,
    ModelInfo,
    ProviderError,
)

_PROVIDER_NAME = "openai"

_SUPPORTED_MODELS: list[ModelInfo] = [
    ModelInfo(id="gpt-4o-mini", provider=_PROVIDER_NAME),
    ModelInfo(id="gpt-4o", provider=_PROVIDER_NAME),
    ModelInfo(id="gpt-4.1-mini", provider=_PROVIDER_NAME),
    ModelInfo(id="gpt-4.1", provider=_PROVIDER_NAME),
    ModelInfo(id="o4-mini", provider=_PROVIDER_NAME),
]

# Models that require max_completion_tokens instead of max_tokens.
_MAX_COMPLETION_TOKENS_PREFIXES = ("o1", "o3", "o4", "gpt-5", "gpt-4.1")
# Reasoning models additionally do not support the temperature parameter.
_REASONING_MODEL_PREFIXES = ("o1", "o3", "o4")


class OpenAIProvider(AIProvider):
    """AI provider backed by the OpenAI chat completions API.

    Args:
        api_key: OpenAI API key.
        timeout: Request timeout in seconds.

    Raises:
        ProviderError: If no API key is given.
    """

    def __init__(self, api_key: str, *, timeout: float = 60.0) -> None:
        if not api_key:
            raise ProviderError(provider=_PROVIDER_NAME, message="API key is required.")
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    @staticmethod
    def _normalize_kwargs(model: str, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Remap kwargs for models with non-standard parameter names."""
        if model.startswith(_MAX_COMPLETION_TOKENS_PREFIXES):
            if "max_tokens" in kwargs:
                kwargs["max_completion_tokens"] = kwargs.pop("max_tokens")
        if model.startswith(_REASONING_MODEL_PREFIXES):
            kwargs.pop("temperature", None)
        return kwargs

    async def chat(
        self,
        messages: list[Message],
        model: str,
        **kwargs: Any,
    ) -> AIResponse:
        """Send messages to OpenAI and return a complete response.

        Raises:
            ProviderError: On any OpenAI API error.
        """
        openai_messages = [{"role": m.role, "content": m.content} for m in messages]
        kwargs = self._normalize_kwargs(model, kwargs)
        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=openai_messages,
                **kwargs,
            )
        except openai.APIStatusError as exc:
            raise ProviderError(
                provider=_PROVIDER_NAME,
                message=str(exc),
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise ProviderError(provider=_PROVIDER_NAME, message=str(exc)) from exc

        if not completion.choices:
            return AIResponse(content="", model=completion.model, provider=_PROVIDER_NAME)

        return AIResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model,
            provider=_PROVIDER_NAME,
        )

    def available_models(self) -> list[ModelInfo]:
        return list(_SUPPORTED_MODELS)
