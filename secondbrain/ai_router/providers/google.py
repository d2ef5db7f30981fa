"""Google Gemini AI provider (``google-genai`` SDK).

Usage::

    provider = GoogleProvider(api_key="your-api-key")
    response = await provider.chat(messages, model="gemini-2.5-flash")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from google import genai
from google.genai import types

from secondbrain.ai_router.providers.base import AIProvider
from secondbrain.ai_router.schemas import (
    AIResponse,
    Message,
    ModelInfo,
    ProviderError,
)

logger = logging.getLogger(__name__)

_PROVIDER_NAME = "google"

_AVAILABLE_MODELS = [
    ModelInfo(id="gemini-2.5-flash", provider=_PROVIDER_NAME),
    ModelInfo(id="gemini-2.5-pro", provider=_PROVIDER_NAME),
    ModelInfo(id="gemini-2.0-flash", provider=_PROVIDER_NAME),
    ModelInfo(id="gemini-1.5-flash", provider=_PROVIDER_NAME),
]


def _convert_messages(
    messages: list[Message],
) -> tuple[list[dict[str, Any]], str | None]:
    """Convert unified Messages to Gemini content format.

    Separates system messages into a system_instruction string and
    converts the remaining messages to Gemini's content format.
    Role "assistant" is mapped to "model".

    Returns:
        A tuple of (contents, system_instruction).
    """
    system_parts: list[str] = []
    contents: list[dict[str, Any]] = []

    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
        else:
            role = "model" if msg.role == "assistant" else msg.role
            contents.append({"role": role, "parts": [{"text": msg.content}]})

    system_instruction = "\n".join(system_parts) if system_parts else None
    return contents, system_instruction


class GoogleProvider(AIProvider):
    """AI provider implementation for Google Gemini models.

    Args:
        api_key: Google AI Studio API key.

    Raises:
        ProviderError: If no API key is given.
    """

    def __init__(self, api_key: str) -> None:
        if not api_key:
            raise ProviderError(provider=_PROVIDER_NAME, message="API key is required.")
        self._client = genai.Client(api_key=api_key)

    def _build_config(self, system_instruction: str | None, **kwargs: Any) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=kwargs.get("temperature"),
            max_output_tokens=kwargs.get("max_tokens"),
        )

    async def chat(
        self,
        messages: list[Message],
        model: str,
        **kwargs: Any,
    ) -> AIResponse:
        """Generate a response with Gemini.

        A response blocked by safety filters has no text; it is returned
        with empty content rather than raised.
        """
        contents, system_instruction = _convert_messages(messages)
        config = self._build_config(system_instruction, **kwargs)
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as exc:
            raise ProviderError(provider=_PROVIDER_NAME, message=str(exc)) from exc

        text = response.text or ""
        if not text:
            logger.warning("Gemini returned no text (model=%s)", model)

        return AIResponse(
            content=text,
            model=model,
            provider=_PROVIDER_NAME,
        )

    def available_models(self) -> list[ModelInfo]:
        return list(_AVAILABLE_MODELS)
