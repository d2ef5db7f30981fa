"""Abstract base class for all AI providers.

Each provider (OpenAI, Google Gemini) implements this interface to
integrate with the AI Router.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from secondbrain.ai_router.schemas import AIResponse, Message, ModelInfo


class AIProvider(ABC):
    """Interface every AI provider implements.

    - chat: Send messages and receive a complete response.
    - available_models: Return the list of models offered by this provider.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        model: str,
        **kwargs: Any,
    ) -> AIResponse:
        """Send a chat request and return a complete response.

        Args:
            messages: The conversation history as a list of Messages.
            model: The model identifier to use.
            **kwargs: Additional provider-specific parameters
                      (e.g., temperature, max_tokens).

        Raises:
            ProviderError: If the provider request fails.
        """
        ...

    @abstractmethod
    def available_models(self) -> list[ModelInfo]:
        """Return the list of models available from this provider."""
        ...
