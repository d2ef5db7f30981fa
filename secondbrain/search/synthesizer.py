"""Answer synthesis over the best search hit.

Sends the top-ranked item's text and the user's question to the AI
router with a context-only instruction.  Provider failures propagate as
:class:`~secondbrain.ai_router.schemas.ProviderError`; an empty or
blocked completion is reported as ``None``.
"""

from __future__ import annotations

import logging

from secondbrain.ai_router.prompts import search_answer
from secondbrain.ai_router.router import AIRouter
from secondbrain.ai_router.schemas import AIRequest

logger = logging.getLogger(__name__)


class AnswerSynthesizer:
    """Generate a short answer grounded in one piece of context.

    Args:
        router: The AI router that owns the configured providers.
        model: Model id to use, or None for the router's default.
        temperature: Sampling temperature.
        max_tokens: Upper bound on the answer length.
    """

    def __init__(
        self,
        router: AIRouter,
        model: str | None = None,
        *,
        temperature: float = 0.2,
        max_tokens: int = 512,
    ) -> None:
        self._router = router
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def summarize(self, context: str, question: str) -> str | None:
        """Answer *question* from *context* only.

        Returns:
            The stripped answer text, or None when the model returned nothing.

        Raises:
            ProviderError: If no provider is available or the call fails.
        """
        request = AIRequest(
            messages=search_answer.build_messages(question, context),
            model=self._model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        response = await self._router.chat(request)
        answer = response.content.strip()
        if not answer:
            logger.warning("Answer synthesis returned empty content (provider=%s)", response.provider)
            return None
        return answer
