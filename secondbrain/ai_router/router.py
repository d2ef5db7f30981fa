"""AI Router - Unified interface for routing chat requests to AI providers.

Providers are registered from explicit API keys (usually taken from
:class:`~secondbrain.config.Settings`).  A provider whose key is missing is
skipped, so a router with no providers is valid: callers that need an
answer must handle :class:`ProviderError`.

Usage:
    router = AIRouter.from_settings(get_settings())
    response = await router.chat(AIRequest(messages=[...], model="gpt-4o-mini"))
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from secondbrain.ai_router.providers.base import AIProvider
from secondbrain.ai_router.schemas import (
    AIRequest,
    AIResponse,
    ModelInfo,
    ProviderError,
)

if TYPE_CHECKING:
    from secondbrain.config import Settings

logger = logging.getLogger(__name__)

# (provider_name, provider_class_path), in auto-selection order.
_PROVIDER_REGISTRY: list[tuple[str, str]] = [
    ("openai", "secondbrain.ai_router.providers.openai.OpenAIProvider"),
    ("google", "secondbrain.ai_router.providers.google.GoogleProvider"),
]


class AIRouter:
    """Manages AI providers behind one chat interface.

    Args:
        api_keys: Mapping of provider name to API key.  Empty keys are skipped.
    """

    def __init__(self, api_keys: dict[str, str] | None = None) -> None:
        self._providers: dict[str, AIProvider] = {}
        self._register_from_keys(api_keys or {})

    @classmethod
    def from_settings(cls, settings: Settings) -> AIRouter:
        return cls(
            {
                "openai": settings.OPENAI_API_KEY,
                "google": settings.GOOGLE_API_KEY,
            }
        )

    def _register_from_keys(self, api_keys: dict[str, str]) -> None:
        """Instantiate every known provider that has an API key.

        Errors during instantiation are logged and the provider is skipped.
        """
        for name, class_path in _PROVIDER_REGISTRY:
            api_key = api_keys.get(name, "")
            if not api_key:
                continue

            try:
                module_path, class_name = class_path.rsplit(".", 1)
                module = importlib.import_module(module_path)
                provider_cls = getattr(module, class_name)
                self._providers[name] = provider_cls(api_key=api_key)
                logger.info("Registered AI provider: %s", name)
            except Exception:
                logger.warning(
                    "Failed to initialize provider %s (key present but init failed)",
                    name,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def register_provider(self, name: str, provider: AIProvider) -> None:
        """Manually register (or replace) a provider."""
        self._providers[name] = provider

    # ------------------------------------------------------------------
    # Model discovery
    # ------------------------------------------------------------------

    def all_models(self) -> list[ModelInfo]:
        models: list[ModelInfo] = []
        for provider in self._providers.values():
            models.extend(provider.available_models())
        return models

    def resolve_model(self, model: str | None = None) -> tuple[str, AIProvider]:
        """Find the provider that serves a given model.

        Args:
            model: Model identifier (e.g. "gpt-4o-mini").  When *None*, the
                first registered provider's first model is selected.

        Returns:
            A tuple of (model_id, provider_instance).

        Raises:
            ProviderError: If no providers are registered or the model
                cannot be found in any provider.
        """
        if not self._providers:
            raise ProviderError(
                provider="router",
                message="No AI providers are registered. Set OPENAI_API_KEY or GOOGLE_API_KEY.",
            )

        if model is None:
            first_provider_name = next(iter(self._providers))
            first_provider = self._providers[first_provider_name]
            models = first_provider.available_models()
            if not models:
                raise ProviderError(
                    provider=first_provider_name,
                    message="Provider has no available models.",
                )
            return models[0].id, first_provider

        for provider in self._providers.values():
            for model_info in provider.available_models():
                if model_info.id == model:
                    return model, provider

        available_ids = [m.id for m in self.all_models()]
        raise ProviderError(
            provider="router",
            message=f"Model '{model}' not found. Available models: {', '.join(available_ids) or 'none'}",
        )

    async def chat(self, request: AIRequest) -> AIResponse:
        """Send a chat request to the provider that serves ``request.model``.

        Raises:
            ProviderError: If the model or provider cannot be resolved,
                or the underlying provider call fails.
        """
        model_name, provider = self.resolve_model(request.model)

        kwargs: dict[str, Any] = {}
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens

        return await provider.chat(
            messages=request.messages,
            model=model_name,
            **kwargs,
        )
