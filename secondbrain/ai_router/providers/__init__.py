"""AI Provider implementations."""

from secondbrain.ai_router.providers.google import GoogleProvider
from secondbrain.ai_router.providers.openai import OpenAIProvider

__all__ = ["GoogleProvider", "OpenAIProvider"]
