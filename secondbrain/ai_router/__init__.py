"""AI Router - Unified interface for multiple AI providers."""

from secondbrain.ai_router import prompts  # noqa: F401
from secondbrain.ai_router.router import AIRouter

__all__ = ["AIRouter"]
