"""AI prompt templates.

- search_answer: Context-grounded answer for a hybrid search query
"""

from secondbrain.ai_router.prompts import search_answer

__all__ = ["search_answer"]
