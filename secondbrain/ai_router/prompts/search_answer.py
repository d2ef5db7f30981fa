"""Search answer prompt template.

Answers the user's query using only the text of the best-ranked
content item.  The model must admit when the context has no answer.
"""

from __future__ import annotations

from secondbrain.ai_router.schemas import Message

SYSTEM_PROMPT = (
    "You answer questions about the user's personal notes, documents and saved links. "
    "Use only the provided context.\n\n"
    "Answer guidelines:\n"
    "1. Base every statement on the context. Do not use outside knowledge.\n"
    "2. If the context does not contain the answer, say that the notes do not cover it.\n"
    "3. Keep the answer short and direct."
)

USER_PROMPT_TEMPLATE = "Context:\n{context}\n\nQuestion: {question}"


def build_messages(question: str, context: str) -> list[Message]:
    """Build the message list for a context-grounded answer.

    Raises:
        ValueError: If question or context is empty.
    """
    if not question or not question.strip():
        raise ValueError("question must not be empty")
    if not context or not context.strip():
        raise ValueError("context must not be empty")

    return [
        Message(role="system", content=SYSTEM_PROMPT),
        Message(role="user", content=USER_PROMPT_TEMPLATE.format(context=context, question=question)),
    ]
