"""Request, response and error types shared by the chat providers.

The search answer step only needs the generated text and which provider
produced it, so responses carry nothing else.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class Message(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ModelInfo(BaseModel):
    """A model id and the provider that serves it."""

    id: str
    provider: str


class AIRequest(BaseModel):
    """One chat call.

    ``model=None`` lets the router pick the first registered provider's
    default model.  ``None`` for temperature or max_tokens leaves the
    provider default in place.
    """

    messages: list[Message]
    model: str | None = None
    temperature: float | None = 0.2
    max_tokens: int | None = 1024


class AIResponse(BaseModel):
    """Generated text (empty when the provider returned nothing) and its origin."""

    content: str
    model: str
    provider: str


class ProviderError(Exception):
    """A chat provider could not be resolved or its call failed.

    Attributes:
        provider: Provider name, or ``"router"`` for resolution failures.
        message: Error description.
        status_code: HTTP status from the provider API, when there was one.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}" + (f" (HTTP {status_code})" if status_code else ""))
