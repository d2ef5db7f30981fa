"""Test doubles for the search collaborators."""

from __future__ import annotations

from datetime import date, datetime

from secondbrain.search.temporal import DateParse


class FakeEmbeddingService:
    """Returns canned vectors and records every text it was asked to embed."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0, 0.0]
        self.error = error
        self.calls: list[str] = []

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vectors.get(text, self.default)


class FakeTemporalParser:
    def __init__(self, value: date | None = None, failed: bool = False) -> None:
        self.result = DateParse(value, failed=failed)
        self.calls: list[str] = []

    def parse(self, text: str, *, now: datetime | None = None) -> DateParse:
        self.calls.append(text)
        return self.result


class FakeSynthesizer:
    def __init__(self, answer: str | None = "An answer.", error: Exception | None = None) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def summarize(self, context: str, question: str) -> str | None:
        self.calls.append((context, question))
        if self.error is not None:
            raise self.error
        return self.answer
