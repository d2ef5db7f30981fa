"""Embedding service for converting text into vector embeddings.

Uses the OpenAI embeddings API (text-embedding-3-small by default,
shortened to 768 dimensions) to generate vectors suitable for pgvector
storage and cosine similarity search.  A local HTTP embedding service
can be used instead by configuring ``EMBEDDING_SERVICE_URL``.

Input longer than the configured byte budget is truncated on a UTF-8
code-point boundary before it is sent.  Transient provider failures
(timeouts, connection errors, 5xx) are retried with exponential backoff;
authentication, quota and other client errors are raised immediately.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING

import httpx
import openai
from openai import AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

if TYPE_CHECKING:
    from secondbrain.config import Settings

logger = logging.getLogger(__name__)

# Widest UTF-8 encoding of a single code point.
MAX_UTF8_CHAR_BYTES = 4

_WHITESPACE_RE = re.compile(r"\s")
# Surrogates have no UTF-8 encoding; a lone JSON "\ud800" escape decodes to one.
_SURROGATE_RE = re.compile("[\ud800-\udfff]")


class EmbeddingError(Exception):
    """Raised when an embedding API call fails.

    Attributes:
        retryable: Whether the last underlying failure was transient.
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)


def replace_lone_surrogates(text: str) -> str:
    """Replace unpaired surrogates with U+FFFD so *text* can be UTF-8 encoded."""
    return _SURROGATE_RE.sub("\ufffd", text)


def truncate_to_byte_budget(text: str, max_bytes: int) -> str:
    """Truncate *text* so that its UTF-8 encoding fits in *max_bytes*.

    The cut never splits a multi-byte character, so at most
    ``MAX_UTF8_CHAR_BYTES - 1`` bytes of the budget go unused.  A whitespace
    boundary is preferred over a mid-word cut only when it stays within
    that same slack.  Unpaired surrogates are replaced with U+FFFD first.
    """
    if max_bytes <= 0:
        return ""

    text = replace_lone_surrogates(text)
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text

    # A prefix of valid UTF-8 is only invalid at its tail; "ignore" drops
    # the partial trailing character and nothing else.
    cut = encoded[:max_bytes].decode("utf-8", errors="ignore")

    next_char = text[len(cut)] if len(cut) < len(text) else ""
    if next_char and not next_char.isspace():
        tail = cut[-MAX_UTF8_CHAR_BYTES:]
        matches = list(_WHITESPACE_RE.finditer(tail))
        if matches:
            boundary = len(cut) - len(tail) + matches[-1].start()
            candidate = cut[:boundary]
            if len(candidate.encode("utf-8")) >= max_bytes - (MAX_UTF8_CHAR_BYTES - 1):
                return candidate

    return cut


def build_embedding_text(
    title: str | None,
    body: str | None,
    created_at: datetime | None = None,
    source_url: str | None = None,
) -> str:
    """Assemble the text embedded for a stored item.

    Format::

        Title: <title>
        Date: <created_at ISO-8601>
        Content: <body>

    Absent parts are omitted.  When there is no body the source URL is
    used as content so links without extracted text still get a vector.
    """
    lines: list[str] = []
    if title and title.strip():
        lines.append(f"Title: {title.strip()}")
    if created_at is not None:
        lines.append(f"Date: {created_at.isoformat()}")
    content = body.strip() if body and body.strip() else (source_url or "")
    if content:
        lines.append(f"Content: {content}")
    return "\n".join(lines)


def _is_transient(exc: BaseException) -> bool:
    """Return True for provider failures worth retrying."""
    if isinstance(exc, openai.APIConnectionError):  # includes APITimeoutError
        return True
    if isinstance(exc, openai.InternalServerError):
        return True
    if isinstance(exc, httpx.TransportError):  # timeouts, connect errors
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class EmbeddingService:
    """Generate vector embeddings for text.

    Supports two modes:

    * **OpenAI API mode** (default) -- uses the OpenAI embeddings endpoint.
    * **Local HTTP mode** -- when *local_url* is given, all requests are
      forwarded to a local embedding service instead.

    Parameters
    ----------
    api_key : str
        OpenAI API key.  Ignored when running in local mode.
    model : str
        Embedding model name (default: ``text-embedding-3-small``).
        Only used in OpenAI mode.
    dimensions : int
        Output vector dimensions (default: 768).  Vectors of any other
        length are rejected.
    local_url : str | None
        Base URL of a local embedding service.
    max_input_bytes : int
        UTF-8 byte budget for a single input text.
    timeout : float
        Per-request timeout in seconds.
    max_attempts : int
        Total attempts for transient failures (1 disables retrying).
    retry_wait_base : float
        Multiplier for the exponential backoff between attempts.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "text-embedding-3-small",
        dimensions: int = 768,
        *,
        local_url: str | None = None,
        max_input_bytes: int = 8000,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait_base: float = 0.5,
    ) -> None:
        self._model = model
        self._dimensions = dimensions
        self._local_url = local_url or None
        self._max_input_bytes = max_input_bytes
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._retry_wait_base = retry_wait_base

        if self._local_url:
            logger.info("EmbeddingService: local mode enabled (%s)", self._local_url)
            self._client = None
        else:
            # Retries are handled here, not inside the SDK.
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingService:
        return cls(
            api_key=settings.OPENAI_API_KEY,
            model=settings.EMBEDDING_MODEL,
            dimensions=settings.EMBEDDING_DIMENSION,
            local_url=settings.EMBEDDING_SERVICE_URL or None,
            max_input_bytes=settings.EMBEDDING_MAX_INPUT_BYTES,
            timeout=settings.EMBEDDING_TIMEOUT_SECONDS,
            max_attempts=settings.EMBEDDING_MAX_RETRIES,
        )

    @property
    def dimensions(self) -> int:
        return self._dimensions

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed_text(self, text: str) -> list[float]:
        """Embed a single text string.

        Returns an empty list when *text* is empty or whitespace-only.

        Raises
        ------
        EmbeddingError
            If the provider call fails (after retries for transient errors)
            or returns a vector of the wrong dimension.
        """
        if not text or not text.strip():
            return []

        result = await self._call_api([self.prepare_input(text)])
        return result[0]

    def prepare_input(self, text: str) -> str:
        """Apply the byte budget to *text*."""
        truncated = truncate_to_byte_budget(text, self._max_input_bytes)
        if len(truncated) != len(text):
            logger.debug(
                "Embedding input truncated from %d to %d characters", len(text), len(truncated)
            )
        return truncated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call_api(self, texts: list[str]) -> list[list[float]]:
        """Dispatch to the configured backend with retries.

        Raises
        ------
        EmbeddingError
            If the underlying API call fails or the vectors are malformed.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_base, max=8),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    if self._local_url:
                        vectors = await self._call_local_api(texts)
                    else:
                        vectors = await self._call_openai_api(texts)
        except openai.APIError as exc:
            transient = _is_transient(exc)
            logger.error("Embedding API error (retryable=%s): %s", transient, exc)
            raise EmbeddingError(str(exc), retryable=transient) from exc
        except httpx.HTTPStatusError as exc:
            transient = _is_transient(exc)
            logger.error("Local embedding HTTP error (retryable=%s): %s", transient, exc)
            raise EmbeddingError(str(exc), retryable=transient) from exc
        except httpx.RequestError as exc:
            logger.error("Local embedding request error: %s", exc)
            raise EmbeddingError(str(exc), retryable=True) from exc
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Embedding response parse error: %s", exc)
            raise EmbeddingError(f"Unexpected response from embedding service: {exc}") from exc

        self._check_dimensions(vectors, expected_count=len(texts))
        return vectors

    def _check_dimensions(self, vectors: list[list[float]], expected_count: int) -> None:
        if len(vectors) != expected_count:
            raise EmbeddingError(
                f"Embedding service returned {len(vectors)} vectors for {expected_count} inputs"
            )
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise EmbeddingError(
                    f"Embedding dimension mismatch: expected {self._dimensions}, got {len(vector)}"
                )

    async def _call_openai_api(self, texts: list[str]) -> list[list[float]]:
        """Call the OpenAI embeddings API."""
        response = await self._client.embeddings.create(
            input=texts,
            model=self._model,
            dimensions=self._dimensions,
        )

        # The response data is ordered by index; sort to be safe.
        sorted_data = sorted(response.data, key=lambda d: d.index)
        return [item.embedding for item in sorted_data]

    async def _call_local_api(self, texts: list[str]) -> list[list[float]]:
        """Call a local HTTP embedding service.

        Expects the service to expose a ``POST /embed`` endpoint that
        accepts ``{"input": [...], "dimensions": N}`` and returns
        ``{"embeddings": [[...], ...]}``.
        """
        url = f"{self._local_url.rstrip('/')}/embed"
        payload = {"input": texts, "dimensions": self._dimensions}

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            data = response.json()
            return data["embeddings"]
