"""Hybrid ranker: vector similarity + title match + date match.

Orchestrates one search request:

1. Validate the request (before any provider is contacted).
2. Embed the query and parse a date out of it, concurrently.
3. Ask the content store for the weighted, owner-scoped ranking.
4. Optionally hand the top hit to the answer synthesizer.

Embedding failures are fatal (:class:`UpstreamUnavailableError`).  Date
parsing and answer synthesis degrade to warnings so that results are
always returned when the embedding succeeded.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import date

from secondbrain.models import ContentItem
from secondbrain.search.embeddings import EmbeddingError, EmbeddingService, replace_lone_surrogates
from secondbrain.search.errors import SearchValidationError, UpstreamUnavailableError
from secondbrain.search.predicates import ContentFilter
from secondbrain.search.store import ContentRepository, RankedItem
from secondbrain.search.synthesizer import AnswerSynthesizer
from secondbrain.search.temporal import TemporalParser

logger = logging.getLogger(__name__)

WARNING_DATE_PARSER_UNAVAILABLE = "date_parser_unavailable"
WARNING_ANSWER_UNAVAILABLE = "answer_unavailable"
WARNING_ANSWER_EMPTY = "answer_empty"
WARNING_NO_CONTEXT = "no_context"

_ELLIPSIS = "..."
DEFAULT_MAX_QUERY_LENGTH = 1000


@dataclass
class SearchOutcome:
    """Ranked results for one query plus optional synthesized answer."""

    query: str
    results: list[RankedItem]
    answer: str | None = None
    source_item_id: str | None = None
    parsed_date: date | None = None
    warnings: list[str] = field(default_factory=list)


def truncate_context(text: str, max_chars: int) -> str:
    """Cut *text* to *max_chars* characters, marking the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - len(_ELLIPSIS))] + _ELLIPSIS


def validate_query(query: str | None, max_length: int = DEFAULT_MAX_QUERY_LENGTH) -> str:
    """Return the stripped query, or raise SearchValidationError."""
    if not isinstance(query, str) or not query.strip():
        raise SearchValidationError("query", "must not be empty")
    text = replace_lone_surrogates(query.strip())
    if len(text) > max_length:
        raise SearchValidationError("query", f"must be at most {max_length} characters")
    return text


def validate_owner(owner_id: str | None) -> str:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise SearchValidationError("owner_id", "must not be empty")
    return owner_id


async def search_titles(
    store: ContentRepository,
    query: str,
    owner_id: str,
    *,
    limit: int = 5,
    max_query_length: int = DEFAULT_MAX_QUERY_LENGTH,
) -> tuple[str, list[ContentItem]]:
    """Title-only lookup: items whose title contains *query*, newest first.

    No provider is involved.  Returns the normalized query with the items.

    Raises:
        SearchValidationError: If the query or owner is empty.
    """
    text = validate_query(query, max_query_length)
    owner_id = validate_owner(owner_id)
    return text, await store.find_by_title(owner_id, text, limit)


class HybridRanker:
    """Rank an owner's content for a free-text query.

    Args:
        store: Content store that executes the weighted-similarity query.
        embedding_service: Produces the query vector.
        temporal_parser: Extracts an optional date from the query.
        synthesizer: Produces the optional answer.  None disables answers.
        default_threshold: Threshold used when the caller gives none.
        default_limit: Result count used when the caller gives none.
        max_limit: Upper bound applied to the requested result count.
        max_query_length: Longer queries are rejected.
        embed_timeout: Seconds allowed for the query embedding.
        answer_timeout: Seconds allowed for answer synthesis.
        context_max_chars: Characters of the top hit sent as context.
    """

    def __init__(
        self,
        store: ContentRepository,
        embedding_service: EmbeddingService,
        temporal_parser: TemporalParser,
        synthesizer: AnswerSynthesizer | None = None,
        *,
        default_threshold: float = 0.3,
        default_limit: int = 3,
        max_limit: int = 20,
        max_query_length: int = DEFAULT_MAX_QUERY_LENGTH,
        embed_timeout: float = 90.0,
        answer_timeout: float = 20.0,
        context_max_chars: int = 8000,
    ) -> None:
        self._store = store
        self._embedding_service = embedding_service
        self._temporal_parser = temporal_parser
        self._synthesizer = synthesizer
        self._default_threshold = default_threshold
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._max_query_length = max_query_length
        self._embed_timeout = embed_timeout
        self._answer_timeout = answer_timeout
        self._context_max_chars = context_max_chars

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _resolve_threshold(self, threshold: float | None) -> float:
        if threshold is None:
            return self._default_threshold
        if math.isnan(threshold) or not 0.0 <= threshold <= 1.0:
            raise SearchValidationError("similarity_threshold", "must be between 0 and 1")
        return float(threshold)

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._default_limit
        if limit < 1:
            raise SearchValidationError("result_limit", "must be at least 1")
        return min(limit, self._max_limit)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        owner_id: str,
        *,
        similarity_threshold: float | None = None,
        result_limit: int | None = None,
        use_ai: bool = True,
        flt: ContentFilter | None = None,
    ) -> SearchOutcome:
        """Run a hybrid search for *owner_id*.

        Raises:
            SearchValidationError: If the request is malformed.
            UpstreamUnavailableError: If the query could not be embedded.
        """
        text = validate_query(query, self._max_query_length)
        owner_id = validate_owner(owner_id)
        threshold = self._resolve_threshold(similarity_threshold)
        limit = self._resolve_limit(result_limit)

        query_embedding, date_parse = await asyncio.gather(
            self._embed_query(text, owner_id),
            asyncio.to_thread(self._temporal_parser.parse, text),
        )

        warnings: list[str] = []
        if date_parse.failed:
            warnings.append(WARNING_DATE_PARSER_UNAVAILABLE)

        results = await self._store.weighted_similarity(
            owner_id=owner_id,
            query_embedding=query_embedding,
            query_text=text,
            parsed_date=date_parse.value,
            threshold=threshold,
            limit=limit,
            flt=flt,
        )
        logger.info(
            "Hybrid search owner=%s query_len=%d threshold=%.2f results=%d date=%s",
            owner_id,
            len(text),
            threshold,
            len(results),
            date_parse.value is not None,
        )

        outcome = SearchOutcome(
            query=text,
            results=results,
            parsed_date=date_parse.value,
            warnings=warnings,
        )
        if use_ai and results:
            await self._attach_answer(outcome, results[0].item, owner_id)
        return outcome

    async def _embed_query(self, text: str, owner_id: str) -> list[float]:
        try:
            return await asyncio.wait_for(self._embedding_service.embed_text(text), timeout=self._embed_timeout)
        except EmbeddingError as exc:
            logger.error(
                "Query embedding failed owner=%s query_len=%d component=embedding retryable=%s",
                owner_id,
                len(text),
                exc.retryable,
            )
            raise UpstreamUnavailableError("embedding", "Embedding provider is unavailable") from exc
        except TimeoutError as exc:
            logger.error(
                "Query embedding timed out owner=%s query_len=%d component=embedding",
                owner_id,
                len(text),
            )
            raise UpstreamUnavailableError("embedding", "Embedding provider timed out") from exc

    async def _attach_answer(self, outcome: SearchOutcome, top: ContentItem, owner_id: str) -> None:
        body = (top.body or "").strip()
        if not body:
            outcome.warnings.append(WARNING_NO_CONTEXT)
            return
        if self._synthesizer is None:
            outcome.warnings.append(WARNING_ANSWER_UNAVAILABLE)
            return

        context = truncate_context(body, self._context_max_chars)
        try:
            answer = await asyncio.wait_for(
                self._synthesizer.summarize(context, outcome.query),
                timeout=self._answer_timeout,
            )
        except TimeoutError:
            logger.warning("Answer synthesis timed out owner=%s component=synthesizer", owner_id)
            outcome.warnings.append(WARNING_ANSWER_UNAVAILABLE)
            return
        except Exception:
            logger.warning("Answer synthesis failed owner=%s component=synthesizer", owner_id, exc_info=True)
            outcome.warnings.append(WARNING_ANSWER_UNAVAILABLE)
            return

        if answer is None:
            outcome.warnings.append(WARNING_ANSWER_EMPTY)
            return
        outcome.answer = answer
        outcome.source_item_id = top.id


__all__ = [
    "HybridRanker",
    "SearchOutcome",
    "WARNING_ANSWER_EMPTY",
    "WARNING_ANSWER_UNAVAILABLE",
    "WARNING_DATE_PARSER_UNAVAILABLE",
    "WARNING_NO_CONTEXT",
    "search_titles",
    "truncate_context",
    "validate_owner",
    "validate_query",
]
