"""Search API endpoints.

Provides:
- ``POST /search`` -- Hybrid search (vector similarity, title match and
  date match) over the caller's content, with an optional AI answer.
- ``POST /search/title`` -- Title-only substring search.

Malformed requests are rejected with 422 before any provider is called.
An unavailable embedding provider yields 503.  A failing answer model
never fails the request: results are returned with a warning.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from secondbrain.ai_router.router import AIRouter
from secondbrain.api.content import ContentItemResponse
from secondbrain.config import Settings, get_settings
from secondbrain.database import get_db
from secondbrain.models import ContentKind
from secondbrain.search.embeddings import EmbeddingService
from secondbrain.search.errors import SearchValidationError, UpstreamUnavailableError
from secondbrain.search.ranker import HybridRanker, SearchOutcome, search_titles
from secondbrain.search.scoring import ScoreBreakdown
from secondbrain.search.store import ContentStore
from secondbrain.search.synthesizer import AnswerSynthesizer
from secondbrain.search.temporal import TemporalParser
from secondbrain.services.auth_service import get_current_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class SearchRequest(BaseModel):
    query: str
    similarity_threshold: float | None = None
    use_ai: bool = True
    result_limit: int | None = None


class SearchResultResponse(BaseModel):
    id: str
    kind: ContentKind
    title: str | None
    body: str | None
    source_url: str | None
    tags: list[str]
    created_at: datetime
    scores: ScoreBreakdown


class SearchResponse(BaseModel):
    """Hybrid search response.

    ``answer`` and ``source_item_id`` are only present when an answer was
    produced; ``parsed_date`` only when the query mentioned a date.
    """

    query: str
    results: list[SearchResultResponse]
    total: int
    answer: str | None = None
    source_item_id: str | None = None
    parsed_date: date | None = None
    warnings: list[str] = []


class TitleSearchRequest(BaseModel):
    query: str


class TitleSearchResponse(BaseModel):
    query: str
    results: list[ContentItemResponse]


# ---------------------------------------------------------------------------
# Factory helpers (extracted for easy mocking in tests)
# ---------------------------------------------------------------------------


def _build_ranker(session: AsyncSession, settings: Settings | None = None) -> HybridRanker:
    """Create a HybridRanker wired to the pgvector store and configured providers."""
    if settings is None:
        settings = get_settings()

    synthesizer = AnswerSynthesizer(
        router=AIRouter.from_settings(settings),
        model=settings.AI_ANSWER_MODEL,
    )
    return HybridRanker(
        store=ContentStore(session),
        embedding_service=EmbeddingService.from_settings(settings),
        temporal_parser=TemporalParser(),
        synthesizer=synthesizer,
        default_threshold=settings.SEARCH_SIMILARITY_THRESHOLD,
        default_limit=settings.SEARCH_DEFAULT_LIMIT,
        max_limit=settings.SEARCH_MAX_LIMIT,
        max_query_length=settings.SEARCH_MAX_QUERY_LENGTH,
        embed_timeout=settings.EMBEDDING_TIMEOUT_SECONDS * max(1, settings.EMBEDDING_MAX_RETRIES),
        answer_timeout=settings.AI_ANSWER_TIMEOUT_SECONDS,
        context_max_chars=settings.AI_CONTEXT_MAX_CHARS,
    )


def _build_title_store(session: AsyncSession) -> ContentStore:
    return ContentStore(session)


def _to_response(outcome: SearchOutcome) -> SearchResponse:
    results = [
        SearchResultResponse(
            id=r.item.id,
            kind=r.item.kind,
            title=r.item.title,
            body=r.item.body,
            source_url=r.item.source_url,
            tags=r.item.tags or [],
            created_at=r.item.created_at,
            scores=r.scores,
        )
        for r in outcome.results
    ]
    optional: dict = {}
    if outcome.answer is not None:
        optional["answer"] = outcome.answer
        optional["source_item_id"] = outcome.source_item_id
    if outcome.parsed_date is not None:
        optional["parsed_date"] = outcome.parsed_date
    return SearchResponse(
        query=outcome.query,
        results=results,
        total=len(results),
        warnings=outcome.warnings,
        **optional,
    )


def _validation_exception(exc: SearchValidationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"field": exc.field, "message": exc.message},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", response_model=SearchResponse, response_model_exclude_unset=True)
async def search(
    request: SearchRequest,
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> SearchResponse:
    """Hybrid search over the caller's notes, documents and links."""
    ranker = _build_ranker(db)
    try:
        outcome = await ranker.search(
            request.query,
            owner_id,
            similarity_threshold=request.similarity_threshold,
            result_limit=request.result_limit,
            use_ai=request.use_ai,
        )
    except SearchValidationError as exc:
        raise _validation_exception(exc) from exc
    except UpstreamUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{exc.component} unavailable: {exc.message}",
        ) from exc

    return _to_response(outcome)


@router.post("/title", response_model=TitleSearchResponse)
async def search_by_title(
    request: TitleSearchRequest,
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> TitleSearchResponse:
    """Items whose title contains the query (case-insensitive), newest first."""
    settings = get_settings()
    try:
        query, items = await search_titles(
            _build_title_store(db),
            request.query,
            owner_id,
            limit=settings.TITLE_SEARCH_LIMIT,
            max_query_length=settings.SEARCH_MAX_QUERY_LENGTH,
        )
    except SearchValidationError as exc:
        raise _validation_exception(exc) from exc

    return TitleSearchResponse(
        query=query,
        results=[ContentItemResponse.from_item(i) for i in items],
    )
