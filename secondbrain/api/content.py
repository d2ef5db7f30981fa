"""Content API endpoints.

Provides:
- ``GET /content`` -- List the caller's items, newest first.
- ``GET /content/{item_id}`` -- One item.
- ``DELETE /content/{item_id}`` -- Delete one item.

Items owned by someone else are reported as not found.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from secondbrain.config import Settings, get_settings
from secondbrain.database import get_db
from secondbrain.models import ContentItem, ContentKind
from secondbrain.search.embeddings import EmbeddingService
from secondbrain.search.predicates import ContentFilter
from secondbrain.search.store import ContentStore
from secondbrain.services.auth_service import get_current_owner
from secondbrain.services.content_service import ContentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ContentItemResponse(BaseModel):
    """A stored item as returned to its owner. The embedding is never exposed."""

    id: str
    kind: ContentKind
    title: str | None = None
    body: str | None = None
    source_url: str | None = None
    tags: list[str] = []
    metadata: dict | None = None
    created_at: datetime

    @classmethod
    def from_item(cls, item: ContentItem) -> ContentItemResponse:
        return cls(
            id=item.id,
            kind=item.kind,
            title=item.title,
            body=item.body,
            source_url=item.source_url,
            tags=item.tags or [],
            metadata=item.extra_metadata,
            created_at=item.created_at,
        )


class ContentListResponse(BaseModel):
    items: list[ContentItemResponse]
    total: int
    limit: int
    offset: int


# ---------------------------------------------------------------------------
# Service factory (extracted for easy mocking in tests)
# ---------------------------------------------------------------------------


def build_content_service(session: AsyncSession, settings: Settings | None = None) -> ContentService:
    """Create a ContentService backed by the pgvector store."""
    if settings is None:
        settings = get_settings()
    return ContentService(
        store=ContentStore(session),
        embedding_service=EmbeddingService.from_settings(settings),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=ContentListResponse)
async def list_content(
    kind: ContentKind | None = Query(None, description="Filter by kind"),  # noqa: B008
    date_from: date | None = Query(None, description="Created on or after (YYYY-MM-DD, UTC)"),  # noqa: B008
    date_to: date | None = Query(None, description="Created on or before (YYYY-MM-DD, UTC)"),  # noqa: B008
    limit: int = Query(50, ge=1, le=100),  # noqa: B008
    offset: int = Query(0, ge=0),  # noqa: B008
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> ContentListResponse:
    """List the caller's content, newest first."""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=422,
            detail="date_from must not be after date_to",
        )

    flt = ContentFilter(
        kinds=(kind,) if kind else (),
        date_from=date_from,
        date_to=date_to,
    )
    service = build_content_service(db)
    page = await service.list_items(owner_id, flt, limit=limit, offset=offset)
    return ContentListResponse(
        items=[ContentItemResponse.from_item(i) for i in page.items],
        total=page.total,
        limit=limit,
        offset=offset,
    )


@router.get("/{item_id}", response_model=ContentItemResponse)
async def get_content(
    item_id: str,
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> ContentItemResponse:
    service = build_content_service(db)
    item = await service.get_item(owner_id, item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return ContentItemResponse.from_item(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    item_id: str,
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> Response:
    """Delete one of the caller's items."""
    service = build_content_service(db)
    if not await service.delete_item(owner_id, item_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
