"""Links API endpoint.

- ``POST /links`` -- Save a link (web page, tweet or video).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, HttpUrl, StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession

from secondbrain.api.content import ContentItemResponse, build_content_service
from secondbrain.database import get_db
from secondbrain.search.errors import UpstreamUnavailableError
from secondbrain.services.auth_service import get_current_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/links", tags=["links"])


class LinkCreateRequest(BaseModel):
    url: HttpUrl
    title: Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)] | None = None
    body: Annotated[str, StringConstraints(max_length=50_000)] | None = None
    tags: list[str] | None = None


@router.post("", response_model=ContentItemResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    request: LinkCreateRequest,
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> ContentItemResponse:
    service = build_content_service(db)
    try:
        item = await service.create_link(
            owner_id,
            str(request.url),
            title=request.title,
            body=request.body,
            tags=request.tags,
        )
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message) from exc
    return ContentItemResponse.from_item(item)
