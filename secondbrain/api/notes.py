"""Notes API endpoint.

- ``POST /notes`` -- Create a note. Titles are unique per owner.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession

from secondbrain.api.content import ContentItemResponse, build_content_service
from secondbrain.database import get_db
from secondbrain.search.errors import UpstreamUnavailableError
from secondbrain.services.auth_service import get_current_owner
from secondbrain.services.content_service import DuplicateTitleError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])

NoteTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
NoteBody = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50_000)]


class NoteCreateRequest(BaseModel):
    title: NoteTitle
    body: NoteBody
    tags: list[str] | None = None


@router.post("", response_model=ContentItemResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    request: NoteCreateRequest,
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> ContentItemResponse:
    """Create a note for the caller.

    Returns 409 when the caller already has a note with the same title and
    503 when the note cannot be embedded (nothing is stored).
    """
    service = build_content_service(db)
    try:
        item = await service.create_note(owner_id, request.title, request.body, request.tags)
    except DuplicateTitleError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message) from exc
    return ContentItemResponse.from_item(item)
