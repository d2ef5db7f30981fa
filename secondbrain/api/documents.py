"""Documents API endpoint.

- ``POST /documents`` -- Upload a plain-text or Markdown document.

Binary formats (PDF, DOCX) are rejected with 415; their text has to be
extracted before upload.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from secondbrain.api.content import ContentItemResponse, build_content_service
from secondbrain.database import get_db
from secondbrain.search.errors import UpstreamUnavailableError
from secondbrain.services.auth_service import get_current_owner
from secondbrain.services.content_service import (
    MAX_DOCUMENT_BYTES,
    DocumentTooLargeError,
    UnsupportedDocumentError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

_EXTENSION_TYPES = {".md": "text/markdown", ".markdown": "text/markdown", ".txt": "text/plain"}
_GENERIC_TYPES = {"", "application/octet-stream"}


def _resolve_mime_type(file: UploadFile) -> str:
    """Use the declared type, falling back to the file extension for generic uploads."""
    declared = (file.content_type or "").lower()
    if declared in _GENERIC_TYPES and file.filename:
        name = file.filename.lower()
        for ext, mime in _EXTENSION_TYPES.items():
            if name.endswith(ext):
                return mime
    return declared


def _parse_tags(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    return [t for t in raw.split(",") if t.strip()]


@router.post("", response_model=ContentItemResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(..., description="Text or Markdown document"),  # noqa: B008
    title: str | None = Form(None, max_length=500),  # noqa: B008
    tags: str | None = Form(None, description="Comma-separated tags"),  # noqa: B008
    owner_id: str = Depends(get_current_owner),  # noqa: B008
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> ContentItemResponse:
    """Store an uploaded document as a DOCUMENT item."""
    mime_type = _resolve_mime_type(file)
    # One byte past the limit is enough to detect an oversized upload.
    data = await file.read(MAX_DOCUMENT_BYTES + 1)
    file_name = file.filename or "document.txt"

    service = build_content_service(db)
    try:
        item = await service.create_document(
            owner_id,
            file_name=file_name,
            data=data,
            mime_type=mime_type,
            title=title,
            tags=_parse_tags(tags),
        )
    except UnsupportedDocumentError as exc:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc)) from exc
    except DocumentTooLargeError as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from exc
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message) from exc
    finally:
        await file.close()

    logger.info("Uploaded document %s (%d bytes) owner=%s", item.id, len(data), owner_id)
    return ContentItemResponse.from_item(item)
