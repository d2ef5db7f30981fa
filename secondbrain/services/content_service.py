"""Content creation, listing and deletion.

Every new item is embedded before it is persisted: when the embedding
provider fails nothing is written and the caller receives
:class:`~secondbrain.search.errors.UpstreamUnavailableError`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from urllib.parse import urlsplit

from secondbrain.models import ContentItem, ContentKind
from secondbrain.search.embeddings import (
    EmbeddingError,
    EmbeddingService,
    build_embedding_text,
    replace_lone_surrogates,
)
from secondbrain.search.errors import UpstreamUnavailableError
from secondbrain.search.predicates import ContentFilter
from secondbrain.search.store import ContentPage, ContentRepository

logger = logging.getLogger(__name__)

MAX_DOCUMENT_BYTES = 50 * 1024 * 1024
ALLOWED_DOCUMENT_TYPES = frozenset({"text/plain", "text/markdown"})
DOCUMENT_BODY_MAX_CHARS = 10_000

_TWITTER_HOSTS = frozenset({"twitter.com", "x.com", "mobile.twitter.com", "mobile.x.com"})
_YOUTUBE_HOSTS = frozenset({"youtube.com", "youtu.be", "m.youtube.com", "music.youtube.com"})


class DuplicateTitleError(Exception):
    """Raised when an owner already has a note with the same title."""

    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(f"A note titled {title!r} already exists")


class UnsupportedDocumentError(Exception):
    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"Unsupported document type: {mime_type or 'unknown'}")


class DocumentTooLargeError(Exception):
    def __init__(self, size: int) -> None:
        self.size = size
        super().__init__(f"Document exceeds {MAX_DOCUMENT_BYTES} bytes ({size})")


def normalize_tags(tags: Iterable[str] | None) -> list[str] | None:
    """Trim, de-duplicate and sort tags. Returns None when nothing is left."""
    if not tags:
        return None
    cleaned = sorted({replace_lone_surrogates(t.strip()) for t in tags if t and t.strip()})
    return cleaned or None


def classify_link(url: str) -> dict[str, str]:
    """Return ``{"platform", "host"}`` side-data for a link URL."""
    host = (urlsplit(url).hostname or "").lower()
    bare = host.removeprefix("www.")
    if bare in _TWITTER_HOSTS:
        platform = "twitter"
    elif bare in _YOUTUBE_HOSTS:
        platform = "youtube"
    else:
        platform = "web"
    return {"platform": platform, "host": host}


def trim_document_body(text: str) -> str:
    text = text.strip()
    if len(text) > DOCUMENT_BODY_MAX_CHARS:
        return text[:DOCUMENT_BODY_MAX_CHARS] + "..."
    return text


class ContentService:
    """Owner-scoped content operations.

    Args:
        store: Where items are persisted.
        embedding_service: Embeds new items before they are stored.
    """

    def __init__(self, store: ContentRepository, embedding_service: EmbeddingService) -> None:
        self._store = store
        self._embedding_service = embedding_service

    async def _embed_and_insert(self, item: ContentItem) -> ContentItem:
        text = build_embedding_text(item.title, item.body, item.created_at, item.source_url)
        try:
            vector = await self._embedding_service.embed_text(text)
        except EmbeddingError as exc:
            logger.error(
                "Embedding failed for new %s owner=%s component=embedding retryable=%s",
                item.kind.value,
                item.owner_id,
                exc.retryable,
            )
            raise UpstreamUnavailableError("embedding", "Embedding provider is unavailable") from exc

        item.embedding = vector or None
        await self._store.insert(item)
        logger.info("Created %s %s owner=%s", item.kind.value, item.id, item.owner_id)
        return item

    async def create_note(
        self,
        owner_id: str,
        title: str,
        body: str,
        tags: Iterable[str] | None = None,
    ) -> ContentItem:
        """Create a note.

        Raises:
            DuplicateTitleError: If the owner already has a note with this title.
            UpstreamUnavailableError: If the note could not be embedded.
        """
        title = replace_lone_surrogates(title.strip())
        if await self._store.title_exists(owner_id, title, ContentKind.NOTE):
            raise DuplicateTitleError(title)

        item = ContentItem(
            owner_id=owner_id,
            kind=ContentKind.NOTE,
            title=title,
            body=replace_lone_surrogates(body.strip()),
            tags=normalize_tags(tags),
            created_at=datetime.now(UTC),
        )
        return await self._embed_and_insert(item)

    async def create_link(
        self,
        owner_id: str,
        url: str,
        title: str | None = None,
        body: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> ContentItem:
        """Save a link. Tweets and videos are links with a platform marker."""
        item = ContentItem(
            owner_id=owner_id,
            kind=ContentKind.LINK,
            title=replace_lone_surrogates((title or "").strip()) or None,
            body=replace_lone_surrogates((body or "").strip()) or None,
            source_url=url,
            tags=normalize_tags(tags),
            extra_metadata=classify_link(url),
            created_at=datetime.now(UTC),
        )
        return await self._embed_and_insert(item)

    async def create_document(
        self,
        owner_id: str,
        file_name: str,
        data: bytes,
        mime_type: str,
        title: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> ContentItem:
        """Store an uploaded plain-text or Markdown document.

        Raises:
            UnsupportedDocumentError: If the MIME type is not a text type we accept.
            DocumentTooLargeError: If the upload exceeds :data:`MAX_DOCUMENT_BYTES`.
        """
        base_type = (mime_type or "").split(";", 1)[0].strip().lower()
        if base_type not in ALLOWED_DOCUMENT_TYPES:
            raise UnsupportedDocumentError(mime_type)
        if len(data) > MAX_DOCUMENT_BYTES:
            raise DocumentTooLargeError(len(data))

        now = datetime.now(UTC)
        item = ContentItem(
            owner_id=owner_id,
            kind=ContentKind.DOCUMENT,
            title=(title or "").strip() or file_name,
            body=trim_document_body(data.decode("utf-8", errors="replace")),
            tags=normalize_tags(tags),
            extra_metadata={
                "file_name": file_name,
                "file_size": len(data),
                "mime_type": base_type,
                "processed_at": now.isoformat(),
            },
            created_at=now,
        )
        return await self._embed_and_insert(item)

    async def list_items(
        self,
        owner_id: str,
        flt: ContentFilter | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ContentPage:
        return await self._store.find_by_owner(owner_id, flt, limit=limit, offset=offset)

    async def get_item(self, owner_id: str, item_id: str) -> ContentItem | None:
        return await self._store.get(item_id, owner_id)

    async def delete_item(self, owner_id: str, item_id: str) -> bool:
        deleted = await self._store.delete(item_id, owner_id)
        if deleted:
            logger.info("Deleted content %s owner=%s", item_id, owner_id)
        return deleted
