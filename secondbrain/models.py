"""PostgreSQL schema with pgvector support."""

import enum
import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Enum, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from secondbrain.config import get_settings
from secondbrain.database import Base

EMBEDDING_DIMENSION = get_settings().EMBEDDING_DIMENSION


class ContentKind(str, enum.Enum):
    """Kinds of saved content. Tweets and videos are stored as links."""

    NOTE = "NOTE"
    DOCUMENT = "DOCUMENT"
    LINK = "LINK"


def _new_id() -> str:
    return str(uuid.uuid4())


class ContentItem(Base):
    """A saved note, document or link together with its embedding."""

    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[ContentKind] = mapped_column(
        Enum(ContentKind, name="content_kind"), nullable=False
    )
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)  # ["tag1", "tag2"]
    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    embedding: Mapped[list | None] = mapped_column(Vector(EMBEDDING_DIMENSION), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), default=func.now()
    )

    __table_args__ = (
        Index("idx_content_items_owner_created", "owner_id", "created_at"),
        Index("idx_content_items_owner_kind", "owner_id", "kind"),
    )

    def __repr__(self) -> str:
        return f"<ContentItem id={self.id} kind={self.kind.value if self.kind else None} owner={self.owner_id}>"
