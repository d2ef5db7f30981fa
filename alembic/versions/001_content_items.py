"""Create the content_items table with a pgvector embedding column.

Revision ID: 001_content_items
Revises: None
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_content_items"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EMBEDDING_DIMENSION = 768

content_kind = postgresql.ENUM("NOTE", "DOCUMENT", "LINK", name="content_kind", create_type=False)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "vector"')
    content_kind.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "content_items",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(255), nullable=False),
        sa.Column("kind", content_kind, nullable=False),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("body", sa.Text, nullable=True),
        sa.Column("source_url", sa.Text, nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("embedding", Vector(EMBEDDING_DIMENSION), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_content_items_owner_created", "content_items", ["owner_id", "created_at"])
    op.create_index("idx_content_items_owner_kind", "content_items", ["owner_id", "kind"])


def downgrade() -> None:
    op.drop_index("idx_content_items_owner_kind", table_name="content_items")
    op.drop_index("idx_content_items_owner_created", table_name="content_items")
    op.drop_table("content_items")
    content_kind.drop(op.get_bind(), checkfirst=True)
