"""Content stores: pgvector-backed and in-memory.

Both stores expose the same interface (:class:`ContentRepository`).
:class:`ContentStore` pushes the weighted-similarity query down to
PostgreSQL using pgvector's cosine distance operator (``<=>``).
:class:`InMemoryContentStore` performs an explicit k-NN scan with numpy
and applies the same formula from :mod:`secondbrain.search.scoring`.
Every read and delete is scoped to an owner.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Protocol

import numpy as np
from sqlalchemy import Date, case, cast, delete, func, literal, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from secondbrain.models import ContentItem, ContentKind
from secondbrain.search.predicates import ContentFilter, HasEmbedding, TitleContains, clauses, matches_all
from secondbrain.search.scoring import (
    DATE_WEIGHT,
    SIMILARITY_WEIGHT,
    TITLE_WEIGHT,
    ScoreBreakdown,
    clamp_unit,
    combine,
    date_matches,
    qualifies,
    ranking_key,
    title_matches,
)

logger = logging.getLogger(__name__)


@dataclass
class RankedItem:
    """A stored item with its score breakdown for one query."""

    item: ContentItem
    scores: ScoreBreakdown


@dataclass
class ContentPage:
    items: list[ContentItem]
    total: int


class ContentRepository(Protocol):
    async def insert(self, item: ContentItem) -> str: ...

    async def get(self, item_id: str, owner_id: str) -> ContentItem | None: ...

    async def find_by_owner(
        self,
        owner_id: str,
        flt: ContentFilter | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ContentPage: ...

    async def find_by_title(self, owner_id: str, query: str, limit: int = 5) -> list[ContentItem]: ...

    async def title_exists(self, owner_id: str, title: str, kind: ContentKind) -> bool: ...

    async def delete(self, item_id: str, owner_id: str) -> bool: ...

    async def weighted_similarity(
        self,
        owner_id: str,
        query_embedding: Sequence[float],
        query_text: str,
        parsed_date: date | None,
        threshold: float,
        limit: int,
        flt: ContentFilter | None = None,
    ) -> list[RankedItem]: ...


def _prepare_new_item(item: ContentItem) -> None:
    if not item.id:
        item.id = str(uuid.uuid4())
    now = datetime.now(UTC)
    if item.created_at is None:
        item.created_at = now
    if item.updated_at is None:
        item.updated_at = item.created_at


class ContentStore:
    """PostgreSQL + pgvector content store.

    Args:
        session: An async SQLAlchemy session.  The caller owns the
            transaction; writes are flushed, not committed.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, item: ContentItem) -> str:
        _prepare_new_item(item)
        self._session.add(item)
        await self._session.flush()
        return item.id

    async def get(self, item_id: str, owner_id: str) -> ContentItem | None:
        stmt = select(ContentItem).where(ContentItem.id == item_id, ContentItem.owner_id == owner_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_owner(
        self,
        owner_id: str,
        flt: ContentFilter | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ContentPage:
        """List an owner's items, newest first."""
        flt = flt or ContentFilter()
        total_count = func.count().over().label("total_count")
        stmt = (
            select(ContentItem, total_count)
            .where(*clauses(flt.predicates(owner_id)))
            .order_by(ContentItem.created_at.desc(), ContentItem.id.asc())
            .limit(limit)
            .offset(offset)
        )
        result = await self._session.execute(stmt)
        rows = result.all()
        if rows:
            total = rows[0].total_count
        elif offset > 0:
            # The window count is lost when the page is past the last row.
            count_stmt = select(func.count()).select_from(ContentItem).where(*clauses(flt.predicates(owner_id)))
            total = (await self._session.execute(count_stmt)).scalar_one()
        else:
            total = 0
        return ContentPage(items=[row[0] for row in rows], total=total)

    async def find_by_title(self, owner_id: str, query: str, limit: int = 5) -> list[ContentItem]:
        """Items whose title contains *query* (case-insensitive), newest first."""
        predicates = ContentFilter(title_contains=query).predicates(owner_id)
        stmt = (
            select(ContentItem)
            .where(*clauses(predicates))
            .order_by(ContentItem.created_at.desc(), ContentItem.id.asc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def title_exists(self, owner_id: str, title: str, kind: ContentKind) -> bool:
        stmt = (
            select(ContentItem.id)
            .where(ContentItem.owner_id == owner_id, ContentItem.kind == kind, ContentItem.title == title)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def delete(self, item_id: str, owner_id: str) -> bool:
        stmt = (
            delete(ContentItem)
            .where(ContentItem.id == item_id, ContentItem.owner_id == owner_id)
            .returning(ContentItem.id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def weighted_similarity(
        self,
        owner_id: str,
        query_embedding: Sequence[float],
        query_text: str,
        parsed_date: date | None,
        threshold: float,
        limit: int,
        flt: ContentFilter | None = None,
    ) -> list[RankedItem]:
        """Run the hybrid weighted-similarity query in one round trip."""
        stmt = build_weighted_similarity_query(
            owner_id=owner_id,
            query_embedding=query_embedding,
            query_text=query_text,
            parsed_date=parsed_date,
            threshold=threshold,
            limit=limit,
            flt=flt,
        )
        result = await self._session.execute(stmt)
        rows = result.all()
        return [
            RankedItem(
                item=row[0],
                scores=ScoreBreakdown(
                    similarity_score=clamp_unit(float(row.similarity_score)),
                    title_score=float(row.title_score),
                    date_score=float(row.date_score),
                    total_score=clamp_unit(float(row.total_score)),
                ),
            )
            for row in rows
        ]


def build_weighted_similarity_query(
    owner_id: str,
    query_embedding: Sequence[float],
    query_text: str,
    parsed_date: date | None,
    threshold: float,
    limit: int,
    flt: ContentFilter | None = None,
):
    """Build the SELECT used by :meth:`ContentStore.weighted_similarity`.

    Kept separate so the statement can be compiled and inspected
    without a database.
    """
    flt = flt or ContentFilter()
    predicates = [*flt.predicates(owner_id), HasEmbedding()]

    cosine_distance = ContentItem.embedding.cosine_distance(list(query_embedding))
    similarity = func.greatest(0.0, func.least(1.0, 1.0 - cosine_distance))

    title_condition = TitleContains(query_text).clause()
    title_hit = case((title_condition, 1.0), else_=0.0)

    if parsed_date is not None:
        date_condition = cast(func.timezone("UTC", ContentItem.created_at), Date) == parsed_date
        date_hit = case((date_condition, 1.0), else_=0.0)
        inclusion = or_(SIMILARITY_WEIGHT * similarity > threshold, title_condition, date_condition)
    else:
        date_hit = literal(0.0)
        inclusion = or_(SIMILARITY_WEIGHT * similarity > threshold, title_condition)

    total = (SIMILARITY_WEIGHT * similarity + TITLE_WEIGHT * title_hit + DATE_WEIGHT * date_hit).label(
        "total_score"
    )

    return (
        select(
            ContentItem,
            similarity.label("similarity_score"),
            title_hit.label("title_score"),
            date_hit.label("date_score"),
            total,
        )
        .where(*clauses(predicates))
        .where(inclusion)
        .order_by(total.desc(), ContentItem.created_at.desc(), ContentItem.id.asc())
        .limit(limit)
    )


class InMemoryContentStore:
    """Content store held in process memory.

    Serves stores without native vector operators and deterministic
    tests.  Similarity is computed with an exhaustive cosine scan.
    """

    def __init__(self, items: Sequence[ContentItem] = ()) -> None:
        self._items: dict[str, ContentItem] = {}
        for item in items:
            _prepare_new_item(item)
            self._items[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    async def insert(self, item: ContentItem) -> str:
        _prepare_new_item(item)
        self._items[item.id] = item
        return item.id

    async def get(self, item_id: str, owner_id: str) -> ContentItem | None:
        item = self._items.get(item_id)
        if item is None or item.owner_id != owner_id:
            return None
        return item

    def _newest_first(self, items: list[ContentItem]) -> list[ContentItem]:
        return sorted(items, key=lambda i: ranking_key(0.0, i.created_at, i.id))

    async def find_by_owner(
        self,
        owner_id: str,
        flt: ContentFilter | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ContentPage:
        predicates = (flt or ContentFilter()).predicates(owner_id)
        matched = self._newest_first([i for i in self._items.values() if matches_all(predicates, i)])
        return ContentPage(items=matched[offset : offset + limit], total=len(matched))

    async def find_by_title(self, owner_id: str, query: str, limit: int = 5) -> list[ContentItem]:
        predicates = ContentFilter(title_contains=query).predicates(owner_id)
        matched = self._newest_first([i for i in self._items.values() if matches_all(predicates, i)])
        return matched[:limit]

    async def title_exists(self, owner_id: str, title: str, kind: ContentKind) -> bool:
        return any(
            i.owner_id == owner_id and i.kind == kind and i.title == title for i in self._items.values()
        )

    async def delete(self, item_id: str, owner_id: str) -> bool:
        item = self._items.get(item_id)
        if item is None or item.owner_id != owner_id:
            return False
        del self._items[item_id]
        return True

    async def weighted_similarity(
        self,
        owner_id: str,
        query_embedding: Sequence[float],
        query_text: str,
        parsed_date: date | None,
        threshold: float,
        limit: int,
        flt: ContentFilter | None = None,
    ) -> list[RankedItem]:
        predicates = [*(flt or ContentFilter()).predicates(owner_id), HasEmbedding()]
        query_vec = np.asarray(query_embedding, dtype=float)
        query_norm = float(np.linalg.norm(query_vec))

        ranked: list[RankedItem] = []
        for item in self._items.values():
            if not matches_all(predicates, item):
                continue
            vec = np.asarray(item.embedding, dtype=float)
            denom = query_norm * float(np.linalg.norm(vec))
            similarity = float(np.dot(query_vec, vec) / denom) if denom else 0.0
            scores = combine(
                similarity,
                title_matches(query_text, item.title),
                date_matches(parsed_date, item.created_at),
            )
            if qualifies(scores, threshold):
                ranked.append(RankedItem(item=item, scores=scores))

        ranked.sort(key=lambda r: ranking_key(r.scores.total_score, r.item.created_at, r.item.id))
        return ranked[:limit]
