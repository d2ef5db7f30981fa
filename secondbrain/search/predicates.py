"""Typed filter predicates for content queries.

Each predicate knows how to render itself as a SQLAlchemy clause for
the pgvector-backed store and how to test a single item for the
in-memory store, so both stores filter identically and no SQL text is
ever assembled by hand::

    flt = ContentFilter(kinds=(ContentKind.NOTE,), date_from=date(2024, 1, 1))
    stmt = select(ContentItem).where(*clauses(flt.predicates(owner_id="u1")))
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol

from sqlalchemy import ColumnElement

from secondbrain.models import ContentItem, ContentKind


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


class Predicate(Protocol):
    def clause(self) -> ColumnElement[bool]: ...

    def matches(self, item: ContentItem) -> bool: ...


@dataclass(frozen=True)
class OwnerIs:
    owner_id: str

    def clause(self) -> ColumnElement[bool]:
        return ContentItem.owner_id == self.owner_id

    def matches(self, item: ContentItem) -> bool:
        return item.owner_id == self.owner_id


@dataclass(frozen=True)
class KindIn:
    kinds: tuple[ContentKind, ...]

    def clause(self) -> ColumnElement[bool]:
        return ContentItem.kind.in_(self.kinds)

    def matches(self, item: ContentItem) -> bool:
        return item.kind in self.kinds


@dataclass(frozen=True)
class CreatedOnOrAfter:
    """Items created on or after the start of *day* (UTC)."""

    day: date

    def clause(self) -> ColumnElement[bool]:
        return ContentItem.created_at >= _day_start(self.day)

    def matches(self, item: ContentItem) -> bool:
        return _as_utc(item.created_at) >= _day_start(self.day)


@dataclass(frozen=True)
class CreatedOnOrBefore:
    """Items created no later than the end of *day* (UTC)."""

    day: date

    def clause(self) -> ColumnElement[bool]:
        return ContentItem.created_at < _day_start(self.day + timedelta(days=1))

    def matches(self, item: ContentItem) -> bool:
        return _as_utc(item.created_at) < _day_start(self.day + timedelta(days=1))


@dataclass(frozen=True)
class TitleContains:
    """Case-insensitive substring match on the title; ``%`` and ``_`` match literally."""

    text: str

    def clause(self) -> ColumnElement[bool]:
        return ContentItem.title.icontains(self.text, autoescape=True)

    def matches(self, item: ContentItem) -> bool:
        return bool(item.title) and self.text.lower() in item.title.lower()


@dataclass(frozen=True)
class HasEmbedding:
    def clause(self) -> ColumnElement[bool]:
        return ContentItem.embedding.is_not(None)

    def matches(self, item: ContentItem) -> bool:
        return item.embedding is not None


@dataclass(frozen=True)
class ContentFilter:
    """Optional, caller-supplied narrowing of a content query."""

    kinds: tuple[ContentKind, ...] = field(default_factory=tuple)
    date_from: date | None = None
    date_to: date | None = None
    title_contains: str | None = None

    def predicates(self, owner_id: str) -> list[Predicate]:
        """Return the owner predicate followed by every active filter."""
        result: list[Predicate] = [OwnerIs(owner_id)]
        if self.kinds:
            result.append(KindIn(tuple(self.kinds)))
        if self.date_from is not None:
            result.append(CreatedOnOrAfter(self.date_from))
        if self.date_to is not None:
            result.append(CreatedOnOrBefore(self.date_to))
        if self.title_contains:
            result.append(TitleContains(self.title_contains))
        return result


def clauses(predicates: Iterable[Predicate]) -> list[ColumnElement[bool]]:
    return [p.clause() for p in predicates]


def matches_all(predicates: Sequence[Predicate], item: ContentItem) -> bool:
    return all(p.matches(item) for p in predicates)
