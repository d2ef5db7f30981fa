"""Weighted hybrid scoring shared by every content store.

Three independent signals are combined into one score::

    total = 0.6 * similarity + 0.3 * title + 0.1 * date

* ``similarity`` -- cosine similarity between the query vector and the
  item vector, clamped to [0, 1].
* ``title`` -- 1 when the query is a case-insensitive substring of the
  item title, else 0.
* ``date`` -- 1 when a date parsed from the query equals the item's
  creation date (UTC calendar day), else 0.

Inclusion is a union, not an intersection: an item qualifies when its
weighted similarity exceeds the threshold **or** its title matches **or**
its date matches.  A pure keyword or date hit therefore surfaces even
when the vectors are unrelated.  The threshold only gates the
similarity path.

Ties on ``total`` are broken by ``created_at`` (newest first) and then
by ``id`` (ascending) so repeated searches return identical orderings.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

from pydantic import BaseModel

SIMILARITY_WEIGHT = 0.6
TITLE_WEIGHT = 0.3
DATE_WEIGHT = 0.1


class ScoreBreakdown(BaseModel):
    """Per-signal scores of a ranked item. All values lie in [0, 1]."""

    similarity_score: float
    title_score: float
    date_score: float
    total_score: float


def clamp_unit(value: float) -> float:
    """Clamp *value* into [0, 1]."""
    return min(1.0, max(0.0, value))


def title_matches(query: str, title: str | None) -> bool:
    """Case-insensitive substring test of *query* within *title*."""
    if not title or not query:
        return False
    return query.lower() in title.lower()


def utc_day(moment: datetime) -> date:
    """Calendar date of *moment* in UTC (naive values are taken as UTC)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).date()


def date_matches(parsed_date: date | None, created_at: datetime | None) -> bool:
    if parsed_date is None or created_at is None:
        return False
    return utc_day(created_at) == parsed_date


def combine(similarity: float, title_hit: bool, date_hit: bool) -> ScoreBreakdown:
    """Build the score breakdown for one candidate."""
    similarity_score = clamp_unit(similarity)
    title_score = 1.0 if title_hit else 0.0
    date_score = 1.0 if date_hit else 0.0
    total = SIMILARITY_WEIGHT * similarity_score + TITLE_WEIGHT * title_score + DATE_WEIGHT * date_score
    return ScoreBreakdown(
        similarity_score=similarity_score,
        title_score=title_score,
        date_score=date_score,
        total_score=clamp_unit(total),
    )


def qualifies(breakdown: ScoreBreakdown, threshold: float) -> bool:
    """Union inclusion rule: similarity path OR title hit OR date hit."""
    return (
        SIMILARITY_WEIGHT * breakdown.similarity_score > threshold
        or breakdown.title_score == 1.0
        or breakdown.date_score == 1.0
    )


def ranking_key(total_score: float, created_at: datetime, item_id: str) -> tuple[float, float, str]:
    """Sort key: total desc, created_at desc, id asc."""
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return (-total_score, -created_at.timestamp(), item_id)
