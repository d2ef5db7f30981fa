"""Calendar-date extraction from free-form query text.

Wraps :func:`dateparser.search.search_dates` so queries such as
"notes from yesterday" or "budget meeting on March 3rd 2024" yield a
date signal for ranking.  Parsing is best effort: any failure inside
the parser is logged and reported as "no date found".
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime
from typing import NamedTuple

from dateparser.search import search_dates

logger = logging.getLogger(__name__)

_DEFAULT_LANGUAGES = ("en",)

# A match without digits must contain one of these to count as a date.
# Bare abbreviations ("sat", "mar") and "may" are ordinary English words.
_DATE_ANCHOR_WORDS = frozenset(
    {
        "today", "yesterday", "tomorrow", "ago", "last", "next", "previous",
        "day", "days", "week", "weeks", "month", "months", "year", "years",
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "january", "february", "march", "april", "june", "july", "august",
        "september", "october", "november", "december",
    }
)
_WORD_RE = re.compile(r"[a-z]+")


def is_plausible_date_match(matched: str) -> bool:
    """Reject matches such as "may" in "may I see notes"."""
    if any(ch.isdigit() for ch in matched):
        return True
    return any(word in _DATE_ANCHOR_WORDS for word in _WORD_RE.findall(matched.lower()))


class DateParse(NamedTuple):
    """Outcome of parsing a query for a date.

    Attributes:
        value: The first calendar date found, or None.
        failed: True when the parser raised and the result was discarded.
    """

    value: date | None
    failed: bool = False


class TemporalParser:
    """Extract the first calendar date mentioned in a piece of text.

    Matches with no digit and no unambiguous date word are skipped.

    Relative expressions ("yesterday", "last friday") resolve against
    the current UTC time and prefer dates in the past, since queries
    refer to content that was already saved.

    Args:
        languages: Language codes passed to dateparser.
    """

    def __init__(self, languages: tuple[str, ...] = _DEFAULT_LANGUAGES) -> None:
        self._languages = list(languages)

    def parse(self, text: str, *, now: datetime | None = None) -> DateParse:
        """Parse *text* and report both the date and whether parsing failed."""
        if not text or not text.strip():
            return DateParse(None)

        base = (now or datetime.now(UTC)).astimezone(UTC).replace(tzinfo=None)
        try:
            found = search_dates(
                text,
                languages=self._languages,
                settings={
                    "PREFER_DATES_FROM": "past",
                    "RELATIVE_BASE": base,
                    "RETURN_AS_TIMEZONE_AWARE": False,
                },
            )
        except Exception:
            logger.warning("Date parsing failed (query_len=%d)", len(text), exc_info=True)
            return DateParse(None, failed=True)

        for matched, parsed in found or ():
            if is_plausible_date_match(matched):
                return DateParse(parsed.date())
            logger.debug("Ignoring date-like word %r", matched)
        return DateParse(None)

    def parse_date(self, text: str, *, now: datetime | None = None) -> date | None:
        """Return the first calendar date in *text*, or None."""
        return self.parse(text, now=now).value
