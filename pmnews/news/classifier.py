"""
Relevance classification and date-window filtering.

An article is in scope when its text (headline + body snippet) is English and
mentions at least one private-market keyword. Both checks are deliberately
cheap: they run on every candidate of every crawl.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import List, Optional, Tuple

from pmnews.config import ENGLISH_ASCII_THRESHOLD, KEYWORDS
from pmnews.schemas.news import CandidateArticle

_KEYWORDS_LOWER = tuple(k.lower() for k in KEYWORDS)

# Inclusive window bounds use millisecond precision
_DAY_END = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class Classification:
    in_scope: bool
    is_english: bool
    keyword_hits: Tuple[str, ...]


def is_english(text: Optional[str]) -> bool:
    """ASCII-share heuristic: more than 80% ASCII characters reads as English."""
    if not text:
        return False
    ascii_count = sum(1 for ch in text if ord(ch) < 128)
    return ascii_count / len(text) > ENGLISH_ASCII_THRESHOLD


def matched_keywords(text: Optional[str]) -> List[str]:
    """Vocabulary terms found in text (case-insensitive substring match)."""
    if not text:
        return []
    lowered = text.lower()
    return [k for k in _KEYWORDS_LOWER if k in lowered]


def matches_keywords(text: Optional[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(k in lowered for k in _KEYWORDS_LOWER)


def classify(article: CandidateArticle) -> Classification:
    text = article.combined_text()
    english = is_english(text)
    hits = tuple(matched_keywords(text))
    return Classification(in_scope=english and bool(hits), is_english=english, keyword_hits=hits)


def _to_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def window_bounds(start, end) -> Tuple[datetime, datetime]:
    """UTC [start 00:00:00.000, end 23:59:59.999] for two calendar dates."""
    lo = datetime.combine(_to_date(start), time.min, tzinfo=timezone.utc)
    hi = datetime.combine(_to_date(end), _DAY_END, tzinfo=timezone.utc)
    return lo, hi


def in_date_range(published_at: Optional[datetime], start, end) -> bool:
    """
    True when published_at falls inside the inclusive crawl window.

    An unknown publication date is always kept. Naive timestamps are UTC.
    """
    if published_at is None:
        return True
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    lo, hi = window_bounds(start, end)
    return lo <= published_at <= hi
