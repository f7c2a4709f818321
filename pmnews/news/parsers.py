"""
Article extraction: turn fetched content into CandidateArticle objects.

Parsers are per content kind and know nothing about transport:
  - FeedParser: RSS/Atom document text (feedparser)
  - MarkdownParser: one rendered article page (markdown + metadata)

Dates are parsed with dateutil first, then with two regexes that look for a
date inside free text. An unparseable date is unknown (None), never "now".
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

import feedparser
from dateutil.parser import parse as _dateutil_parse
from pydantic import ValidationError

from pmnews.config import (
    DEEP_BODY_MAX_CHARS,
    HEADLINE_MAX_CHARS,
    LIST_BODY_MAX_CHARS,
    MIN_HEADLINE_LENGTH,
)
from pmnews.schemas.news import CandidateArticle, NewsSource, ScrapedPage
from pmnews.shared.helpers import strip_html_tags, truncate_text

logger = logging.getLogger(__name__)

# Timezone abbreviations seen in feed dates
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
    "IST": timezone(timedelta(hours=5, minutes=30)),
    "SGT": timezone(timedelta(hours=8)),
}

_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
_DAY_MON_YEAR_RE = re.compile(
    r'(\d{1,2})\s+(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+(\d{4})',
    re.IGNORECASE,
)
_ISO_DATE_RE = re.compile(r'(\d{4})-(\d{2})-(\d{2})')
_URL_DATE_RE = re.compile(r'/(\d{4})/(\d{1,2})/(\d{1,2})(?:/|$)')

# Markdown cleanup, applied in this order
_IMAGE_RE = re.compile(r'!\[[^\]]*\]\([^)]+\)')
_LINK_RE = re.compile(r'\[([^\]]+)\]\([^)]+\)')
_HEADING_RE = re.compile(r'^#{1,6}\s+[^\n]+\n?', re.MULTILINE)
_BOLD_RE = re.compile(r'\*\*([^*]+)\*\*')
_ITALIC_RE = re.compile(r'\*([^*]+)\*')
_BULLET_RE = re.compile(r'^\s*[-*•]\s+', re.MULTILINE)
_MULTI_NEWLINE_RE = re.compile(r'\n{3,}')

_TOP_HEADING_RE = re.compile(r'^#\s+(.+)$', re.MULTILINE)
_SITE_SUFFIX_SEPARATORS = (" | ", " - ", " — ", " – ")

_TITLE_KEYS = ("title", "og:title", "ogTitle")
_SITE_NAME_KEYS = ("og:site_name", "ogSiteName")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_PUBLISHED_KEYS = (
    "publishedTime",
    "article:published_time",
    "og:published_time",
    "datePublished",
    "date",
    "pubdate",
)


# ── Dates ────────────────────────────────────────────────────────────────────

def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(text: Optional[str]) -> Optional[datetime]:
    """Parse a free-form date string to an aware UTC datetime, or None."""
    if not text or not str(text).strip():
        return None
    text = str(text).strip()

    try:
        return _as_utc(_dateutil_parse(text, tzinfos=TZINFOS))
    except (ValueError, OverflowError):
        pass

    m = _DAY_MON_YEAR_RE.search(text)
    if m:
        day, month, year = int(m.group(1)), _MONTHS.index(m.group(2)[:3].lower()) + 1, int(m.group(3))
        try:
            return datetime(year, month, day, tzinfo=timezone.utc)
        except ValueError:
            pass

    m = _ISO_DATE_RE.search(text)
    if m:
        try:
            return datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)), tzinfo=timezone.utc)
        except ValueError:
            pass

    return None


def date_from_url(url: str) -> Optional[datetime]:
    """Publication date from a /YYYY/MM/DD/ URL path, if present."""
    m = _URL_DATE_RE.search(url or "")
    if not m:
        return None
    try:
        return datetime(int(m.group(1)), int(m.group(2)), int(m.group(3)), tzinfo=timezone.utc)
    except ValueError:
        return None


# ── Markdown ─────────────────────────────────────────────────────────────────

def clean_markdown(markdown: Optional[str], max_chars: int = DEEP_BODY_MAX_CHARS) -> str:
    """Reduce rendered markdown to readable plain text of at most max_chars."""
    if not markdown:
        return ""
    text = _IMAGE_RE.sub('', markdown)
    text = _LINK_RE.sub(r'\1', text)
    text = _HEADING_RE.sub('', text)
    text = _BOLD_RE.sub(r'\1', text)
    text = _ITALIC_RE.sub(r'\1', text)
    text = _BULLET_RE.sub('', text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _MULTI_NEWLINE_RE.sub('\n\n', text).strip()
    return text[:max_chars]


def _site_key(value: str) -> str:
    key = _NON_ALNUM_RE.sub('', (value or "").lower())
    return key[3:] if key.startswith("the") and len(key) > 6 else key


def site_names_for(source: NewsSource) -> List[str]:
    """Source name and host, as they appear in page title suffixes."""
    names = [source.name]
    host = (urlparse(source.url).hostname or "").lower()
    if host:
        host = host[4:] if host.startswith("www.") else host
        names.extend([host, host.split(".")[0]])
    return names


def strip_site_suffix(title: str, site_names: Iterable[str] = ()) -> str:
    """Drop a trailing " | Site" / " - Site" when Site is one of site_names."""
    title = (title or "").strip()
    keys = {_site_key(n) for n in site_names} - {""}
    if not keys:
        return title
    for sep in _SITE_SUFFIX_SEPARATORS:
        if sep in title:
            head, tail = title.rsplit(sep, 1)
            if _site_key(tail) in keys and len(head.strip()) >= MIN_HEADLINE_LENGTH:
                return head.strip()
    return title


def extract_headline(markdown: str, metadata: Dict[str, Any], site_names: Iterable[str] = ()) -> str:
    """Metadata title first, then the first top-level markdown heading."""
    names = list(site_names)
    for key in _SITE_NAME_KEYS:
        value = metadata.get(key)
        if isinstance(value, str):
            names.append(value)

    for key in _TITLE_KEYS:
        value = metadata.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if value and str(value).strip():
            return strip_site_suffix(str(value), names)

    m = _TOP_HEADING_RE.search(markdown or "")
    if m:
        return strip_site_suffix(_LINK_RE.sub(r'\1', m.group(1)), names)
    return ""


def _metadata_date(metadata: Dict[str, Any]) -> Optional[datetime]:
    for key in _PUBLISHED_KEYS:
        value = metadata.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        parsed = parse_date(value) if value else None
        if parsed:
            return parsed
    return None


class MarkdownParser:
    """Builds a candidate from one rendered article page."""

    def __init__(self, body_max_chars: int = LIST_BODY_MAX_CHARS):
        self.body_max_chars = body_max_chars

    def parse(self, page: ScrapedPage, url: str, source: NewsSource) -> Optional[CandidateArticle]:
        headline = extract_headline(
            page.markdown, page.metadata, site_names_for(source)
        )[:HEADLINE_MAX_CHARS]
        if len(headline) < MIN_HEADLINE_LENGTH:
            logger.debug(f"Discarding {url}: headline too short ({headline!r})")
            return None

        published = (
            _metadata_date(page.metadata)
            or date_from_url(url)
            or datetime.now(timezone.utc)
        )

        try:
            return CandidateArticle(
                url=url,
                source_name=source.name,
                published_at=published,
                headline=headline,
                body_text=clean_markdown(page.markdown, self.body_max_chars) or None,
            )
        except ValidationError as e:
            logger.debug(f"Discarding {url}: {e}")
            return None


# ── Feeds ────────────────────────────────────────────────────────────────────

class FeedParser:
    """Parses an RSS/Atom document into candidates."""

    def parse(self, content: str, source: NewsSource, limit: int) -> List[CandidateArticle]:
        feed = feedparser.parse(content)
        if feed.bozo and not feed.entries:
            logger.debug(f"[RSS] {source.name}: unparseable feed ({feed.get('bozo_exception')})")

        articles: List[CandidateArticle] = []
        for entry in feed.entries[:limit]:
            article = self._parse_entry(entry, source)
            if article:
                articles.append(article)
        return articles

    def _parse_entry(self, entry: Dict[str, Any], source: NewsSource) -> Optional[CandidateArticle]:
        title = strip_html_tags(entry.get("title", ""))
        link = (entry.get("link") or "").strip()
        if not link or len(title) < MIN_HEADLINE_LENGTH:
            return None

        summary = entry.get("summary", "") or entry.get("description", "")
        summary = truncate_text(strip_html_tags(summary), LIST_BODY_MAX_CHARS)

        try:
            return CandidateArticle(
                url=link,
                source_name=source.name,
                published_at=parse_date(entry.get("published") or entry.get("updated")),
                headline=title,
                body_text=summary or None,
            )
        except ValidationError as e:
            logger.warning(f"Failed to parse entry: {e}")
            return None
