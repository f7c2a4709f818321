"""
Text and date helpers shared by the parsers, the crawler and the read side.
"""

import html
import re
from datetime import date, datetime
from typing import Optional

from pmnews.errors import InvalidRequestError

_WS_RE = re.compile(r'\s+')


def strip_html_tags(text: str) -> str:
    """Remove HTML tags and decode entities (&nbsp; &amp; ...)."""
    if not text:
        return ""
    clean = re.sub(r'<[^>]+>', ' ', text)
    clean = html.unescape(clean).replace('\xa0', ' ')
    return _WS_RE.sub(' ', clean).strip()


def truncate_text(text: Optional[str], max_len: int) -> Optional[str]:
    """Hard cut at max_len characters (no ellipsis; stored text stays verbatim)."""
    if text is None:
        return None
    return text[:max_len]



def parse_day(value) -> date:
    """Calendar day of a date, datetime or ISO string; anything else is an InvalidRequestError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        # Full ISO timestamps are accepted; only the date part counts
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidRequestError("Invalid date format. Use YYYY-MM-DD") from None
