"""
Article-link selection for listing pages.

A listing page links to everything: navigation, tag pages, author pages,
images. A link is kept only if it contains at least one accepted pattern
(source-declared or global default) and none of the excluded patterns.
"""

from typing import Iterable, List

from pmnews.config import EXCLUDED_LINK_PATTERNS
from pmnews.schemas.news import NewsSource


def is_article_link(link: str, source: NewsSource) -> bool:
    """Case-insensitive pattern test for a single link."""
    if not link:
        return False
    lowered = link.lower()
    if any(p in lowered for p in EXCLUDED_LINK_PATTERNS):
        return False
    return any(p in lowered for p in source.accepted_patterns)


def filter_article_links(links: Iterable[str], source: NewsSource, cap: int) -> List[str]:
    """Keep http(s) article links, drop duplicates (first occurrence wins), cap the list."""
    kept: List[str] = []
    seen = set()
    for link in links:
        if not isinstance(link, str):
            continue
        link = link.strip()
        if not link.lower().startswith(("http://", "https://")):
            continue
        if link in seen or not is_article_link(link, source):
            continue
        seen.add(link)
        kept.append(link)
        if len(kept) >= cap:
            break
    return kept
