"""
News source and article data models.

Hierarchy: NewsSource → CandidateArticle → (classified) → NewsRawRecord | NewsToProcessRecord

CandidateArticle is ephemeral: it only lives between a fetch and the
persistence step. The two record types mirror the rows of the news_raw and
news_to_process tables.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from pmnews.config import (
    DEFAULT_ARTICLE_PATTERNS,
    HEADLINE_MAX_CHARS,
    LIST_BODY_MAX_CHARS,
)
from pmnews.schemas.base import ExtractionStatus


class NewsSource(BaseModel):
    """Read-only descriptor of one news source."""
    id: str
    name: str

    # Listing page rendered on the primary path
    url: str
    # Syndication feed for the fallback path (some sources have none)
    rss_url: Optional[str] = None

    # Substrings declared by the source that mark article links
    article_patterns: Tuple[str, ...] = Field(default_factory=tuple)

    class Config:
        frozen = True

    @property
    def accepted_patterns(self) -> Tuple[str, ...]:
        """Source patterns plus the global defaults, lowercased and de-duplicated."""
        seen = []
        for pattern in (*self.article_patterns, *DEFAULT_ARTICLE_PATTERNS):
            p = pattern.lower()
            if p not in seen:
                seen.append(p)
        return tuple(seen)


class CandidateArticle(BaseModel):
    """Normalized article produced by a fetch, before classification."""
    url: str
    source_name: str
    published_at: Optional[datetime] = None
    headline: str
    body_text: Optional[str] = None

    @field_validator("url", "headline", mode="before")
    @classmethod
    def require_text(cls, v, info):
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{info.field_name} must be non-empty")
        if info.field_name == "headline":
            return v[:HEADLINE_MAX_CHARS]
        return v

    @field_validator("body_text", mode="before")
    @classmethod
    def trim_body(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v[:LIST_BODY_MAX_CHARS] or None

    def combined_text(self) -> str:
        """Text the classifier looks at: headline + body snippet."""
        return f"{self.headline} {self.body_text or ''}"


class NewsRawRecord(BaseModel):
    """Persisted in-scope article (news_raw row)."""
    id: str
    url: str
    source_name: str
    published_at: Optional[datetime] = None
    headline: str
    body_text: Optional[str] = None
    extraction_status: ExtractionStatus = ExtractionStatus.PENDING
    ai_summary: Optional[str] = None
    ai_keywords: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        use_enum_values = True


class NewsToProcessRecord(BaseModel):
    """Persisted out-of-scope reference (news_to_process row)."""
    id: str
    source_name: str
    source_url: str
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PendingArticle(BaseModel):
    """What the summarizer receives for one pending article."""
    id: str
    headline: str
    body_text: Optional[str] = None


class ScrapedPage(BaseModel):
    """One page as returned by the render/scrape service."""
    url: str
    markdown: str = ""
    links: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
