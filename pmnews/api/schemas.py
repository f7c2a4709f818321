"""API request/response schemas -- keys follow the dashboard's camelCase contract."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# -- Crawl --

class CrawlRequest(BaseModel):
    # Optional here so a missing date is reported as 400 by the validator, not 422
    startDate: Optional[str] = None
    endDate: Optional[str] = None


# -- Deep scrape --

class DeepScrapeRequest(BaseModel):
    articleIds: Optional[List[Any]] = None


# -- Summaries --

class SummaryUpdateRequest(BaseModel):
    summary: str
    keywords: List[str] = Field(default_factory=list)


class SummaryUpdateResponse(BaseModel):
    id: str
    success: bool


# -- Sources --

class SourceResponse(BaseModel):
    id: str
    name: str
    url: str
    rss_url: Optional[str] = None
    article_patterns: List[str] = Field(default_factory=list)


class StatsResponse(BaseModel):
    totalArticles: int
    extractedArticles: int
    pendingArticles: int
    sourceBreakdown: Dict[str, int] = Field(default_factory=dict)
    keywordBreakdown: Dict[str, int] = Field(default_factory=dict)
