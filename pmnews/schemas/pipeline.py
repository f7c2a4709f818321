"""
Result models for the crawl and deep-scrape operations.

Field aliases follow the JSON keys returned by the HTTP API
(withinDateRange, nonMatching, ...).
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class CrawlStats(BaseModel):
    """Counters over the de-duplicated candidate set."""
    total: int = 0
    within_date_range: int = Field(default=0, alias="withinDateRange")
    matching: int = 0
    non_matching: int = Field(default=0, alias="nonMatching")

    class Config:
        populate_by_name = True


class InsertResult(BaseModel):
    """Rows written per partition plus partition-level error messages."""
    matching: int = 0
    non_matching: int = Field(default=0, alias="nonMatching")
    errors: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class SourceReport(BaseModel):
    """Per-source fetch outcome (informational)."""
    source_id: str
    source_name: str
    method: str
    articles: int = 0
    error: Optional[str] = None


class CrawlResult(BaseModel):
    success: bool = True
    message: str = ""
    inserted: InsertResult = Field(default_factory=InsertResult)
    stats: CrawlStats = Field(default_factory=CrawlStats)
    sources: List[SourceReport] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class DeepScrapeOutcome(BaseModel):
    """Outcome for one requested article id.

    On failure `error` is one of "article not found", "scrape failed" or
    "store update failed" and body_text is None.
    """
    id: str
    body_text: Optional[str] = None
    success: bool
    error: Optional[str] = None


class DeepScrapeStats(BaseModel):
    success: int = 0
    failed: int = 0


class DeepScrapeResult(BaseModel):
    success: bool = True
    message: str = ""
    results: List[DeepScrapeOutcome] = Field(default_factory=list)
    stats: DeepScrapeStats = Field(default_factory=DeepScrapeStats)


class SummaryOutcome(BaseModel):
    id: str
    success: bool
    error: Optional[str] = None


class SummaryRunResult(BaseModel):
    """Outcome of one summarization pass over pending articles."""
    processed: int = 0
    failed: int = 0
    results: List[SummaryOutcome] = Field(default_factory=list)
