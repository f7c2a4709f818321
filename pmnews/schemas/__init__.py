"""
Schemas package — data models for the news ingestion service.

  - base.py: Common enums
  - news.py: NewsSource, CandidateArticle, persisted record views
  - pipeline.py: Crawl / deep-scrape / summary result models
"""

# base.py — enums
from pmnews.schemas.base import ExtractionStatus, FetchMethod

# news.py — article models
from pmnews.schemas.news import (
    NewsSource, CandidateArticle, NewsRawRecord, NewsToProcessRecord, PendingArticle, ScrapedPage,
)

# pipeline.py — operation results
from pmnews.schemas.pipeline import (
    CrawlStats, InsertResult, SourceReport, CrawlResult,
    DeepScrapeOutcome, DeepScrapeStats, DeepScrapeResult, SummaryOutcome, SummaryRunResult,
)

__all__ = [
    "ExtractionStatus", "FetchMethod",
    "NewsSource", "CandidateArticle", "NewsRawRecord", "NewsToProcessRecord", "PendingArticle",
    "ScrapedPage",
    "CrawlStats", "InsertResult", "SourceReport", "CrawlResult",
    "DeepScrapeOutcome", "DeepScrapeStats", "DeepScrapeResult", "SummaryOutcome", "SummaryRunResult",
]
