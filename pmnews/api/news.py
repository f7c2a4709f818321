"""News API router -- crawl and deep-scrape triggers, dashboard queries, summary contract.

Input errors (InvalidRequestError) and missing capabilities (NotConfiguredError)
propagate to the exception handlers registered in main.py; anything else is
logged and returned as a generic 500.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from pmnews.api.dependencies import DB, AppSettings, Fetcher, Firecrawl
from pmnews.api.schemas import (
    CrawlRequest,
    DeepScrapeRequest,
    SourceResponse,
    StatsResponse,
    SummaryUpdateRequest,
    SummaryUpdateResponse,
)
from pmnews.config import get_sources
from pmnews.errors import PMNewsError
from pmnews.news.crawler import run_crawl
from pmnews.news.scraper import deep_scrape

logger = logging.getLogger(__name__)

router = APIRouter()
sources_router = APIRouter()


@router.post("/crawl")
async def crawl(body: CrawlRequest, db: DB, fetcher: Fetcher, settings: AppSettings):
    """Crawl all sources for articles published between startDate and endDate (inclusive)."""
    try:
        result = await run_crawl(body.startDate, body.endDate, db=db, fetcher=fetcher, settings=settings)
    except PMNewsError:
        raise
    except Exception as e:
        logger.error(f"[Crawl] Unexpected error: {e}")
        raise HTTPException(500, "Failed to crawl news sources. Please try again.")
    return result.model_dump(by_alias=True, exclude={"sources"})


@router.post("/deep-scrape")
async def deep_scrape_articles(body: DeepScrapeRequest, db: DB, firecrawl: Firecrawl, settings: AppSettings):
    """Replace the stored snippet of up to 10 articles with full text."""
    try:
        result = await deep_scrape(body.articleIds, db=db, firecrawl=firecrawl, settings=settings)
    except PMNewsError:
        raise
    except Exception as e:
        logger.error(f"[DeepScrape] Unexpected error: {e}")
        raise HTTPException(500, "Failed to deep scrape articles")
    return result.model_dump()


@router.get("/articles")
async def list_articles(
    db: DB,
    source: Optional[List[str]] = Query(default=None),
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
):
    rows = db.list_news_raw(
        sources=source, status=status, search=search,
        start_date=start_date, end_date=end_date, limit=limit,
    )
    return {"count": len(rows), "articles": [r.model_dump(mode="json") for r in rows]}


@router.get("/backlog")
async def list_backlog(
    db: DB,
    source: Optional[List[str]] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
):
    """Out-of-scope references (news_to_process)."""
    rows = db.list_news_to_process(sources=source, limit=limit)
    return {"count": len(rows), "articles": [r.model_dump(mode="json") for r in rows]}


@router.get("/stats", response_model=StatsResponse)
async def stats(db: DB):
    return db.get_stats()


@router.get("/pending")
async def pending(
    db: DB,
    settings: AppSettings,
    ids: Optional[List[str]] = Query(default=None),
    batch_size: Optional[int] = Query(default=None, ge=1, le=100),
):
    """Articles waiting for a summary (or the given ids)."""
    rows = db.get_pending_articles(article_ids=ids, batch_size=batch_size or settings.summary_batch_size)
    return {"count": len(rows), "articles": [r.model_dump() for r in rows]}


@router.put("/{article_id}/summary", response_model=SummaryUpdateResponse)
async def save_summary(article_id: str, body: SummaryUpdateRequest, db: DB):
    if not db.save_summary(article_id, body.summary, body.keywords):
        raise HTTPException(404, "Article not found")
    return SummaryUpdateResponse(id=article_id, success=True)


@sources_router.get("", response_model=List[SourceResponse])
async def list_sources():
    return [
        SourceResponse(
            id=s.id, name=s.name, url=s.url, rss_url=s.rss_url,
            article_patterns=list(s.article_patterns),
        )
        for s in get_sources()
    ]
