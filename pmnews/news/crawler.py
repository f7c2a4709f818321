"""
Crawl orchestration: validate window → fetch → date filter → route → persist.

    run_crawl("2026-02-01", "2026-02-07")

Candidates from all sources are de-duplicated by URL before any counting, so
stats.total is the number of unique article URLs seen in this run.
"""

import logging
from datetime import date
from typing import Optional, Sequence, Tuple

from pmnews.config import Settings, get_settings, get_sources
from pmnews.errors import InvalidRequestError
from pmnews.news.classifier import in_date_range
from pmnews.news.router import persist, route
from pmnews.schemas import CrawlResult, CrawlStats
from pmnews.shared.helpers import parse_day

logger = logging.getLogger(__name__)


def validate_date_range(start_date, end_date, settings: Optional[Settings] = None) -> Tuple[date, date]:
    """
    Check a crawl window and return it as two dates.

    Raises:
        InvalidRequestError: missing/unparseable dates, start after end,
            span over max_crawl_span_days, or start before min_crawl_start_date
    """
    settings = settings or get_settings()

    if not start_date or not end_date:
        raise InvalidRequestError("startDate and endDate are required")

    start = parse_day(start_date)
    end = parse_day(end_date)

    if start > end:
        raise InvalidRequestError("startDate must be before endDate")

    if (end - start).days > settings.max_crawl_span_days:
        raise InvalidRequestError(f"Date range cannot exceed {settings.max_crawl_span_days} days")

    if settings.min_crawl_start_date:
        minimum = date.fromisoformat(settings.min_crawl_start_date)
        if start < minimum:
            raise InvalidRequestError(f"startDate cannot be earlier than {minimum.isoformat()}")

    return start, end


async def run_crawl(
    start_date,
    end_date,
    db=None,
    fetcher=None,
    settings: Optional[Settings] = None,
    source_ids: Optional[Sequence[str]] = None,
) -> CrawlResult:
    """Crawl every configured source and store articles published in the window."""
    settings = settings or get_settings()
    start, end = validate_date_range(start_date, end_date, settings)

    if db is None:
        from pmnews.database import get_database
        db = get_database()
    if fetcher is None:
        from pmnews.tools.news_fetcher import NewsFetcher
        fetcher = NewsFetcher(settings=settings)

    sources = get_sources(source_ids)
    logger.info(
        f"[Crawl] Starting crawl from {start} to {end} over {len(sources)} sources "
        f"(render {'enabled' if fetcher.render_enabled else 'disabled'})"
    )

    report = await fetcher.fetch_all(sources)
    candidates = report.articles
    in_window = [a for a in candidates if in_date_range(a.published_at, start, end)]

    routed = route(in_window)
    inserted = persist(routed, db)

    stats = CrawlStats(
        total=len(candidates),
        within_date_range=len(in_window),
        matching=len(routed.matching),
        non_matching=len(routed.non_matching),
    )
    logger.info(
        f"[Crawl] Done: {stats.total} total, {stats.within_date_range} in range, "
        f"{stats.matching} matching, {stats.non_matching} non-matching"
    )

    render_state = "primary" if fetcher.render_enabled else "unavailable"
    return CrawlResult(
        success=True,
        message=f"Crawled {len(candidates)} articles (Firecrawl: {render_state})",
        inserted=inserted,
        stats=stats,
        sources=report.sources,
    )
